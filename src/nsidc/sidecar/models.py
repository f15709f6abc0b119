"""
Data models for the sidecar package.

This module contains the in-memory model of one granule's geolocation
(resolution sets and covers), the transient perimeter ring, and the small
tagged variants used to select a cover level and a perimeter source.
"""

import dataclasses
from typing import Iterator, List, Optional, Tuple, Union

import numpy as np

from nsidc.sidecar import constants

LatLon = Tuple[float, float]


def _read_only(values: np.ndarray, dtype) -> np.ndarray:
    view = np.asarray(values, dtype=dtype).view()
    view.flags.writeable = False
    return view


@dataclasses.dataclass(frozen=True)
class ResolutionSet:
    """
    Geolocation and spatial index values for one named spatial resolution.

    Arrays are two dimensional (along-track, cross-track) and stored row-major,
    so each holds size_i * size_j values in the same pixel order. The arrays
    are read-only views; a populated set is never modified, operations return
    a new set via dataclasses.replace.
    """

    name: str
    latitude: np.ndarray
    longitude: np.ndarray
    variable_names: List[str] = dataclasses.field(default_factory=list)
    index_values: Optional[np.ndarray] = None
    finest_level: Optional[int] = None
    derived_from: Optional[str] = None
    factor: int = 1

    def __post_init__(self):
        latitude = _read_only(self.latitude, np.float64)
        longitude = _read_only(self.longitude, np.float64)

        if latitude.ndim != 2:
            raise ValueError(f'Resolution set {self.name} needs a 2-D grid, got {latitude.ndim}-D')
        if latitude.shape != longitude.shape:
            raise ValueError(
                f'Resolution set {self.name} latitude shape {latitude.shape} '
                f'does not match longitude shape {longitude.shape}'
            )
        if latitude.size == 0:
            raise ValueError(f'Resolution set {self.name} has an empty grid')

        object.__setattr__(self, 'latitude', latitude)
        object.__setattr__(self, 'longitude', longitude)
        object.__setattr__(self, 'variable_names', list(self.variable_names))

        if self.index_values is not None:
            index_values = _read_only(self.index_values, np.uint64)
            if index_values.shape != latitude.shape:
                raise ValueError(
                    f'Resolution set {self.name} index shape {index_values.shape} '
                    f'does not match grid shape {latitude.shape}'
                )
            object.__setattr__(self, 'index_values', index_values)

    @property
    def size_i(self) -> int:
        return self.latitude.shape[0]

    @property
    def size_j(self) -> int:
        return self.latitude.shape[1]

    @property
    def is_indexed(self) -> bool:
        return self.index_values is not None


@dataclasses.dataclass(frozen=True)
class CoverSet:
    """An ordered list of cover cells bounding a granule footprint."""

    name: str
    cells: np.ndarray
    resolution_level: int

    def __post_init__(self):
        object.__setattr__(self, 'cells', _read_only(self.cells, np.uint64).ravel())

    @property
    def size(self) -> int:
        return len(self.cells)


@dataclasses.dataclass(frozen=True)
class PerimeterRing:
    """
    A closed ring of (lat, lon) vertices. The closing vertex is implicit.

    `positions` holds where each vertex came from: a (i, j) grid position for a
    walked perimeter or the corner number for a metadata perimeter.
    """

    vertices: Tuple[LatLon, ...]
    positions: Tuple = ()

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self) -> Iterator[LatLon]:
        return iter(self.vertices)

    @property
    def latitudes(self) -> List[float]:
        return [lat for lat, _ in self.vertices]

    @property
    def longitudes(self) -> List[float]:
        return [lon for _, lon in self.vertices]


@dataclasses.dataclass
class GeoDataset:
    """
    Everything known about one granule's geolocation: its resolution sets in
    declaration order (coarse to fine), its covers, and any errors raised while
    building optional parts so the caller can judge a partial result.
    """

    name: str
    resolution_sets: List[ResolutionSet] = dataclasses.field(default_factory=list)
    cover_sets: List[CoverSet] = dataclasses.field(default_factory=list)
    failures: List[Exception] = dataclasses.field(default_factory=list)
    attributes: dict = dataclasses.field(default_factory=dict)

    def add_resolution_set(self, resolution_set: ResolutionSet) -> None:
        if resolution_set.name in self.resolution_set_names():
            raise ValueError(f'Duplicate resolution set name {resolution_set.name}')
        self.resolution_sets.append(resolution_set)

    def add_cover_set(self, cover_set: CoverSet) -> None:
        if cover_set.name in [c.name for c in self.cover_sets]:
            raise ValueError(f'Duplicate cover set name {cover_set.name}')
        self.cover_sets.append(cover_set)

    def resolution_set_names(self) -> List[str]:
        return [r.name for r in self.resolution_sets]

    def resolution_set(self, name: str) -> ResolutionSet:
        for r in self.resolution_sets:
            if r.name == name:
                return r
        raise KeyError(f'No resolution set named {name}')

    def cover_set(self, name: str) -> CoverSet:
        for c in self.cover_sets:
            if c.name == name:
                return c
        raise KeyError(f'No cover set named {name}')

    @property
    def is_complete(self) -> bool:
        return len(self.resolution_sets) > 0 and not self.failures


# -------------------------------------------------------------------
# Cover level policy
# -------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class AutoLevel:
    """Build the cover at the finest level observed while indexing pixels."""
    pass


@dataclasses.dataclass(frozen=True)
class ExplicitLevel:
    """Build the cover at a caller-supplied level."""

    level: int

    def __post_init__(self):
        if not 0 <= self.level <= constants.MAX_LEVEL:
            raise ValueError(f'Cover level must be between 0 and {constants.MAX_LEVEL}, got {self.level}')


CoverLevelPolicy = Union[AutoLevel, ExplicitLevel]


def cover_level_policy(value) -> CoverLevelPolicy:
    """
    Returns the policy for a configured cover level: 'auto' (or -1, or
    None) selects the observed finest level, anything else must be an integer
    level.
    """
    if value is None:
        return AutoLevel()
    if isinstance(value, (AutoLevel, ExplicitLevel)):
        return value
    if isinstance(value, str):
        value = value.strip()
        if value.lower() == constants.AUTO_COVER_LEVEL:
            return AutoLevel()
        try:
            value = int(value)
        except ValueError:
            raise ValueError(f"Cover level must be '{constants.AUTO_COVER_LEVEL}' or an integer, got {value}") from None
    if value == -1:
        return AutoLevel()
    return ExplicitLevel(int(value))


# -------------------------------------------------------------------
# Perimeter source
# -------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class StridedWalk:
    """Walk the native grid edge, sampling every `stride`-th cell."""

    stride: int = constants.DEFAULT_PERIMETER_STRIDE

    def __post_init__(self):
        if self.stride < 1:
            raise ValueError(f'Perimeter stride must be positive, got {self.stride}')


@dataclasses.dataclass(frozen=True)
class BoundaryMetadata:
    """Use the four boundary corners carried in product metadata."""
    pass


PerimeterSource = Union[StridedWalk, BoundaryMetadata]


def perimeter_source(strategy: str, stride: int = constants.DEFAULT_PERIMETER_STRIDE) -> PerimeterSource:
    """
    Returns the perimeter source for a configured strategy name.
    """
    if strategy == constants.STRIDED_WALK:
        return StridedWalk(stride)
    if strategy == constants.BOUNDARY_METADATA:
        return BoundaryMetadata()
    raise ValueError(
        f'Unknown perimeter strategy {strategy}, expected one of {constants.PERIMETER_STRATEGIES}'
    )
