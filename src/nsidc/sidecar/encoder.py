"""
Spatial encoders.

The sidecar core only needs four things from an encoder: a per-pixel index
value, a per-value resolution level, a way to coarsen values to the resolution
actually supported by the pixel spacing, and a cover for a perimeter ring.
`BaseSpatialEncoder` defines that interface.

`QuadtreeEncoder` is the reference implementation. Level L divides the globe
into 2**L rows by 2**(L+1) columns of equal-angle cells, so every cell splits
into four children at the next level. An index value packs the Morton-ordered
cell location (aligned to the maximum level, so a parent is a bit prefix of
its children) above a 5-bit level field:

    value = (location << 5) | level
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

import numpy as np
import pyproj
from shapely.affinity import translate
from shapely.geometry import LineString, Point, Polygon, box
from shapely.ops import unary_union
from shapely.prepared import prep
from shapely.validation import make_valid

from nsidc.sidecar import constants
from nsidc.sidecar.errors import EncoderError

logger = logging.getLogger(__name__)

_U = np.uint64


class BaseSpatialEncoder(ABC):
    """Abstract interface for hierarchical spatial encoders."""

    max_level = constants.MAX_LEVEL

    @abstractmethod
    def value_from_lat_lon(self, lat, lon, level: int) -> np.ndarray:
        """Encode latitude/longitude arrays (degrees) at `level`.

        Raises:
            EncoderError: with `position` set to the flat index of the first
                value that cannot be encoded
        """
        pass

    @abstractmethod
    def adapt_resolution(self, values: np.ndarray) -> np.ndarray:
        """Coarsen a row of neighboring values to the level their spacing supports."""
        pass

    @abstractmethod
    def resolution_level(self, values: np.ndarray) -> np.ndarray:
        """Return the resolution level carried by each value."""
        pass

    @abstractmethod
    def non_convex_hull(self, perimeter: Sequence[Tuple[float, float]], level: int) -> np.ndarray:
        """Return the cells covering the area bounded by a (lat, lon) ring.

        Raises:
            EncoderError: with `position` set to the offending vertex, if any
        """
        pass


# -------------------------------------------------------------------
# Antimeridian handling
# -------------------------------------------------------------------

def has_antimeridian_crossing(points: List[Tuple[float, float]]) -> bool:
    """
    Returns True if any segment of a (lon, lat) path has a longitude
    difference greater than 180 degrees.
    """
    for i in range(len(points) - 1):
        if abs(points[i + 1][0] - points[i][0]) > 180:
            return True
    return False


def shift_western_hemi(points: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    """
    Shift negative longitudes from [-180, 0) to [180, 360) so a path that
    crosses the antimeridian becomes continuous.
    """
    return [(lon + 360 if lon < 0 else lon, lat) for lon, lat in points]


def split_at_antimeridian(geometry):
    """
    Split a geometry drawn in shifted [0, 360) longitude space back into
    standard [-180, 180] space, as a union of its eastern and western parts.
    """
    east = geometry.intersection(box(-180.0, -90.0, 180.0, 90.0))
    west = translate(geometry.intersection(box(180.0, -90.0, 540.0, 90.0)), xoff=-360.0)
    return unary_union([east, west])


# -------------------------------------------------------------------
# Bit layout helpers
# -------------------------------------------------------------------

def split_index(value: int) -> Tuple[int, int]:
    """Returns the (location, level) parts of an index value."""
    return value >> constants.LEVEL_BITS, value & constants.LEVEL_MASK


def build_index(location: int, level: int) -> int:
    """Returns the index value for a location and level."""
    if not 0 <= level <= constants.LEVEL_MASK:
        raise ValueError(f'Level must fit in {constants.LEVEL_BITS} bits, got {level}')
    return (location << constants.LEVEL_BITS) + level


def format_index(value: int, representation: str = 'h', split: bool = False) -> List[str]:
    """
    Returns printable lines for an index value in hex ('h') or binary ('b'),
    optionally split into its location and level parts.
    """
    if representation not in ('h', 'b'):
        raise ValueError(f"Unrecognized output format {representation}, use 'h' or 'b'")

    location, level = split_index(value)
    location_bits = 64 - constants.LEVEL_BITS
    if representation == 'h':
        if split:
            return [f'Location: 0x{location:x}', f'Resolution: 0x{level:x}']
        return [f'0x{value:x}']

    if split:
        return [
            f'Location: b{location:0{location_bits}b}',
            f'Resolution: b{level:0{constants.LEVEL_BITS}b}',
        ]
    return [f'b{value:064b}']


def _interleave(rows: np.ndarray, cols: np.ndarray, level: int) -> np.ndarray:
    # Top bit is the east/west half at level 0, then one (row, col) bit pair per level.
    code = cols >> _U(level)
    for k in range(level - 1, -1, -1):
        bit = _U(k)
        code = (code << _U(2)) | (((rows >> bit) & _U(1)) << _U(1)) | ((cols >> bit) & _U(1))
    return code


def _encode_cells(rows: np.ndarray, cols: np.ndarray, level: int) -> np.ndarray:
    code = _interleave(rows.astype(np.uint64), cols.astype(np.uint64), level)
    location = code << _U(2 * (constants.MAX_LEVEL - level))
    return (location << _U(constants.LEVEL_BITS)) | _U(level)


def _decode_cells(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    levels = values & _U(constants.LEVEL_MASK)
    code = (values >> _U(constants.LEVEL_BITS)) >> (_U(2) * (_U(constants.MAX_LEVEL) - levels))

    rows = np.zeros_like(values)
    cols = np.zeros_like(values)
    for k in range(constants.MAX_LEVEL):
        active = levels > _U(k)
        bit = _U(k)
        rows = np.where(active, rows | (((code >> _U(2 * k + 1)) & _U(1)) << bit), rows)
        cols = np.where(active, cols | (((code >> _U(2 * k)) & _U(1)) << bit), cols)
    cols = cols | ((code >> (_U(2) * levels)) << levels)

    return rows, cols, levels


def _truncate(values: np.ndarray, levels: np.ndarray) -> np.ndarray:
    # Only valid for levels no finer than the level already encoded in values.
    locations = values >> _U(constants.LEVEL_BITS)
    drop = _U(2) * (_U(constants.MAX_LEVEL) - levels)
    locations = (locations >> drop) << drop
    return (locations << _U(constants.LEVEL_BITS)) | levels


def cell_size_degrees(level: int) -> float:
    return 180.0 / (1 << level)


class QuadtreeEncoder(BaseSpatialEncoder):
    """Reference encoder over an equal-angle quadtree of the globe."""

    def __init__(self, ellipsoid: str = 'WGS84'):
        self._geod = pyproj.Geod(ellps=ellipsoid)

    def _check_level(self, level: int):
        if not 0 <= level <= self.max_level:
            raise EncoderError(f'Level must be between 0 and {self.max_level}, got {level}')

    def value_from_lat_lon(self, lat, lon, level: int) -> np.ndarray:
        self._check_level(level)
        lat = np.asarray(lat, dtype=np.float64)
        lon = np.asarray(lon, dtype=np.float64)
        if lat.shape != lon.shape:
            raise EncoderError(f'Latitude shape {lat.shape} does not match longitude shape {lon.shape}')

        bad = ~np.isfinite(lat) | ~np.isfinite(lon) | (np.abs(lat) > 90.0)
        if bad.any():
            position = int(np.flatnonzero(bad)[0])
            raise EncoderError(
                f'Cannot encode latitude {lat.flat[position]} longitude {lon.flat[position]}',
                position=position,
            )

        row_count = 1 << level
        col_count = 1 << (level + 1)
        lon = np.where((lon < -180.0) | (lon >= 180.0), (lon + 180.0) % 360.0 - 180.0, lon)
        rows = np.clip(np.floor((lat + 90.0) / 180.0 * row_count), 0, row_count - 1)
        cols = np.clip(np.floor((lon + 180.0) / 360.0 * col_count), 0, col_count - 1)

        return _encode_cells(rows.astype(np.uint64), cols.astype(np.uint64), level)

    def lat_lon_from_value(self, values) -> Tuple[np.ndarray, np.ndarray]:
        """Returns the (lat, lon) centers of the cells named by values."""
        values = np.asarray(values, dtype=np.uint64)
        rows, cols, levels = _decode_cells(values)
        size = 180.0 / np.left_shift(1, levels.astype(np.int64)).astype(np.float64)
        lat = (rows.astype(np.float64) + 0.5) * size - 90.0
        lon = (cols.astype(np.float64) + 0.5) * size - 180.0
        return lat, lon

    def resolution_level(self, values) -> np.ndarray:
        values = np.asarray(values, dtype=np.uint64)
        return (values & _U(constants.LEVEL_MASK)).astype(np.int64)

    def adapt_resolution(self, values) -> np.ndarray:
        """
        Coarsen each value to the level whose cell size matches the geodesic
        distance to its farthest immediate neighbor in the row. Values are
        never refined beyond the level they were encoded at.
        """
        values = np.asarray(values, dtype=np.uint64)
        if values.size < 2:
            return values.copy()

        lat, lon = self.lat_lon_from_value(values)
        _, _, distance = self._geod.inv(lon[:-1], lat[:-1], lon[1:], lat[1:])
        distance = np.abs(np.asarray(distance, dtype=np.float64))

        spacing = np.empty(values.size, dtype=np.float64)
        spacing[0] = distance[0]
        spacing[-1] = distance[-1]
        spacing[1:-1] = np.maximum(distance[:-1], distance[1:])

        with np.errstate(divide='ignore'):
            estimate = np.floor(np.log2(constants.HALF_MERIDIAN_METERS / spacing))
        estimate = np.where(spacing > 0, estimate, self.max_level)
        estimate = np.clip(estimate, 0, self.max_level).astype(np.uint64)

        levels = np.minimum(values & _U(constants.LEVEL_MASK), estimate)
        return _truncate(values, levels)

    def non_convex_hull(self, perimeter, level: int) -> np.ndarray:
        self._check_level(level)
        points = [(float(lon), float(lat)) for lat, lon in perimeter]
        if not points:
            raise EncoderError('Cannot build a cover from an empty perimeter')

        for k, (lon, lat) in enumerate(points):
            if not (np.isfinite(lon) and np.isfinite(lat)) or abs(lat) > 90.0:
                raise EncoderError(f'Invalid perimeter vertex latitude {lat} longitude {lon}', position=k)

        footprint = self.footprint(points)
        return self._cover(footprint, level)

    def footprint(self, points: List[Tuple[float, float]]):
        """
        Returns the shapely geometry bounded by a (lon, lat) ring, split at
        the antimeridian when the ring crosses it. Rings with fewer than three
        distinct vertices become a point or a line.
        """
        distinct = list(dict.fromkeys(points))
        if len(distinct) == 1:
            return Point(distinct[0])

        crosses_antimeridian = has_antimeridian_crossing(points + [points[0]])
        if crosses_antimeridian:
            points = shift_western_hemi(points)

        if len(distinct) == 2:
            geometry = LineString(points)
        else:
            geometry = Polygon(points)
            if not geometry.is_valid:
                geometry = make_valid(geometry)

        if crosses_antimeridian:
            geometry = split_at_antimeridian(geometry)
        return geometry

    def _cover(self, footprint, level: int) -> np.ndarray:
        # Descend the quadtree: cells wholly inside the footprint are kept at the
        # coarsest level that is inside, boundary cells are refined down to `level`.
        prepared = prep(footprint)
        found = []
        stack = [(0, 0, 0), (0, 0, 1)]
        while stack:
            cell_level, row, col = stack.pop()
            size = cell_size_degrees(cell_level)
            cell = box(col * size - 180.0, row * size - 90.0, (col + 1) * size - 180.0, (row + 1) * size - 90.0)
            if not prepared.intersects(cell):
                continue
            if cell_level == level or prepared.contains(cell):
                found.append((cell_level, row, col))
                continue
            for dr in (0, 1):
                for dc in (0, 1):
                    stack.append((cell_level + 1, 2 * row + dr, 2 * col + dc))

        cells = []
        for cell_level in sorted({f[0] for f in found}):
            rows = np.array([f[1] for f in found if f[0] == cell_level], dtype=np.uint64)
            cols = np.array([f[2] for f in found if f[0] == cell_level], dtype=np.uint64)
            cells.append(_encode_cells(rows, cols, cell_level))

        if not cells:
            return np.array([], dtype=np.uint64)
        logger.debug(f'Cover at level {level} has {len(found)} cells')
        return np.sort(np.concatenate(cells))
