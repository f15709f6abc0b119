"""
Assemble the geolocation of one granule.

Native grids are read and indexed first; a failure there fails the granule.
Derived resolutions and covers are optional parts: their errors are logged and
kept in `GeoDataset.failures` while the rest of the dataset stays valid.
"""

import dataclasses
import logging
import os.path

from nsidc.sidecar import constants
from nsidc.sidecar.cover import build_cover
from nsidc.sidecar.encoder import BaseSpatialEncoder
from nsidc.sidecar.errors import (BoundaryMetadataUnavailableError, EncoderError,
                                  GeometryInconsistencyError, SwathReaderError)
from nsidc.sidecar.indexing import assign_spatial_index
from nsidc.sidecar.interpolation import interpolate
from nsidc.sidecar.models import (AutoLevel, BoundaryMetadata, CoverLevelPolicy, GeoDataset,
                                  PerimeterRing, PerimeterSource, ResolutionSet, StridedWalk,
                                  cover_level_policy, perimeter_source)
from nsidc.sidecar.perimeter import build_perimeter
from nsidc.sidecar.readers.swath_reader import BaseSwathReader

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BuildSettings:
    cover_level: CoverLevelPolicy = AutoLevel()
    perimeter: PerimeterSource = StridedWalk()
    retry_with_walk: bool = constants.DEFAULT_RETRY_WITH_WALK
    retry_stride: int = constants.DEFAULT_PERIMETER_STRIDE
    meridian_threshold: float = constants.DEFAULT_MERIDIAN_THRESHOLD
    index_level: int = constants.DEFAULT_INDEX_LEVEL
    workers: int = constants.DEFAULT_WORKERS

    @classmethod
    def from_config(cls, configuration):
        return cls(
            cover_level=cover_level_policy(configuration.cover_level),
            perimeter=perimeter_source(configuration.perimeter_strategy, configuration.perimeter_stride),
            retry_with_walk=configuration.retry_with_walk,
            retry_stride=configuration.perimeter_stride,
            meridian_threshold=configuration.meridian_threshold,
            index_level=configuration.index_level,
            workers=configuration.workers,
        )


def read_perimeter(data_file: str,
                   resolution_set: ResolutionSet,
                   reader: BaseSwathReader,
                   settings: BuildSettings) -> PerimeterRing:
    """
    Returns the perimeter of a native grid. Missing boundary metadata is
    retried with a strided walk only when `retry_with_walk` is set.
    """
    if not isinstance(settings.perimeter, BoundaryMetadata):
        return build_perimeter(resolution_set, settings.perimeter)

    try:
        corners = reader.read_boundary_corners(data_file)
        return build_perimeter(resolution_set, settings.perimeter, corners)
    except BoundaryMetadataUnavailableError as e:
        if e.name is None:
            e.name = resolution_set.name
        if not settings.retry_with_walk:
            raise
        logger.warning(f'{e}; retrying with a strided walk of stride {settings.retry_stride}')
        return build_perimeter(resolution_set, StridedWalk(settings.retry_stride))


def build_geo_dataset(data_file: str,
                      reader: BaseSwathReader,
                      encoder: BaseSpatialEncoder,
                      settings: BuildSettings = BuildSettings(),
                      attributes: dict = None) -> GeoDataset:
    """
    Returns the GeoDataset of a data file: every native grid indexed, every
    derived resolution interpolated and indexed, and one cover per native grid.

    Raises:
        SwathReaderError: the data file has no usable geolocation
        EncoderError: a native grid cannot be indexed
        AllocationError: output arrays cannot be allocated
    """
    name = os.path.basename(data_file)
    grids = reader.read_native_grids(data_file)
    if not grids:
        raise SwathReaderError(f'No geolocation grids found in {data_file}', name=name)

    dataset = GeoDataset(
        name=name,
        attributes={'product': reader.product or '', 'source_file': name, **(attributes or {})},
    )

    for grid in grids:
        try:
            resolution_set = ResolutionSet(grid.name, grid.latitude, grid.longitude, grid.variable_names)
        except ValueError as e:
            raise SwathReaderError(str(e), name=grid.name) from e
        dataset.add_resolution_set(
            assign_spatial_index(resolution_set, encoder, settings.index_level, settings.workers)
        )

    for derived in reader.derived_resolutions():
        try:
            resolution_set = interpolate(
                dataset.resolution_set(derived.source),
                derived.factor,
                derived.name,
                derived.variable_names,
                settings.meridian_threshold,
                settings.workers,
            )
            resolution_set = assign_spatial_index(resolution_set, encoder, settings.index_level, settings.workers)
        except (GeometryInconsistencyError, EncoderError) as e:
            logger.warning(f'Skipping resolution {derived.name}: {e}')
            dataset.failures.append(e)
            continue
        dataset.add_resolution_set(resolution_set)

    for grid in grids:
        resolution_set = dataset.resolution_set(grid.name)
        try:
            perimeter = read_perimeter(data_file, resolution_set, reader, settings)
            cover = build_cover(grid.name, perimeter, settings.cover_level,
                                resolution_set.finest_level, encoder)
        except (BoundaryMetadataUnavailableError, EncoderError) as e:
            logger.warning(f'No cover for {grid.name}: {e}')
            dataset.failures.append(e)
            continue
        dataset.add_cover_set(cover)

    return dataset
