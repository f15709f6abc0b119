"""
Per-pixel spatial index assignment.

Rows are encoded at a fixed level, then each row is coarsened by the encoder
to the level its pixel spacing supports. The finest level seen in any row is
kept with the set; it drives the automatic cover level.
"""

import dataclasses
import logging

import numpy as np

from nsidc.sidecar import constants
from nsidc.sidecar.encoder import BaseSpatialEncoder
from nsidc.sidecar.errors import AllocationError, EncoderError
from nsidc.sidecar.models import ResolutionSet
from nsidc.sidecar.parallel import map_row_ranges

logger = logging.getLogger(__name__)


def assign_spatial_index(resolution_set: ResolutionSet,
                         encoder: BaseSpatialEncoder,
                         level: int = constants.MAX_LEVEL,
                         workers: int = 1) -> ResolutionSet:
    """
    Returns a copy of `resolution_set` with `index_values` and `finest_level`
    populated. The result does not depend on the number of workers.

    Raises:
        EncoderError: with the set name and the (i, j) pixel attached
        AllocationError: the index array cannot be allocated
    """
    size_i, size_j = resolution_set.size_i, resolution_set.size_j
    try:
        index_values = np.empty((size_i, size_j), dtype=np.uint64)
    except MemoryError as e:
        raise AllocationError(f'Cannot allocate a {size_i} x {size_j} index', name=resolution_set.name) from e

    def index_rows(start, stop):
        try:
            values = encoder.value_from_lat_lon(
                resolution_set.latitude[start:stop], resolution_set.longitude[start:stop], level
            )
        except EncoderError as e:
            if e.name is None:
                e.name = resolution_set.name
            if isinstance(e.position, (int, np.integer)):
                e.position = (start + int(e.position) // size_j, int(e.position) % size_j)
            raise

        finest = 0
        for row in range(stop - start):
            adapted = encoder.adapt_resolution(values[row])
            index_values[start + row] = adapted
            finest = max(finest, int(np.max(encoder.resolution_level(adapted))))
        return finest

    finest_level = max(map_row_ranges(index_rows, size_i, workers))
    logger.info(f'Indexed {resolution_set.name} ({size_i} x {size_j}), finest level {finest_level}')

    return dataclasses.replace(resolution_set, index_values=index_values, finest_level=finest_level)
