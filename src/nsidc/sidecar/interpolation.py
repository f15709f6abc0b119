"""
Derive a finer geolocation grid from a coarser one.

Each coarse cell (m, n) expands into a k x k block. Every output pixel in the
block is the coarse value moved along the local row and column gradients:

    out[m*k + di, n*k + dj] = coarse[m, n] + (di/k) * row_delta + (dj/k) * col_delta

so offset (0, 0) reproduces the coarse value exactly. Deltas are signed steps
from the previous row/column, or to the next one on the first row/column.
Only the latitude step between rows and the longitude step between columns
are held to the meridian threshold.
"""

import logging

import numpy as np

from nsidc.sidecar import constants
from nsidc.sidecar.errors import AllocationError, GeometryInconsistencyError
from nsidc.sidecar.models import ResolutionSet
from nsidc.sidecar.parallel import map_row_ranges

logger = logging.getLogger(__name__)


def correct_meridian_delta(delta, threshold: float = constants.DEFAULT_MERIDIAN_THRESHOLD):
    """
    Treat a longitude delta with magnitude at or above `threshold` as a wrap
    across the antimeridian and return the corrected delta 360 - |delta|
    (359.5 becomes 0.5). Smaller deltas are returned unchanged.
    """
    delta = np.asarray(delta, dtype=np.float64)
    return np.where(np.abs(delta) >= threshold, 360.0 - np.abs(delta), delta)


def signed_longitude_delta(delta, threshold: float = constants.DEFAULT_MERIDIAN_THRESHOLD):
    """
    Meridian-corrected longitude steps that keep their direction: a wrapped
    step points the other way, so 179.8 -> -179.9 (a step of -359.7) becomes
    +0.3.
    """
    delta = np.asarray(delta, dtype=np.float64)
    wrapped = np.abs(delta) >= threshold
    return np.where(wrapped, -np.sign(delta) * correct_meridian_delta(delta, threshold), delta)


def axis_deltas(values: np.ndarray, axis: int) -> np.ndarray:
    """Signed per-cell steps along `axis`; zero when the axis has one cell."""
    if values.shape[axis] < 2:
        return np.zeros_like(values)
    step = np.diff(values, axis=axis)
    return np.concatenate([np.take(step, [0], axis=axis), step], axis=axis)


def _check_deltas(deltas, factor, name):
    # Each entry is (label, axis, deltas, limit); a limit of inf only rejects non-finite steps.
    for label, axis, values, limit in deltas:
        bad = ~(np.abs(values) < limit)
        if not bad.any():
            continue
        m, n = (int(v) for v in np.argwhere(bad)[0])
        step = min(1, factor - 1)
        pixel = (m * factor + step, n * factor) if axis == 0 else (m * factor, n * factor + step)
        problem = 'is not finite' if np.isinf(limit) else f'is not below the threshold {limit}'
        raise GeometryInconsistencyError(
            f'{label} step {values[m, n]} at coarse cell ({m}, {n}) {problem}',
            name=name,
            position=pixel,
        )


def _expand(values, row_delta, col_delta, offsets):
    rows, cols = values.shape
    k = len(offsets)
    expanded = (
        values[:, None, :, None]
        + offsets[None, :, None, None] * row_delta[:, None, :, None]
        + offsets[None, None, None, :] * col_delta[:, None, :, None]
    )
    return expanded.reshape(rows * k, cols * k)


def interpolate(coarse: ResolutionSet,
                factor: int,
                name: str,
                variable_names=(),
                threshold: float = constants.DEFAULT_MERIDIAN_THRESHOLD,
                workers: int = 1) -> ResolutionSet:
    """
    Returns a new, unindexed resolution set of shape (size_i * factor,
    size_j * factor) derived from `coarse`.

    Raises:
        GeometryInconsistencyError: the latitude step between rows, or the
            meridian-corrected longitude step between columns, is not below
            `threshold`, or any step is not finite
        AllocationError: the output grid cannot be allocated
    """
    if int(factor) != factor or factor < 1:
        raise ValueError(f'Subdivision factor must be a positive integer, got {factor}')
    factor = int(factor)

    latitude = coarse.latitude
    longitude = coarse.longitude
    lat_row = axis_deltas(latitude, 0)
    lat_col = axis_deltas(latitude, 1)
    # Along-track longitude steps may be large near the poles; they are only
    # unwrapped when they cross the antimeridian.
    lon_row = signed_longitude_delta(axis_deltas(longitude, 0), 180.0)
    lon_col = signed_longitude_delta(axis_deltas(longitude, 1), threshold)

    _check_deltas(
        [('Latitude row', 0, lat_row, threshold),
         ('Longitude column', 1, lon_col, threshold),
         ('Latitude column', 1, lat_col, np.inf),
         ('Longitude row', 0, lon_row, np.inf)],
        factor, name,
    )

    size_i = coarse.size_i * factor
    size_j = coarse.size_j * factor
    try:
        out_lat = np.empty((size_i, size_j), dtype=np.float64)
        out_lon = np.empty((size_i, size_j), dtype=np.float64)
    except MemoryError as e:
        raise AllocationError(f'Cannot allocate a {size_i} x {size_j} grid', name=name) from e

    offsets = np.arange(factor, dtype=np.float64) / factor

    def fill(start, stop):
        rows = slice(start * factor, stop * factor)
        block = slice(start, stop)
        out_lat[rows] = _expand(latitude[block], lat_row[block], lat_col[block], offsets)
        out_lon[rows] = _expand(longitude[block], lon_row[block], lon_col[block], offsets)

    map_row_ranges(fill, coarse.size_i, workers)

    outside = (out_lon < -180.0) | (out_lon > 180.0)
    if outside.any():
        out_lon[outside] = (out_lon[outside] + 180.0) % 360.0 - 180.0
    np.clip(out_lat, -90.0, 90.0, out=out_lat)

    logger.info(f'Derived {name} ({size_i} x {size_j}) from {coarse.name} with factor {factor}')
    return ResolutionSet(
        name=name,
        latitude=out_lat,
        longitude=out_lon,
        variable_names=list(variable_names),
        derived_from=coarse.name,
        factor=factor,
    )
