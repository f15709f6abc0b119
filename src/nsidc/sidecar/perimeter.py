"""
Perimeter rings for cover construction.

A ring comes either from walking the edge of a native grid or from the four
boundary corners carried in product metadata. Walked rings run
counter-clockwise in grid index space starting at (0, 0):

    bottom row   i = 0,     j = 0 .. C-1
    right column j = C-1,   i = 1 .. R-1
    top row      i = R-1,   j = C-2 .. 0
    left column  j = 0,     i = R-2 .. 1
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from nsidc.sidecar import constants
from nsidc.sidecar.errors import BoundaryMetadataUnavailableError
from nsidc.sidecar.models import (BoundaryMetadata, PerimeterRing, PerimeterSource,
                                  ResolutionSet, StridedWalk)

logger = logging.getLogger(__name__)


def _edge(first: int, last: int, stride: int, descending: bool = False) -> List[int]:
    # Every stride-th position from first towards last, always ending on last.
    if (last < first and not descending) or (last > first and descending):
        return []
    step = -stride if descending else stride
    positions = list(range(first, last + (-1 if descending else 1), step))
    if positions[-1] != last:
        positions.append(last)
    return positions


def walk_positions(rows: int, cols: int, stride: int = 1) -> List[Tuple[int, int]]:
    """
    Returns the (i, j) grid positions visited by a strided walk of a rows x cols
    grid. A stride of 1 visits all 2*rows + 2*cols - 4 edge cells; a grid with
    a single row or column yields the line of its cells.
    """
    if rows < 1 or cols < 1:
        raise ValueError(f'Cannot walk an empty {rows} x {cols} grid')
    if stride < 1:
        raise ValueError(f'Perimeter stride must be positive, got {stride}')

    positions = [(0, j) for j in _edge(0, cols - 1, stride)]
    if rows > 1:
        positions += [(i, cols - 1) for i in _edge(1, rows - 1, stride)]
    if rows > 1 and cols > 1:
        positions += [(rows - 1, j) for j in _edge(cols - 2, 0, stride, descending=True)]
        positions += [(i, 0) for i in _edge(rows - 2, 1, stride, descending=True)]
    return positions


def strided_walk(resolution_set: ResolutionSet, stride: int = 1) -> PerimeterRing:
    positions = walk_positions(resolution_set.size_i, resolution_set.size_j, stride)
    latitude = resolution_set.latitude
    longitude = resolution_set.longitude
    vertices = tuple((float(latitude[i, j]), float(longitude[i, j])) for i, j in positions)
    logger.debug(f'Walked {len(vertices)} perimeter vertices of {resolution_set.name} with stride {stride}')
    return PerimeterRing(vertices=vertices, positions=tuple(positions))


def boundary_ring(corners: Optional[Sequence], name: Optional[str] = None) -> PerimeterRing:
    """
    Returns a four vertex ring of (lat, lon) corners in the order supplied.

    Raises:
        BoundaryMetadataUnavailableError: corners are absent, not exactly four,
            or not valid coordinates
    """
    if corners is None:
        raise BoundaryMetadataUnavailableError('No boundary corners in product metadata', name=name)

    corners = list(corners)
    if len(corners) != constants.NUM_BOUNDARY_CORNERS:
        raise BoundaryMetadataUnavailableError(
            f'Expected {constants.NUM_BOUNDARY_CORNERS} boundary corners, found {len(corners)}',
            name=name,
        )

    vertices = []
    for k, corner in enumerate(corners):
        try:
            lat, lon = (float(v) for v in corner)
        except (TypeError, ValueError):
            raise BoundaryMetadataUnavailableError(
                f'Malformed boundary corner {corner!r}', name=name, position=k
            ) from None
        if not (np.isfinite(lat) and np.isfinite(lon)) or abs(lat) > 90.0 or abs(lon) > 360.0:
            raise BoundaryMetadataUnavailableError(
                f'Boundary corner latitude {lat} longitude {lon} is out of range', name=name, position=k
            )
        vertices.append((lat, lon))

    return PerimeterRing(vertices=tuple(vertices), positions=tuple(range(len(vertices))))


def build_perimeter(resolution_set: ResolutionSet,
                    source: PerimeterSource,
                    boundary_corners: Optional[Sequence] = None) -> PerimeterRing:
    """Returns the perimeter ring of a native grid from the selected source."""
    if isinstance(source, StridedWalk):
        return strided_walk(resolution_set, source.stride)
    if isinstance(source, BoundaryMetadata):
        return boundary_ring(boundary_corners, name=resolution_set.name)
    raise ValueError(f'Unknown perimeter source {source!r}')
