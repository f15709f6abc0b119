"""
Footprint covers.

A cover is the list of encoder cells bounding the area inside a perimeter
ring, built at the level chosen by the cover level policy.
"""

import logging

from nsidc.sidecar.encoder import BaseSpatialEncoder
from nsidc.sidecar.errors import EncoderError
from nsidc.sidecar.models import AutoLevel, CoverLevelPolicy, CoverSet, ExplicitLevel, PerimeterRing

logger = logging.getLogger(__name__)


def resolve_cover_level(policy: CoverLevelPolicy, observed_finest_level: int) -> int:
    """Returns the encoder level a cover is built at under `policy`."""
    if isinstance(policy, AutoLevel):
        if observed_finest_level is None:
            raise ValueError('An automatic cover level needs an indexed resolution set')
        return int(observed_finest_level)
    if isinstance(policy, ExplicitLevel):
        return policy.level
    raise ValueError(f'Unknown cover level policy {policy!r}')


def build_cover(name: str,
                perimeter: PerimeterRing,
                policy: CoverLevelPolicy,
                observed_finest_level: int,
                encoder: BaseSpatialEncoder) -> CoverSet:
    """
    Returns the cover of the area bounded by `perimeter`, built by the
    encoder at the level selected by `policy`. Encoder errors are re-raised
    with the cover name attached.
    """
    level = resolve_cover_level(policy, observed_finest_level)
    try:
        cells = encoder.non_convex_hull(list(perimeter), level)
    except EncoderError as e:
        if e.name is None:
            e.name = name
        raise

    cover = CoverSet(name=name, cells=cells, resolution_level=level)
    logger.info(f'Cover {name} at level {level} has {cover.size} cells')
    return cover
