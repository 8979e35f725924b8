"""
Domain service: level-of-detail sampling for globe rendering.

When more observations are visible than the camera-distance budget allows,
keeps the highest-priority points (bloom stage, then NDVI) and fills the rest
of the budget with a spread of lower-priority points.
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence
import logging

import numpy as np

from bloomglobe.domain.models import BloomDataPoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LODTier:
    """Point budget and marker size for a band of camera heights."""
    name: str
    min_camera_height: float
    """Tier applies when the camera is higher than this (metres)"""

    max_points: int
    marker_size: int


DEFAULT_TIERS: tuple[LODTier, ...] = (
    LODTier(name="global", min_camera_height=10_000_000, max_points=2_000, marker_size=3),
    LODTier(name="continental", min_camera_height=1_000_000, max_points=5_000, marker_size=4),
    LODTier(name="regional", min_camera_height=100_000, max_points=10_000, marker_size=6),
    LODTier(name="local", min_camera_height=0, max_points=20_000, marker_size=8),
)


@dataclass
class SamplingConfig:
    """Configuration for priority sampling."""

    head_fraction: float = 0.7
    """Share of the budget filled strictly by priority"""

    tail_stride: int = 3
    """Take every n-th remaining point to fill the rest of the budget"""


@dataclass
class SampledView:
    """Points selected for one render pass."""
    tier: LODTier
    points: list[BloomDataPoint] = field(default_factory=list)
    total_candidates: int = 0
    sampled: bool = False


def select_tier(
    camera_height: float,
    tiers: Sequence[LODTier] = DEFAULT_TIERS,
) -> LODTier:
    """
    Pick the LOD tier for a camera height.

    Args:
        camera_height: Camera distance above the surface in metres
        tiers: Tiers ordered from highest to lowest threshold

    Returns:
        First tier whose threshold the camera exceeds, else the last tier
    """
    for tier in tiers:
        if camera_height > tier.min_camera_height:
            return tier
    return tiers[-1]


def priority_score(point: BloomDataPoint) -> float:
    """Rendering priority: label * 1000 + ndvi * 100."""
    return point.priority


def sample_points(
    points: Sequence[BloomDataPoint],
    budget: int,
    config: Optional[SamplingConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> list[BloomDataPoint]:
    """
    Reduce a point set to at most budget points.

    The top head_fraction of the budget is taken by descending priority,
    widened so that every point sharing the maximum priority is kept. The
    remainder is filled from the lower-priority points, either with a
    deterministic stride or, when a random generator is supplied, by uniform
    sampling without replacement.

    Args:
        points: Candidate observations
        budget: Maximum number of points to return
        config: Sampling configuration
        rng: Optional numpy Generator for random tail selection

    Returns:
        Selected points, never more than budget
    """
    if budget <= 0:
        return []
    if len(points) <= budget:
        return list(points)

    config = config or SamplingConfig()

    ranked = sorted(points, key=priority_score, reverse=True)
    head_count = max(1, int(budget * config.head_fraction))

    # every point tied at the top priority is kept, up to the budget
    top = priority_score(ranked[0])
    tied = next((i for i, p in enumerate(ranked) if priority_score(p) < top), len(ranked))
    head_count = max(head_count, min(tied, budget))

    head = ranked[:head_count]
    remainder = ranked[head_count:]
    tail_budget = budget - head_count

    if tail_budget <= 0:
        tail = []
    elif rng is not None:
        chosen = rng.choice(len(remainder), size=min(tail_budget, len(remainder)), replace=False)
        tail = [remainder[int(i)] for i in sorted(chosen)]
    else:
        tail = remainder[::max(1, config.tail_stride)][:tail_budget]

    logger.debug(f"Sampled {len(points)} points down to {len(head) + len(tail)} "
                f"(priority={len(head)}, tail={len(tail)}, budget={budget})")
    return head + tail


def sample_for_camera(
    points: Sequence[BloomDataPoint],
    camera_height: float,
    tiers: Sequence[LODTier] = DEFAULT_TIERS,
    config: Optional[SamplingConfig] = None,
) -> SampledView:
    """
    Apply the LOD budget of the tier matching the camera height.

    Args:
        points: Visible observations
        camera_height: Camera distance above the surface in metres
        tiers: Available LOD tiers
        config: Sampling configuration

    Returns:
        SampledView with the tier and selected points
    """
    tier = select_tier(camera_height, tiers)
    selected = sample_points(points, tier.max_points, config)

    if len(selected) < len(points):
        logger.info(f"LOD '{tier.name}': rendering {len(selected)} of {len(points)} points")

    return SampledView(
        tier=tier,
        points=selected,
        total_candidates=len(points),
        sampled=len(selected) < len(points),
    )
