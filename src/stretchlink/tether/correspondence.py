"""Pair the segment's two end points with the anchors bound to its ends.

Runs once per (re)binding, never per tick.  The anchors stay on the ends
they were assigned to; what may swap is which current end point each
anchored end derives its offset from.

One anchor
    If the unanchored end point is strictly closer to the anchor than the
    anchored one, the end points are swapped.  The caller also swaps them
    on the segment itself so the unanchored end keeps the far point.

Two anchors
    If end point 0 is strictly closer to anchor 1 than to anchor 0, the
    points are swapped.  Only end point 0 is checked.

Ties never swap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from stretchlink.core.math_utils import Vec3, as_vec3
from stretchlink.tether.anchor import AnchorFrame, frame_distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Correspondence:
    anchor_count: int
    points: tuple[Vec3, Vec3]   # world point each end derives its offset from
    swapped: bool = False

    @property
    def swaps_segment(self) -> bool:
        """True when the segment's own end points must be exchanged too."""
        return self.swapped and self.anchor_count == 1


def resolve_correspondence(
    endpoints: tuple[Vec3, Vec3],
    frames: tuple[Optional[AnchorFrame], Optional[AnchorFrame]],
) -> Correspondence:
    """Decide which current end point each anchored end should track."""
    p0, p1 = as_vec3(endpoints[0]), as_vec3(endpoints[1])
    anchored = [i for i in (0, 1) if frames[i] is not None]

    if not anchored:
        return Correspondence(0, (p0, p1))

    if len(anchored) == 1:
        tether_end = anchored[0]
        other_end = 1 - tether_end
        frame = frames[tether_end]
        pts = (p0, p1)
        d_tether = frame_distance(frame, pts[tether_end])
        d_other = frame_distance(frame, pts[other_end])
        swapped = d_other < d_tether
        logger.debug(
            "One anchor on end %d: tethered point %.4g away, free point %.4g away%s",
            tether_end, d_tether, d_other, " -> swap" if swapped else "",
        )
        return Correspondence(1, (p1, p0) if swapped else (p0, p1), swapped)

    d_first = frame_distance(frames[0], p0)
    d_second = frame_distance(frames[1], p0)
    swapped = d_second < d_first
    logger.debug(
        "Two anchors: end point 0 is %.4g from anchor 0, %.4g from anchor 1%s",
        d_first, d_second, " -> swap" if swapped else "",
    )
    return Correspondence(2, (p1, p0) if swapped else (p0, p1), swapped)
