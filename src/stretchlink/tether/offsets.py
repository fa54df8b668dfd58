"""Conversion between an end's world point and its offset from an anchor.

Local mode stores the negated inverse-transformed point, so applying the
frame's forward transform to the negated offset reproduces the point under
any rotation and non-uniform scale of the frame::

    offset = -F.inverse_transform_point(P)
    P      =  F.transform_point(-offset)

World mode stores ``P - F.position``; later rotation or scaling of the
frame does not re-project the offset, the tracked point just translates
with the frame origin.
"""

from __future__ import annotations

import logging

import numpy as np

from stretchlink.core.math_utils import Vec3, as_vec3
from stretchlink.tether.anchor import AnchorFrame, AnchorSource, Bound, OffsetMode

logger = logging.getLogger(__name__)


def local_offset_for(frame: AnchorFrame, world_point: Vec3) -> Vec3:
    return -frame.inverse_transform_point(as_vec3(world_point))


def world_offset_for(frame: AnchorFrame, world_point: Vec3) -> Vec3:
    return as_vec3(world_point) - frame.get_world_position()


def offset_for(frame: AnchorFrame, mode: OffsetMode, world_point: Vec3) -> Vec3:
    """Offset that makes ``frame`` resolve to ``world_point`` in ``mode``."""
    if mode is OffsetMode.LOCAL:
        return local_offset_for(frame, world_point)
    return world_offset_for(frame, world_point)


def resolve_world_target(anchor: AnchorSource, fallback: Vec3) -> Vec3:
    """World point an end should occupy this tick.

    Unbound ends return a copy of ``fallback`` (their sticky point).
    """
    if not isinstance(anchor, Bound):
        return as_vec3(fallback)
    frame = anchor.frame
    if anchor.mode is OffsetMode.LOCAL:
        return frame.transform_point(-anchor.local_offset)
    return frame.get_world_position() + anchor.world_offset


def derive_offset(anchor: Bound, world_point: Vec3, zero_inactive: bool = False) -> Bound:
    """Return ``anchor`` with its active offset re-derived from ``world_point``.

    The inactive mode's offset is kept unless ``zero_inactive`` is set.
    A frame that cannot be inverted (a zero scale axis) leaves ``anchor``
    unchanged.
    """
    try:
        offset = offset_for(anchor.frame, anchor.mode, world_point)
    except np.linalg.LinAlgError:
        logger.warning("Frame %r is not invertible; keeping its previous offset", anchor.frame)
        return anchor
    return anchor.with_offset(offset, zero_inactive=zero_inactive)
