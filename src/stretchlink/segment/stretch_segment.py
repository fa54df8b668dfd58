"""Stretch a scene node along its local Z axis between two world points.

The node is modelled as a unit-length object spanning local z in
[-0.5, 0.5].  Each end has a target point and a margin; the drawn end
point is the target pulled back toward the other end by the margin.
Only the node's Z scale changes, its X/Y thickness is left as placed.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import numpy as np

from stretchlink.constants import DEGENERATE_LENGTH, END_INDICES, SEGMENT_HALF_LENGTH
from stretchlink.core.math_utils import (
    Vec3, as_vec3, quat_from_unit_vectors, vec3,
)
from stretchlink.core.scene_graph import SceneNode

logger = logging.getLogger(__name__)

_LOCAL_AXIS = vec3(0.0, 0.0, 1.0)


class SegmentEngine(Protocol):
    """What a tether table needs from the thing it stretches."""

    def get_endpoints(self) -> tuple[Vec3, Vec3]: ...

    def set_target_point(self, end: int, point: Vec3) -> None: ...

    def set_margin(self, end: int, margin: float) -> None: ...

    def swap_endpoints(self) -> None: ...

    def set_fixed_world_point(self, end: int, point: Vec3) -> None: ...

    def update(self) -> None: ...


class StretchSegment:
    """Reference segment engine driving a SceneNode's transform.

    The node is positioned in world space; give it no parent, or a parent
    whose world matrix is identity.
    """

    def __init__(self, endpoints: tuple[Vec3, Vec3], node: Optional[SceneNode] = None) -> None:
        self.node = node if node is not None else SceneNode(name="segment")
        self._endpoints = np.array([as_vec3(endpoints[0]), as_vec3(endpoints[1])])
        self._targets = self._endpoints.copy()
        self._margins = [0.0, 0.0]
        self._apply_transform()

    @classmethod
    def from_node(cls, node: SceneNode) -> StretchSegment:
        """Read the initial end points from a pre-placed node."""
        node.update_world_matrix(force=True)
        p0 = node.transform_point(vec3(0.0, 0.0, -SEGMENT_HALF_LENGTH))
        p1 = node.transform_point(vec3(0.0, 0.0, SEGMENT_HALF_LENGTH))
        return cls((p0, p1), node=node)

    # ------------------------------------------------------------------
    # Engine interface
    # ------------------------------------------------------------------

    def get_endpoints(self) -> tuple[Vec3, Vec3]:
        return self._endpoints[0].copy(), self._endpoints[1].copy()

    def get_target_points(self) -> tuple[Vec3, Vec3]:
        return self._targets[0].copy(), self._targets[1].copy()

    def margin(self, end: int) -> Optional[float]:
        if end not in END_INDICES:
            return None
        return self._margins[end]

    def set_target_point(self, end: int, point: Vec3) -> None:
        if end in END_INDICES:
            self._targets[end] = as_vec3(point)

    def set_margin(self, end: int, margin: float) -> None:
        if end in END_INDICES:
            self._margins[end] = max(0.0, float(margin))

    def set_fixed_world_point(self, end: int, point: Vec3) -> None:
        """Force an end's target and reshape immediately."""
        if end not in END_INDICES:
            return
        self._targets[end] = as_vec3(point)
        self.update()

    def swap_endpoints(self) -> None:
        """Exchange end points and target points; margins stay per index."""
        self._endpoints = self._endpoints[::-1].copy()
        self._targets = self._targets[::-1].copy()
        self._apply_transform()

    def update(self) -> None:
        """Recompute end points from targets and margins, then reshape the node."""
        a, b = self._targets
        span = b - a
        length = float(np.linalg.norm(span))
        m0, m1 = self._margins

        if length < DEGENERATE_LENGTH:
            self._endpoints = self._targets.copy()
        elif m0 + m1 >= length:
            # Margins swallow the span: collapse to the margin-weighted point
            t = m0 / (m0 + m1)
            p = a + span * t
            self._endpoints = np.array([p, p])
        else:
            direction = span / length
            self._endpoints = np.array([a + direction * m0, b - direction * m1])

        self._apply_transform()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self._endpoints[1] - self._endpoints[0]))

    def _apply_transform(self) -> None:
        p0, p1 = self._endpoints
        mid = (p0 + p1) * 0.5
        span = p1 - p0
        length = float(np.linalg.norm(span))

        self.node.set_position(*mid)
        if length >= DEGENERATE_LENGTH:
            # Keep the previous orientation when the span has no direction
            self.node.set_quaternion(quat_from_unit_vectors(_LOCAL_AXIS, span / length))
        sx, sy = self.node.scale[0], self.node.scale[1]
        self.node.set_scale(sx, sy, length / (2.0 * SEGMENT_HALF_LENGTH))
