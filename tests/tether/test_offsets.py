"""Tests for offset derivation and world-target resolution."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from stretchlink.core.math_utils import quat_from_euler, vec3
from stretchlink.core.scene_graph import SceneNode
from stretchlink.tether.anchor import UNBOUND, AnchorTarget, Bound, OffsetMode
from stretchlink.tether.offsets import (
    derive_offset, local_offset_for, resolve_world_target, world_offset_for,
)


# ── Helpers ───────────────────────────────────────────────────────────

def _make_frame(position=(0.0, 0.0, 0.0), euler=(0.0, 0.0, 0.0), scale=(1.0, 1.0, 1.0)) -> SceneNode:
    node = SceneNode(name="frame")
    node.set_position(*position)
    node.set_quaternion(quat_from_euler(*euler))
    node.set_scale(*scale)
    node.update_world_matrix(force=True)
    return node


def _move(node: SceneNode, position=None, euler=None, scale=None) -> None:
    if position is not None:
        node.set_position(*position)
    if euler is not None:
        node.set_quaternion(quat_from_euler(*euler))
    if scale is not None:
        node.set_scale(*scale)
    node.update_world_matrix(force=True)


FRAMES = [
    dict(),
    dict(position=(3.0, -2.0, 7.5)),
    dict(euler=(0.4, 1.2, -2.2)),
    dict(position=(-1.0, 4.0, 0.5), euler=(2.9, -0.3, 0.8), scale=(0.5, 2.0, 3.5)),
    dict(position=(100.0, 0.0, -50.0), euler=(0.0, 3.1, 0.0), scale=(7.0, 0.1, 1.0)),
]
POINTS = [(0.0, 0.0, 0.0), (1.0, 2.0, 3.0), (-40.0, 0.25, 12.0)]


# ── Tests ─────────────────────────────────────────────────────────────

class TestLocalRoundTrip:
    """Local offsets reproduce the point under any rotation and scale."""

    @pytest.mark.parametrize("frame_kw", FRAMES)
    @pytest.mark.parametrize("point", POINTS)
    def test_round_trip(self, frame_kw, point):
        frame = _make_frame(**frame_kw)
        anchor = derive_offset(Bound.from_frame(frame, OffsetMode.LOCAL), point)
        resolved = resolve_world_target(anchor, vec3(99, 99, 99))
        np.testing.assert_allclose(resolved, point, atol=1e-5)

    def test_offset_is_negated_inverse_point(self):
        frame = _make_frame(position=(1.0, 0.0, 0.0), scale=(2.0, 2.0, 2.0))
        np.testing.assert_allclose(local_offset_for(frame, vec3(5, 0, 0)), [-2, 0, 0])

    def test_follows_frame_rotation(self):
        frame = _make_frame()
        anchor = derive_offset(Bound.from_frame(frame, OffsetMode.LOCAL), vec3(1, 0, 0))
        _move(frame, euler=(0.0, 0.0, np.pi / 2))
        np.testing.assert_allclose(resolve_world_target(anchor, vec3()), [0, 1, 0], atol=1e-10)


class TestWorldRoundTrip:
    """World offsets translate with the frame and ignore its rotation."""

    @pytest.mark.parametrize("frame_kw", FRAMES)
    @pytest.mark.parametrize("point", POINTS)
    def test_round_trip(self, frame_kw, point):
        frame = _make_frame(**frame_kw)
        anchor = derive_offset(Bound.from_frame(frame, OffsetMode.WORLD), point)
        np.testing.assert_allclose(resolve_world_target(anchor, vec3()), point, atol=1e-5)

    def test_offset_is_point_minus_position(self):
        frame = _make_frame(position=(1.0, 2.0, 3.0), euler=(0.5, 0.5, 0.5))
        np.testing.assert_allclose(world_offset_for(frame, vec3(4, 4, 4)), [3, 2, 1])

    def test_moving_frame_shifts_point_by_delta(self):
        frame = _make_frame(position=(1.0, 1.0, 1.0))
        anchor = derive_offset(Bound.from_frame(frame, OffsetMode.WORLD), vec3(2, 3, 4))
        delta = vec3(0.5, -7.0, 2.25)
        _move(frame, position=tuple(vec3(1, 1, 1) + delta), euler=(1.0, 0.2, 0.0), scale=(3, 3, 3))
        np.testing.assert_allclose(resolve_world_target(anchor, vec3()), vec3(2, 3, 4) + delta, atol=1e-12)


class TestUnboundAndPolicy:

    def test_unbound_returns_fallback_copy(self):
        fallback = vec3(1, 2, 3)
        resolved = resolve_world_target(UNBOUND, fallback)
        np.testing.assert_array_equal(resolved, fallback)
        resolved[0] = 50.0
        assert fallback[0] == 1.0

    def test_inactive_offset_retained_by_default(self):
        frame = _make_frame(position=(1.0, 0.0, 0.0))
        anchor = Bound(frame, OffsetMode.LOCAL, local_offset=vec3(), world_offset=vec3(9, 9, 9))
        derived = derive_offset(anchor, vec3(4, 0, 0))
        np.testing.assert_allclose(derived.world_offset, [9, 9, 9])
        np.testing.assert_allclose(derived.offset, [-3, 0, 0])

    def test_inactive_offset_zeroed_on_request(self):
        frame = _make_frame(position=(1.0, 0.0, 0.0))
        anchor = Bound(frame, OffsetMode.WORLD, local_offset=vec3(9, 9, 9))
        derived = derive_offset(anchor, vec3(4, 0, 0), zero_inactive=True)
        np.testing.assert_allclose(derived.local_offset, [0, 0, 0])
        np.testing.assert_allclose(derived.world_offset, [3, 0, 0])
        assert derived.mode is OffsetMode.WORLD

    def test_target_wrapper_resolves_like_its_frame(self):
        frame = _make_frame(position=(0.0, 5.0, 0.0), euler=(0.3, 0.0, 0.9), scale=(1.0, 2.0, 1.0))
        target = AnchorTarget(frame, default_margin=0.2)
        anchor = derive_offset(Bound.from_target(target), vec3(1, 1, 1))
        np.testing.assert_allclose(resolve_world_target(anchor, vec3()), [1, 1, 1], atol=1e-10)


class TestSingularFrame:
    """A frame flattened to zero scale on one axis cannot be inverted."""

    def test_local_derivation_keeps_previous_offset(self, caplog):
        frame = _make_frame(position=(1.0, 0.0, 0.0), scale=(1.0, 0.0, 1.0))
        anchor = Bound(frame, OffsetMode.LOCAL, local_offset=vec3(0, 0, -2))
        with caplog.at_level(logging.WARNING, logger="stretchlink.tether.offsets"):
            derived = derive_offset(anchor, vec3(4, 4, 4))
        assert derived is anchor
        np.testing.assert_allclose(derived.local_offset, [0, 0, -2])
        assert [r.levelno for r in caplog.records] == [logging.WARNING]

    def test_forward_resolution_still_works(self):
        frame = _make_frame(position=(1.0, 0.0, 0.0), scale=(1.0, 0.0, 1.0))
        anchor = Bound(frame, OffsetMode.LOCAL, local_offset=vec3(0, -3, -2))
        # The flattened Y axis drops the Y component
        np.testing.assert_allclose(resolve_world_target(anchor, vec3()), [1, 0, 2])

    def test_world_mode_is_unaffected(self):
        frame = _make_frame(position=(1.0, 0.0, 0.0), scale=(0.0, 0.0, 0.0))
        derived = derive_offset(Bound.from_frame(frame, OffsetMode.WORLD), vec3(4, 4, 4))
        np.testing.assert_allclose(derived.world_offset, [3, 4, 4])
