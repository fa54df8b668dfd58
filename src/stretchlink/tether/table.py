"""Per-end tether bookkeeping for one stretched segment.

The table owns, for ends 0 and 1: the anchor source (with its offsets), the
margin, and the last resolved target point, which doubles as the sticky
fallback once an end is untethered.  It drives a segment engine through
explicit lifecycle hooks::

    table.on_start()   # once, after the scene is placed
    table.on_tick()    # every frame, after anchor world matrices are current

Every per-end operation ignores indices other than 0 and 1.
"""

from __future__ import annotations

import logging
from typing import Generic, Optional, TypeVar

import numpy as np

from stretchlink.constants import END_INDICES
from stretchlink.core.events import EventBus, EventType
from stretchlink.core.math_utils import Vec3, as_vec3
from stretchlink.segment.stretch_segment import SegmentEngine
from stretchlink.tether.anchor import (
    UNBOUND, AnchorFrame, AnchorSource, AnchorTarget, Bound, OffsetMode, is_bound,
)
from stretchlink.tether.config import TetherConfig
from stretchlink.tether.correspondence import Correspondence, resolve_correspondence
from stretchlink.tether.offsets import derive_offset, resolve_world_target

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EndPair(Generic[T]):
    """Exactly two slots, indexed by end."""

    __slots__ = ("first", "second")

    def __init__(self, first: T, second: T) -> None:
        self.first = first
        self.second = second

    def __getitem__(self, end: int) -> T:
        if end == 0:
            return self.first
        if end == 1:
            return self.second
        raise IndexError(end)

    def __setitem__(self, end: int, value: T) -> None:
        if end == 0:
            self.first = value
        elif end == 1:
            self.second = value
        else:
            raise IndexError(end)

    def __iter__(self):
        yield self.first
        yield self.second

    def __len__(self) -> int:
        return 2

    def swap(self) -> None:
        self.first, self.second = self.second, self.first


class TetherTable:
    """Tethers both ends of a segment engine to anchor frames."""

    def __init__(
        self,
        engine: SegmentEngine,
        config: Optional[TetherConfig] = None,
        events: Optional[EventBus] = None,
    ) -> None:
        self.engine = engine
        self.config = config or TetherConfig()
        self._events = events

        self._anchors: EndPair[AnchorSource] = EndPair(UNBOUND, UNBOUND)
        margin = self.config.default_margin
        self._margins: EndPair[float] = EndPair(margin, margin)
        p0, p1 = engine.get_endpoints()
        self._targets: EndPair[Vec3] = EndPair(as_vec3(p0), as_vec3(p1))

        self._invalid_index_calls = 0
        for end in END_INDICES:
            engine.set_margin(end, margin)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def anchor(self, end: int) -> Optional[AnchorSource]:
        if not self._check_end(end, "anchor"):
            return None
        return self._anchors[end]

    def is_tethered(self, end: int) -> bool:
        return self._check_end(end, "is_tethered") and is_bound(self._anchors[end])

    def margin(self, end: int) -> Optional[float]:
        if not self._check_end(end, "margin"):
            return None
        return self._margins[end]

    def target_point(self, end: int) -> Optional[Vec3]:
        """Last resolved target point (the sticky fallback for unbound ends)."""
        if not self._check_end(end, "target_point"):
            return None
        return self._targets[end].copy()

    @property
    def anchor_count(self) -> int:
        return sum(1 for a in self._anchors if is_bound(a))

    # ------------------------------------------------------------------
    # Offset resolution
    # ------------------------------------------------------------------

    def resolve_world_target(self, end: int) -> Optional[Vec3]:
        """Where ``end`` should be this tick. Has no side effects."""
        if not self._check_end(end, "resolve_world_target"):
            return None
        return resolve_world_target(self._anchors[end], self._targets[end])

    def derive_offset_from_world_point(self, end: int, world_point) -> None:
        """Store the active-mode offset that makes ``end`` resolve to ``world_point``.

        Unbound ends have nothing to store and are left alone.
        """
        if not self._check_end(end, "derive_offset_from_world_point"):
            return
        anchor = self._anchors[end]
        if not is_bound(anchor):
            return
        self._anchors[end] = derive_offset(
            anchor, world_point, zero_inactive=self.config.zero_inactive_offset,
        )

    def set_offset_mode(self, end: int, mode: OffsetMode) -> None:
        """Switch which stored offset is active, without re-deriving it."""
        if not self._check_end(end, "set_offset_mode"):
            return
        anchor = self._anchors[end]
        if is_bound(anchor):
            self._anchors[end] = anchor.with_mode(OffsetMode.parse(mode))

    def set_margin(self, end: int, margin: float) -> None:
        """Set an end's margin; negative values clamp to 0."""
        if not self._check_end(end, "set_margin"):
            return
        self._margins[end] = max(0.0, float(margin))
        self.engine.set_margin(end, self._margins[end])

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def tether_end_to_frame(
        self,
        end: int,
        frame: Optional[AnchorFrame],
        offset=None,
        mode: Optional[OffsetMode] = None,
    ) -> None:
        """Tether ``end`` to ``frame`` with a caller-supplied offset.

        No derivation happens; a missing offset means the frame origin.
        A ``None`` frame untethers the end.
        """
        if not self._check_end(end, "tether_end_to_frame"):
            return
        if frame is None:
            self.untether(end)
            return
        mode = OffsetMode.parse(mode) if mode is not None else self._default_mode(frame)
        self._bind(end, Bound.from_frame(frame, mode, offset))

    def tether_end_to_frame_auto(
        self,
        end: int,
        frame: Optional[AnchorFrame],
        mode: Optional[OffsetMode] = None,
    ) -> None:
        """Tether ``end`` to ``frame``, keeping the end where it currently is."""
        if not self._check_end(end, "tether_end_to_frame_auto"):
            return
        if frame is None:
            self.untether(end)
            return
        mode = OffsetMode.parse(mode) if mode is not None else self._default_mode(frame)
        self._bind(end, Bound.from_frame(frame, mode))
        self.refresh_offset(end)

    def tether_end_to_target(self, end: int, target: AnchorTarget) -> None:
        """Tether ``end`` to an AnchorTarget, using its offsets if it has any."""
        if not self._check_end(end, "tether_end_to_target"):
            return
        self._bind(end, Bound.from_target(target))
        if not target.has_offsets:
            self.refresh_offset(end)

    def refresh_offset(self, end: int) -> None:
        """Re-derive one end's offset from its current segment end point."""
        if not self._check_end(end, "refresh_offset"):
            return
        if not is_bound(self._anchors[end]):
            return
        point = self.engine.get_endpoints()[end]
        self.derive_offset_from_world_point(end, point)
        logger.debug("Refreshed offset for end %d from %s", end, point)

    def untether(self, end: Optional[int] = None) -> None:
        """Release one end (or both); it stays at its last resolved point."""
        if end is None:
            for e in END_INDICES:
                self.untether(e)
            return
        if not self._check_end(end, "untether"):
            return
        if not is_bound(self._anchors[end]):
            return
        self._anchors[end] = UNBOUND
        logger.debug("Untethered end %d at %s", end, self._targets[end])
        self._publish(EventType.END_UNTETHERED, end=end)

    def tether_end_to_world_point(self, end: int, point) -> None:
        """Pin ``end`` to a fixed world point; any frame tether is dropped."""
        if not self._check_end(end, "tether_end_to_world_point"):
            return
        self.untether(end)
        self._targets[end] = as_vec3(point)
        self.engine.set_fixed_world_point(end, self._targets[end])

    def swap_ends(self) -> None:
        """Exchange anchors, offsets and margins between the ends.

        Resolved target points stay where they are.
        """
        self._anchors.swap()
        self._margins.swap()
        for end in END_INDICES:
            self.engine.set_margin(end, self._margins[end])
        logger.debug("Swapped tether ends")
        self._publish(EventType.ENDS_SWAPPED)

    def swap_targets(self) -> None:
        """Reverse the segment: end points, target points and tethers all swap."""
        self.engine.swap_endpoints()
        self._targets.swap()
        self.swap_ends()

    def refresh_offsets(self) -> Correspondence:
        """Re-pair end points with anchors and re-derive every bound offset."""
        frames = tuple(a.frame if is_bound(a) else None for a in self._anchors)
        corr = resolve_correspondence(self.engine.get_endpoints(), frames)
        if corr.anchor_count == 0:
            return corr

        if corr.swaps_segment:
            self.engine.swap_endpoints()
            self._targets.swap()

        for end in END_INDICES:
            if is_bound(self._anchors[end]):
                self.derive_offset_from_world_point(end, corr.points[end])
                self._apply_anchor_margin(end)

        logger.debug(
            "Refreshed offsets: %d anchor(s), swapped=%s", corr.anchor_count, corr.swapped,
        )
        self._publish(
            EventType.OFFSETS_REFRESHED, anchor_count=corr.anchor_count, swapped=corr.swapped,
        )
        return corr

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def on_start(self) -> None:
        """Capture offsets from the segment's initial placement."""
        self.refresh_offsets()

    def on_tick(self) -> tuple[Vec3, Vec3]:
        """Resolve both ends, then hand the targets to the engine."""
        resolved = [resolve_world_target(self._anchors[e], self._targets[e]) for e in END_INDICES]
        for end in END_INDICES:
            self._targets[end] = resolved[end]
            self.engine.set_target_point(end, resolved[end])
            self.engine.set_margin(end, self._margins[end])
        self.engine.update()
        return resolved[0].copy(), resolved[1].copy()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _bind(self, end: int, anchor: Bound) -> None:
        self._anchors[end] = anchor
        self._apply_anchor_margin(end)
        logger.debug("Tethered end %d to %r (%s)", end, anchor.frame, anchor.mode.value)
        self._publish(EventType.END_TETHERED, end=end, mode=anchor.mode)

    def _apply_anchor_margin(self, end: int) -> None:
        margin = self._anchors[end].default_margin
        if margin is not None:
            self._margins[end] = max(0.0, float(margin))
            self.engine.set_margin(end, self._margins[end])

    def _default_mode(self, frame: AnchorFrame) -> OffsetMode:
        return getattr(frame, "offset_mode", self.config.default_offset_mode)

    def _check_end(self, end, op: str) -> bool:
        if (isinstance(end, (int, np.integer)) and not isinstance(end, bool)
                and end in END_INDICES):
            return True
        self._invalid_index_calls += 1
        logger.debug("%s: ignoring end index %r", op, end)
        if self._invalid_index_calls == self.config.invalid_index_warn_threshold:
            logger.warning(
                "%d calls with an end index other than 0 or 1 were ignored",
                self._invalid_index_calls,
            )
        return False

    def _publish(self, event_type: EventType, **data) -> None:
        if self._events is not None:
            self._events.publish(event_type, **data)
