"""What a segment end is tethered to.

An end is either ``UNBOUND`` (it holds its last world point) or ``Bound`` to
a live anchor frame.  A frame is anything exposing ``get_world_position()``,
``transform_point(p)`` and ``inverse_transform_point(p)`` -- a raw
:class:`~stretchlink.core.scene_graph.SceneNode`, or an
:class:`AnchorTarget` wrapping one with a default margin and pre-seeded
offsets.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Protocol, Union

import numpy as np

from stretchlink.core.math_utils import Vec3, as_vec3, distance, vec3


class OffsetMode(Enum):
    """How a stored offset is combined with the anchor frame."""
    LOCAL = "local"   # rotates and scales with the frame
    WORLD = "world"   # translates with the frame only

    @classmethod
    def parse(cls, value: Union[str, "OffsetMode"]) -> "OffsetMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown offset mode: {value!r}") from None


class AnchorFrame(Protocol):
    def get_world_position(self) -> Vec3: ...

    def transform_point(self, p: Vec3) -> Vec3: ...

    def inverse_transform_point(self, p: Vec3) -> Vec3: ...


def frame_distance(frame: AnchorFrame, point: Vec3) -> float:
    """Distance from a frame's origin to a world point."""
    measure = getattr(frame, "distance_to_world_point", None)
    if measure is not None:
        return measure(point)
    return distance(frame.get_world_position(), point)


class AnchorTarget:
    """A frame plus the binding hints a bare frame lacks.

    Both offsets can be stored at once through :meth:`set_offsets`; only
    the one selected by ``offset_mode`` is applied once bound.
    """

    def __init__(
        self,
        frame: AnchorFrame,
        default_margin: float = 0.0,
        offset_mode: OffsetMode = OffsetMode.LOCAL,
    ) -> None:
        self.frame = frame
        self.default_margin = float(default_margin)
        self.offset_mode = offset_mode
        self.local_offset: Optional[Vec3] = None
        self.world_offset: Optional[Vec3] = None

    def __repr__(self) -> str:
        return f"AnchorTarget({self.frame!r}, margin={self.default_margin})"

    @property
    def has_offsets(self) -> bool:
        return self.local_offset is not None or self.world_offset is not None

    def set_offsets(self, local_offset, world_offset) -> None:
        self.local_offset = None if local_offset is None else as_vec3(local_offset)
        self.world_offset = None if world_offset is None else as_vec3(world_offset)

    def distance_to_world_point(self, point: Vec3) -> float:
        return distance(self.frame.get_world_position(), point)

    # Frame interface, delegated

    def get_world_position(self) -> Vec3:
        return self.frame.get_world_position()

    def transform_point(self, p: Vec3) -> Vec3:
        return self.frame.transform_point(p)

    def inverse_transform_point(self, p: Vec3) -> Vec3:
        return self.frame.inverse_transform_point(p)


class Unbound:
    """No anchor: the end keeps its sticky fallback point."""

    _instance: Optional["Unbound"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNBOUND"


UNBOUND = Unbound()


@dataclass(frozen=True, eq=False)
class Bound:
    """An end tracking a live frame.

    Both offsets are stored; ``mode`` says which one is authoritative.
    """
    frame: AnchorFrame
    mode: OffsetMode = OffsetMode.LOCAL
    local_offset: Vec3 = field(default_factory=vec3)
    world_offset: Vec3 = field(default_factory=vec3)
    default_margin: Optional[float] = None

    @classmethod
    def from_frame(
        cls,
        frame: AnchorFrame,
        mode: OffsetMode = OffsetMode.LOCAL,
        offset=None,
    ) -> Bound:
        """Bind a frame with ``offset`` stored for ``mode`` (zero if omitted)."""
        offset = vec3() if offset is None else as_vec3(offset)
        margin = getattr(frame, "default_margin", None)
        if mode is OffsetMode.LOCAL:
            return cls(frame, mode, local_offset=offset, default_margin=margin)
        return cls(frame, mode, world_offset=offset, default_margin=margin)

    @classmethod
    def from_target(cls, target: AnchorTarget) -> Bound:
        """Bind an AnchorTarget, carrying over whatever offsets it holds."""
        return cls(
            frame=target,
            mode=target.offset_mode,
            local_offset=vec3() if target.local_offset is None else target.local_offset.copy(),
            world_offset=vec3() if target.world_offset is None else target.world_offset.copy(),
            default_margin=target.default_margin,
        )

    @property
    def offset(self) -> Vec3:
        """The active-mode offset."""
        if self.mode is OffsetMode.LOCAL:
            return self.local_offset
        return self.world_offset

    def with_offset(self, offset: Vec3, zero_inactive: bool = False) -> Bound:
        """Copy with the active offset replaced."""
        offset = as_vec3(offset)
        if self.mode is OffsetMode.LOCAL:
            world = vec3() if zero_inactive else self.world_offset
            return replace(self, local_offset=offset, world_offset=world)
        local = vec3() if zero_inactive else self.local_offset
        return replace(self, local_offset=local, world_offset=offset)

    def with_mode(self, mode: OffsetMode) -> Bound:
        """Switch the active mode without touching either stored offset."""
        return replace(self, mode=mode)

    def same_offsets(self, other: Bound, atol: float = 0.0) -> bool:
        return (
            self.mode is other.mode
            and np.allclose(self.local_offset, other.local_offset, rtol=0.0, atol=atol)
            and np.allclose(self.world_offset, other.world_offset, rtol=0.0, atol=atol)
        )


AnchorSource = Union[Unbound, Bound]


def is_bound(anchor: AnchorSource) -> bool:
    return isinstance(anchor, Bound)
