"""Tether settings, serializable to and from the JSON config file."""

from __future__ import annotations

from dataclasses import dataclass

from stretchlink.constants import (
    DEFAULT_MARGIN, DEFAULT_OFFSET_MODE, INVALID_INDEX_WARN_THRESHOLD,
)
from stretchlink.tether.anchor import OffsetMode


@dataclass
class TetherConfig:
    """Per-table tether policy.

    ``zero_inactive_offset`` selects the offset-retention policy: when False
    a derivation only rewrites the active mode's offset and the other one is
    kept for a later mode switch; when True the other one is zeroed.
    """

    default_offset_mode: OffsetMode = OffsetMode(DEFAULT_OFFSET_MODE)
    default_margin: float = DEFAULT_MARGIN
    zero_inactive_offset: bool = False
    invalid_index_warn_threshold: int = INVALID_INDEX_WARN_THRESHOLD

    def __post_init__(self):
        if self.default_margin < 0:
            raise ValueError(f"default_margin must be >= 0, got {self.default_margin}")
        if self.invalid_index_warn_threshold < 1:
            raise ValueError(
                "invalid_index_warn_threshold must be >= 1, "
                f"got {self.invalid_index_warn_threshold}"
            )

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "default_offset_mode": self.default_offset_mode.value,
            "default_margin": self.default_margin,
            "zero_inactive_offset": self.zero_inactive_offset,
            "invalid_index_warn_threshold": self.invalid_index_warn_threshold,
        }

    @classmethod
    def from_dict(cls, d: dict) -> TetherConfig:
        """Deserialize from a dictionary; unknown mode names raise ValueError."""
        mode = d.get("default_offset_mode", DEFAULT_OFFSET_MODE)
        return cls(
            default_offset_mode=OffsetMode.parse(mode),
            default_margin=float(d.get("default_margin", DEFAULT_MARGIN)),
            zero_inactive_offset=bool(d.get("zero_inactive_offset", False)),
            invalid_index_warn_threshold=int(
                d.get("invalid_index_warn_threshold", INVALID_INDEX_WARN_THRESHOLD)
            ),
        )
