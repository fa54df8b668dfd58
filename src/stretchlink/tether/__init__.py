"""Tethering: bind the ends of a stretched segment to moving anchor frames."""

from stretchlink.tether.anchor import (
    UNBOUND, AnchorSource, AnchorTarget, Bound, OffsetMode, Unbound,
)
from stretchlink.tether.config import TetherConfig
from stretchlink.tether.correspondence import Correspondence, resolve_correspondence
from stretchlink.tether.table import EndPair, TetherTable

__all__ = [
    "UNBOUND",
    "AnchorSource",
    "AnchorTarget",
    "Bound",
    "Correspondence",
    "EndPair",
    "OffsetMode",
    "TetherConfig",
    "TetherTable",
    "Unbound",
    "resolve_correspondence",
]
