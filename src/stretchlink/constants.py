"""Shared constants and paths for stretchlink."""

from pathlib import Path

# Package paths
PACKAGE_ROOT = Path(__file__).parent
CONFIG_DIR = PACKAGE_ROOT / "config"
TETHER_CONFIG_NAME = "tether.json"

# Segment ends
END_INDICES = (0, 1)

# A pre-placed segment node spans local z in [-0.5, 0.5] at unit scale
SEGMENT_HALF_LENGTH = 0.5

# Tether defaults
DEFAULT_MARGIN = 0.0
DEFAULT_OFFSET_MODE = "local"
INVALID_INDEX_WARN_THRESHOLD = 3

# Frame timing
MAX_DELTA_TIME = 0.1  # seconds; clamp for tab-away / breakpoints

# Below this length a span has no usable direction
DEGENERATE_LENGTH = 1e-10
