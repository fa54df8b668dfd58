"""JSON config file loading utilities."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from stretchlink.constants import CONFIG_DIR, TETHER_CONFIG_NAME
from stretchlink.tether.config import TetherConfig

logger = logging.getLogger(__name__)


def load_json(path: Path) -> Any:
    """Load and return parsed JSON from a file."""
    with open(path) as f:
        return json.load(f)


def load_config(name: str) -> Any:
    """Load a config file from the packaged config/ directory."""
    return load_json(CONFIG_DIR / name)


def load_tether_config(path: Optional[Path] = None) -> TetherConfig:
    """Load tether settings, falling back to defaults when no file exists.

    Malformed values raise ``ValueError`` from ``TetherConfig.from_dict``.
    """
    path = Path(path) if path is not None else CONFIG_DIR / TETHER_CONFIG_NAME
    if not path.exists():
        logger.debug("No tether config at %s, using defaults", path)
        return TetherConfig()
    config = TetherConfig.from_dict(load_json(path))
    logger.debug("Loaded tether config from %s: %s", path, config)
    return config
