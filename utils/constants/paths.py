"""Filesystem paths for config and bundled resources."""

import sys
from pathlib import Path


def _default_base_dir() -> Path:
    """Return the writable base directory for config files."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent.parent


BASE_DATA_DIR = _default_base_dir()
CONFIG_DIR = BASE_DATA_DIR / "config"

RESOURCES_DIR = Path(__file__).resolve().parent.parent.parent / "services" / "resources"

CASTABILITY_SETTINGS_FILE = CONFIG_DIR / "castability_settings.json"
MANA_PRODUCER_SEED_FILE = RESOURCES_DIR / "mana_producers.json"
