"""Shared constants for the castability engine and its services."""

from utils.constants.engine import (
    COLORS,
    DEFAULT_MIN_PROBABILITY,
    DEFAULT_ROCK_SURVIVAL,
    DEFAULT_TABLE_MAX_TURN,
    DEFAULT_TABLE_SIZE,
    KEY_ACCELERATOR_COUNT,
    MAX_CANDIDATES,
    MIN_TABLE_SIZE,
    STARTING_HAND_SIZE,
)
from utils.constants.formats import (
    DEFAULT_FORMAT,
    FORMAT_OPTIONS,
    FORMAT_REMOVAL_RATES,
    FORMAT_TITLES,
)
from utils.constants.paths import (
    BASE_DATA_DIR,
    CASTABILITY_SETTINGS_FILE,
    CONFIG_DIR,
    MANA_PRODUCER_SEED_FILE,
    RESOURCES_DIR,
)

__all__ = [
    "BASE_DATA_DIR",
    "CASTABILITY_SETTINGS_FILE",
    "COLORS",
    "CONFIG_DIR",
    "DEFAULT_FORMAT",
    "DEFAULT_MIN_PROBABILITY",
    "DEFAULT_ROCK_SURVIVAL",
    "DEFAULT_TABLE_MAX_TURN",
    "DEFAULT_TABLE_SIZE",
    "FORMAT_OPTIONS",
    "FORMAT_REMOVAL_RATES",
    "FORMAT_TITLES",
    "KEY_ACCELERATOR_COUNT",
    "MANA_PRODUCER_SEED_FILE",
    "MAX_CANDIDATES",
    "MIN_TABLE_SIZE",
    "RESOURCES_DIR",
    "STARTING_HAND_SIZE",
]
