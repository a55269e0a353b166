from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from utils import constants
from utils.atomic_io import atomic_write_json, read_json
from utils.mana_types import AccelContext
from utils.turns import PlayDraw

MAX_TABLE_TURN = 20


@dataclass(frozen=True)
class CastabilitySettings:
    """User-tunable assumptions for castability analyses."""

    format_preset: str = constants.DEFAULT_FORMAT
    play_draw: PlayDraw = PlayDraw.PLAY
    removal_rate: float | None = None
    """Overrides the format preset's removal rate when set."""
    default_rock_survival: float = constants.DEFAULT_ROCK_SURVIVAL
    min_probability: float = constants.DEFAULT_MIN_PROBABILITY
    max_turn: int = constants.DEFAULT_TABLE_MAX_TURN
    include_acceleration: bool = True

    @property
    def effective_removal_rate(self) -> float:
        if self.removal_rate is not None:
            return self.removal_rate
        return constants.FORMAT_REMOVAL_RATES.get(self.format_preset, 0.0)

    def to_context(self, play_draw: PlayDraw | str | None = None) -> AccelContext:
        return AccelContext(
            play_draw=self.play_draw if play_draw is None else play_draw,
            removal_rate=self.effective_removal_rate,
            default_rock_survival=self.default_rock_survival,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "format_preset": self.format_preset,
            "play_draw": self.play_draw.value,
            "removal_rate": self.removal_rate,
            "default_rock_survival": self.default_rock_survival,
            "min_probability": self.min_probability,
            "max_turn": self.max_turn,
            "include_acceleration": self.include_acceleration,
        }


class SettingsService:
    """Load and persist castability settings."""

    def __init__(self, settings_path: Path | None = None) -> None:
        self.settings_path = settings_path or constants.CASTABILITY_SETTINGS_FILE

    def load(self) -> CastabilitySettings:
        if not self.settings_path.exists():
            return CastabilitySettings()
        try:
            raw = read_json(self.settings_path)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Failed to load castability settings: {exc}")
            return CastabilitySettings()
        if not isinstance(raw, dict):
            logger.warning("Castability settings file is not a JSON object; using defaults")
            return CastabilitySettings()
        return self.from_dict(raw)

    def save(self, settings: CastabilitySettings) -> None:
        try:
            atomic_write_json(self.settings_path, settings.to_dict(), indent=2)
        except OSError as exc:
            logger.warning(f"Unable to persist castability settings: {exc}")

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CastabilitySettings:
        defaults = CastabilitySettings()

        format_preset = str(raw.get("format_preset", defaults.format_preset)).strip().lower()
        if format_preset not in constants.FORMAT_REMOVAL_RATES:
            logger.warning(f"Unknown format preset {format_preset!r}; using {defaults.format_preset}")
            format_preset = defaults.format_preset

        try:
            play_draw = PlayDraw.coerce(raw.get("play_draw", defaults.play_draw))
        except ValueError as exc:
            logger.warning(str(exc))
            play_draw = defaults.play_draw

        removal_rate = raw.get("removal_rate")
        if removal_rate is not None:
            removal_rate = cls.clamp_probability(removal_rate, default=None)

        return CastabilitySettings(
            format_preset=format_preset,
            play_draw=play_draw,
            removal_rate=removal_rate,
            default_rock_survival=cls.clamp_probability(
                raw.get("default_rock_survival"), default=defaults.default_rock_survival
            ),
            min_probability=cls.clamp_probability(
                raw.get("min_probability"), default=defaults.min_probability
            ),
            max_turn=cls.clamp_int(
                raw.get("max_turn"),
                default=defaults.max_turn,
                min_value=1,
                max_value=MAX_TABLE_TURN,
            ),
            include_acceleration=cls.coerce_bool(
                raw.get("include_acceleration", defaults.include_acceleration)
            ),
        )

    @staticmethod
    def coerce_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @staticmethod
    def clamp_probability(value: Any, *, default: float | None) -> float | None:
        try:
            probability = float(value)
        except (TypeError, ValueError):
            return default
        return max(0.0, min(probability, 1.0))

    @staticmethod
    def clamp_int(value: Any, *, default: int, min_value: int, max_value: int) -> int:
        try:
            number = int(float(value))
        except (TypeError, ValueError):
            number = default
        return max(min_value, min(number, max_value))


__all__ = ["CastabilitySettings", "SettingsService"]
