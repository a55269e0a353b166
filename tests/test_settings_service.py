"""Tests for persisted castability settings."""

from __future__ import annotations

import json

import pytest

from services.settings_service import CastabilitySettings, SettingsService
from utils.turns import PlayDraw


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "config" / "castability_settings.json"


def test_missing_file_returns_defaults(settings_path):
    settings = SettingsService(settings_path).load()
    assert settings == CastabilitySettings()
    assert settings.format_preset == "modern"
    assert settings.effective_removal_rate == 0.35


def test_save_then_load(settings_path):
    service = SettingsService(settings_path)
    saved = CastabilitySettings(
        format_preset="legacy",
        play_draw=PlayDraw.DRAW,
        removal_rate=0.1,
        min_probability=0.2,
        max_turn=9,
        include_acceleration=False,
    )
    service.save(saved)

    assert json.loads(settings_path.read_text(encoding="utf-8"))["play_draw"] == "DRAW"
    assert service.load() == saved


def test_corrupt_file_returns_defaults(settings_path, warnings_log):
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text("{oops", encoding="utf-8")
    assert SettingsService(settings_path).load() == CastabilitySettings()
    assert any("Failed to load castability settings" in message for message in warnings_log)


def test_non_object_file_returns_defaults(settings_path):
    settings_path.parent.mkdir(parents=True)
    settings_path.write_text("[1, 2, 3]", encoding="utf-8")
    assert SettingsService(settings_path).load() == CastabilitySettings()


def test_from_dict_repairs_bad_values(warnings_log):
    settings = SettingsService.from_dict(
        {
            "format_preset": "Vintage",
            "play_draw": "sideways",
            "removal_rate": 1.7,
            "default_rock_survival": "abc",
            "min_probability": -3,
            "max_turn": 99,
            "include_acceleration": "no",
        }
    )
    assert settings.format_preset == "modern"
    assert settings.play_draw is PlayDraw.PLAY
    assert settings.removal_rate == 1.0
    assert settings.default_rock_survival == CastabilitySettings().default_rock_survival
    assert settings.min_probability == 0.0
    assert settings.max_turn == 20
    assert settings.include_acceleration is False
    assert any("Unknown format preset" in message for message in warnings_log)


def test_from_dict_accepts_loose_types():
    settings = SettingsService.from_dict(
        {"format_preset": " cEDH ", "play_draw": False, "max_turn": "0", "include_acceleration": 1}
    )
    assert settings.format_preset == "cedh"
    assert settings.play_draw is PlayDraw.DRAW
    assert settings.max_turn == 1
    assert settings.include_acceleration is True


def test_removal_override_beats_format_preset():
    assert CastabilitySettings(format_preset="legacy").effective_removal_rate == 0.40
    assert CastabilitySettings(format_preset="legacy", removal_rate=0.1).effective_removal_rate == 0.1


def test_to_context():
    settings = CastabilitySettings(format_preset="standard", default_rock_survival=0.9)
    context = settings.to_context()
    assert context.play_draw is PlayDraw.PLAY
    assert context.removal_rate == 0.20
    assert context.default_rock_survival == 0.9
    assert settings.to_context("draw").play_draw is PlayDraw.DRAW
