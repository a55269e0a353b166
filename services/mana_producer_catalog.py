"""Catalogue of well-known mana producers and deck-list matching."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from utils import constants
from utils.mana_types import ManaProducerDef, ProducerInDeck

PRODUCER_SEED_VERSION = 1


def _load_seed_payload(
    seed_path: Path,
    expected_version: int = PRODUCER_SEED_VERSION,
) -> dict[str, Any] | None:
    """Load the bundled producer seed if available and current."""
    if not seed_path.exists():
        logger.warning(f"Mana producer seed not found at {seed_path}")
        return None
    try:
        with seed_path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(f"Failed to read mana producer seed: {exc}")
        return None
    if not isinstance(payload, dict) or payload.get("version") != expected_version:
        logger.warning("Ignoring mana producer seed due to version mismatch")
        return None
    return payload


class ManaProducerCatalog:
    """Known mana producers, keyed case-insensitively by card name."""

    def __init__(self, seed_path: Path | None = None, *, load_seed: bool = True) -> None:
        self.seed_path = seed_path or constants.MANA_PRODUCER_SEED_FILE
        self._producers: dict[str, ManaProducerDef] = {}
        self._seed_keys: set[str] = set()
        self._custom_keys: set[str] = set()
        if load_seed:
            self._load_seed()

    def _load_seed(self) -> None:
        payload = _load_seed_payload(self.seed_path)
        if payload is None:
            return
        entries = payload.get("producers") or {}
        if not isinstance(entries, Mapping):
            logger.warning("Ignoring mana producer seed: 'producers' is not an object")
            return
        for name, raw in entries.items():
            if not isinstance(raw, Mapping):
                logger.warning(f"Skipping mana producer {name!r}: entry is not an object")
                continue
            try:
                definition = ManaProducerDef.from_dict(name, raw)
            except (TypeError, ValueError) as exc:
                logger.warning(f"Skipping mana producer {name!r}: {exc}")
                continue
            key = name.lower()
            self._producers[key] = definition
            self._seed_keys.add(key)
        logger.info(f"Loaded {len(self._seed_keys)} mana producers from {self.seed_path.name}")

    def __len__(self) -> int:
        return len(self._producers)

    def __contains__(self, card_name: object) -> bool:
        return isinstance(card_name, str) and self.is_producer(card_name)

    def get(self, card_name: str) -> ManaProducerDef | None:
        return self._producers.get(card_name.strip().lower())

    def is_producer(self, card_name: str) -> bool:
        return card_name.strip().lower() in self._producers

    def register(self, definition: ManaProducerDef) -> None:
        """Add or replace a producer definition (seed entries can be overridden)."""
        key = definition.name.strip().lower()
        self._producers[key] = definition
        self._custom_keys.add(key)

    def clear_custom(self) -> None:
        """Drop registered definitions and restore the seed entries they replaced."""
        self._producers.clear()
        self._seed_keys.clear()
        self._custom_keys.clear()
        self._load_seed()

    def stats(self) -> dict[str, int]:
        custom = len(self._custom_keys)
        return {
            "total": len(self._producers),
            "from_seed": len(self._producers) - custom,
            "custom": custom,
        }

    def producers_from_deck_list(
        self,
        deck_list: Mapping[str, float] | Iterable[tuple[str, float]],
    ) -> list[ProducerInDeck]:
        """
        Match aggregated deck entries against the catalogue.

        Args:
            deck_list: Card name -> quantity mapping, or (name, quantity) pairs.
                Names prefixed with "Sideboard " are ignored.

        Returns:
            One ProducerInDeck per known producer, in first-seen order, with
            quantities summed across duplicate entries
        """
        entries = deck_list.items() if isinstance(deck_list, Mapping) else deck_list
        copies_by_key: dict[str, int] = {}
        order: list[str] = []

        for card_name, quantity in entries:
            if card_name.startswith("Sideboard "):
                continue
            definition = self.get(card_name)
            if definition is None:
                continue
            try:
                count = int(float(quantity))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring invalid quantity {quantity!r} for {card_name}")
                continue
            if count <= 0:
                continue
            key = card_name.strip().lower()
            if key not in copies_by_key:
                order.append(key)
            copies_by_key[key] = copies_by_key.get(key, 0) + count

        return [
            ProducerInDeck(definition=self._producers[key], copies=copies_by_key[key])
            for key in order
        ]


__all__ = ["ManaProducerCatalog", "PRODUCER_SEED_VERSION"]
