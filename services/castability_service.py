"""
Castability Service - Business logic for spell castability analyses.

This module wires together:
- The accelerated castability engine
- The mana producer catalogue (deck list -> accelerators)
- Persisted analysis settings (format, play/draw, thresholds)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from loguru import logger

from services.castability_engine import CastabilityEngine
from services.mana_producer_catalog import ManaProducerCatalog
from services.settings_service import CastabilitySettings, SettingsService
from utils import constants
from utils.mana_types import (
    AccelContext,
    AcceleratedCastabilityResult,
    CastabilityResult,
    DeckManaProfile,
    ManaCost,
    ProducerInDeck,
    TurnCastability,
    validate_deck_profile,
)
from utils.turns import PlayDraw

DeckList = Mapping[str, float] | Iterable[tuple[str, float]]


class CastabilityService:
    """Service for castability analyses of a deck's spells."""

    def __init__(
        self,
        engine: CastabilityEngine | None = None,
        catalog: ManaProducerCatalog | None = None,
        settings_service: SettingsService | None = None,
    ):
        """
        Initialize the castability service.

        Args:
            engine: CastabilityEngine instance (owns the hypergeometric table)
            catalog: ManaProducerCatalog used to recognise accelerators in deck lists
            settings_service: SettingsService providing the default assumptions
        """
        self.engine = engine or CastabilityEngine()
        self.catalog = catalog or ManaProducerCatalog()
        self.settings_service = settings_service or SettingsService()

    # ============= Context and Inputs =============

    def settings(self) -> CastabilitySettings:
        return self.settings_service.load()

    @staticmethod
    def available_formats() -> list[tuple[str, str]]:
        """Format presets as (key, title) pairs in display order."""
        return [(key, constants.FORMAT_TITLES[key]) for key in constants.FORMAT_OPTIONS]

    def default_context(self, play_draw: PlayDraw | str | None = None) -> AccelContext:
        """Build the analysis context from saved settings."""
        return self.settings().to_context(play_draw)

    def resolve_producers(
        self,
        deck_list: DeckList | None = None,
        producers: Sequence[ProducerInDeck] | None = None,
    ) -> list[ProducerInDeck]:
        """
        Combine explicit producers with accelerators recognised in a deck list.

        Explicit producers win when both name the same card.
        """
        resolved = list(producers or [])
        if deck_list is None:
            return resolved

        known = {producer.name.lower() for producer in resolved}
        for producer in self.catalog.producers_from_deck_list(deck_list):
            if producer.name.lower() not in known:
                resolved.append(producer)
        return resolved

    # ============= Analyses =============

    def castability_by_turn(
        self,
        deck: DeckManaProfile,
        spell: ManaCost | str,
        turn: int,
        context: AccelContext | None = None,
    ) -> CastabilityResult:
        """Lands-only castability of a spell on a given turn."""
        self._warn_on_invalid(deck)
        return self._engine_for(deck).castability_by_turn(
            deck, self._as_cost(spell), turn, context or self.default_context()
        )

    def analyze_spell(
        self,
        deck: DeckManaProfile,
        spell: ManaCost | str,
        *,
        deck_list: DeckList | None = None,
        producers: Sequence[ProducerInDeck] | None = None,
        context: AccelContext | None = None,
    ) -> AcceleratedCastabilityResult:
        """
        Compare lands-only and accelerated castability for a spell.

        Args:
            deck: Land profile of the deck
            spell: Spell cost, as a ManaCost or text such as "{2}{G}"
            deck_list: Aggregated card name -> quantity pairs used to find accelerators
            producers: Accelerators supplied directly
            context: Assumptions; defaults to the saved settings

        Returns:
            AcceleratedCastabilityResult at the spell's natural turn
        """
        settings = self.settings()
        context = context or settings.to_context()
        spell_cost = self._as_cost(spell)
        self._warn_on_invalid(deck)

        accelerators = self._accelerators(settings, deck_list, producers)

        result = self._engine_for(deck).analyze(
            deck, spell_cost, accelerators, context, settings.min_probability
        )
        logger.debug(
            f"MV{spell_cost.mana_value} spell: base p2={result.base.p2:.3f}, "
            f"accelerated p2={result.with_acceleration.p2:.3f} "
            f"({len(accelerators)} accelerators)"
        )
        return result

    def castability_table(
        self,
        deck: DeckManaProfile,
        spell: ManaCost | str,
        *,
        deck_list: DeckList | None = None,
        producers: Sequence[ProducerInDeck] | None = None,
        context: AccelContext | None = None,
        max_turn: int | None = None,
    ) -> list[TurnCastability]:
        """Turn-by-turn castability, lands only and with accelerators."""
        settings = self.settings()
        context = context or settings.to_context()
        self._warn_on_invalid(deck)

        accelerators = self._accelerators(settings, deck_list, producers)

        return self._engine_for(deck).castability_table(
            deck,
            self._as_cost(spell),
            accelerators,
            context,
            max_turn or settings.max_turn,
        )

    @staticmethod
    def describe(result: AcceleratedCastabilityResult) -> str:
        """One-line human summary of an accelerated castability result."""
        summary = (
            f"Lands only {result.base.p2:.1%}, with acceleration "
            f"{result.with_acceleration.p2:.1%} ({result.acceleration_impact:+.1%})"
        )
        if result.accelerated_turn is not None:
            summary += f"; plausible from turn {result.accelerated_turn}"
        if result.key_accelerators:
            summary += f"; key accelerators: {', '.join(result.key_accelerators)}"
        return summary

    # ============= Helpers =============

    def _accelerators(
        self,
        settings: CastabilitySettings,
        deck_list: DeckList | None,
        producers: Sequence[ProducerInDeck] | None,
    ) -> list[ProducerInDeck]:
        if settings.include_acceleration:
            return self.resolve_producers(deck_list, producers)
        if producers:
            logger.debug(
                f"Acceleration disabled in settings; ignoring {len(producers)} supplied producers"
            )
        return []

    def _engine_for(self, deck: DeckManaProfile) -> CastabilityEngine:
        if deck.deck_size > self.engine.hypergeometric.max_population:
            logger.debug(f"Building a larger probability table for a {deck.deck_size}-card deck")
            return CastabilityEngine.for_deck(deck)
        return self.engine

    @staticmethod
    def _as_cost(spell: ManaCost | str) -> ManaCost:
        if isinstance(spell, ManaCost):
            return spell
        return ManaCost.parse(spell)

    @staticmethod
    def _warn_on_invalid(deck: DeckManaProfile) -> None:
        for problem in validate_deck_profile(deck):
            logger.warning(f"Inconsistent deck profile: {problem}")


__all__ = ["CastabilityService"]
