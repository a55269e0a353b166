"""
Accelerated castability engine.

Estimates the probability of casting a spell by a given turn from lands alone
and with mana accelerators (dorks, rocks, rituals) in the deck. Rather than
simulating games, the number of accelerators online by the target turn is
approximated with three disjoint buckets:

- none online (the lands-only case)
- exactly one online
- two or more online, evaluated as "exactly two"

Each bucket is weighted as if accelerators came online independently, and
every scenario inside a bucket recomputes castability with the extra mana and
color fixing of its online producers. The work is bounded by the number of
accelerator pairs, which keeps recomputation interactive.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from loguru import logger

from utils.constants.engine import (
    DEFAULT_MIN_PROBABILITY,
    DEFAULT_TABLE_MAX_TURN,
    DEFAULT_TABLE_SIZE,
    KEY_ACCELERATOR_COUNT,
    MAX_CANDIDATES,
)
from utils.mana_types import (
    AccelContext,
    AcceleratedCastabilityResult,
    CastabilityResult,
    DeckManaProfile,
    ManaCost,
    ManaProducerDef,
    ProducerInDeck,
    TurnCastability,
)
from utils.math_utils import Hypergeometric
from utils.turns import cards_seen_by_turn

# Keeps the 1 / (1 - p) scenario weights finite for producers that are certain.
_MAX_ONLINE_PROBABILITY = 1.0 - 1e-9


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


@dataclass(frozen=True)
class _Candidate:
    producer: ProducerInDeck
    p_online: float

    @property
    def impact(self) -> float:
        return self.p_online * self.producer.definition.net_mana_per_turn


def online_mana(online: Sequence[ManaProducerDef]) -> tuple[int, dict[str, int]]:
    """
    Extra mana and extra color sources provided by a set of online producers.

    Enhancers make no mana on their own; each one adds its bonus for every
    online producer of a type it enhances, and that bonus also counts as a
    source of the enhancer's bonus colors.
    """
    producers = [definition for definition in online if not definition.is_enhancer]
    extra_mana = sum(definition.net_mana_per_turn for definition in producers)
    bonus_sources: dict[str, int] = {}

    for enhancer in (definition for definition in online if definition.is_enhancer):
        if enhancer.enhancer_bonus <= 0 or not enhancer.enhancer_bonus_colors:
            continue
        boosted = sum(
            1 for definition in producers if definition.producer_type in enhancer.enhances_types
        )
        extra_mana += enhancer.enhancer_bonus * boosted
        for color in enhancer.enhancer_bonus_colors:
            bonus_sources[color] = bonus_sources.get(color, 0) + boosted

    return extra_mana, bonus_sources


class CastabilityEngine:
    """Closed-form castability calculator that owns one hypergeometric table."""

    def __init__(
        self,
        max_population: int = DEFAULT_TABLE_SIZE,
        hypergeometric: Hypergeometric | None = None,
    ) -> None:
        self.hypergeometric = hypergeometric or Hypergeometric(max_population)

    @classmethod
    def for_deck(cls, deck: DeckManaProfile) -> CastabilityEngine:
        """Engine whose table is large enough for ``deck``."""
        return cls(max(DEFAULT_TABLE_SIZE, deck.deck_size + 20))

    # ============= Lands-only castability =============

    def castability_by_turn(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        turn: int,
        context: AccelContext,
    ) -> CastabilityResult:
        """
        Lands-only probability of casting ``spell`` on ``turn``.

        p1 is the weakest color: for every colored pip, the chance of having
        drawn that many sources of the color. p2 additionally requires enough
        lands for the spell's mana value; when that is more lands than land
        drops available by ``turn``, p2 is 0.
        """
        return self._castability_with_online(deck, spell, turn, context, ())

    # ============= Producer-online estimator =============

    def producer_online_probability(
        self,
        deck: DeckManaProfile,
        producer: ProducerInDeck,
        turn: int,
        context: AccelContext,
    ) -> float:
        """
        Probability that ``producer`` is drawn, cast and still around on ``turn``.

        The producer must be cast by ``turn - delay - 1``. The estimate is the
        product of drawing a copy by then, being able to cast it then, and
        surviving the turns in between (creatures face ``removal_rate`` each
        turn, other permanents use a fixed survival).
        """
        definition = producer.definition
        if producer.copies <= 0:
            return 0.0

        latest_cast_turn = turn - definition.delay - 1
        if latest_cast_turn < 1:
            return 0.0

        seen = self._cards_seen(deck, latest_cast_turn, context)
        p_draw = self.hypergeometric.at_least_one_copy(deck.deck_size, producer.copies, seen)
        if p_draw <= 0.0:
            return 0.0

        p_castable = self.castability_by_turn(
            deck, definition.cast_cost, latest_cast_turn, context
        ).p2

        exposure = max(0, turn - latest_cast_turn)
        if definition.is_creature:
            p_survive = (1.0 - context.removal_rate) ** exposure
        elif definition.survival_base is not None:
            p_survive = definition.survival_base
        else:
            p_survive = context.default_rock_survival

        return _clamp(p_draw * p_castable * p_survive)

    # ============= Disjoint-scenario combiner =============

    def accelerated_castability_at_turn(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        turn: int,
        producers: Sequence[ProducerInDeck],
        context: AccelContext,
        max_online: int = 2,
    ) -> CastabilityResult:
        """
        Castability on ``turn`` with accelerators, from the 0/1/2-online buckets.

        The result is the lands-only castability plus, for every singleton and
        pair scenario, its bucket weight times its improvement over lands only.
        Mass of a bucket that has no evaluable scenario stays on the lands-only
        result, so acceleration never lowers castability.
        """
        base = self.castability_by_turn(deck, spell, turn, context)
        if max_online <= 0:
            return base

        candidates = self._rank_candidates(deck, producers, turn, context)
        if not candidates:
            return base

        probs = [min(candidate.p_online, _MAX_ONLINE_PROBABILITY) for candidate in candidates]
        definitions = [candidate.producer.definition for candidate in candidates]

        p_none = 1.0
        for p in probs:
            p_none *= 1.0 - p
        p_none = _clamp(p_none)

        single_weights = [p * p_none / (1.0 - p) for p in probs]
        p_one_total = _clamp(sum(single_weights))
        p_two_total = _clamp(1.0 - p_none - p_one_total) if max_online >= 2 else 0.0

        gain_p1 = 0.0
        gain_p2 = 0.0

        single_sum = sum(single_weights)
        if p_one_total > 0.0 and single_sum > 0.0:
            for definition, weight in zip(definitions, single_weights):
                if weight <= 0.0:
                    continue
                result = self._castability_with_online(deck, spell, turn, context, (definition,))
                share = p_one_total * weight / single_sum
                gain_p1 += share * (result.p1 - base.p1)
                gain_p2 += share * (result.p2 - base.p2)

        if p_two_total > 0.0 and len(candidates) >= 2:
            pair_weights: list[tuple[int, int, float]] = []
            for i in range(len(probs)):
                p_i = probs[i]
                for j in range(i + 1, len(probs)):
                    p_j = probs[j]
                    weight = p_i * p_j * p_none / ((1.0 - p_i) * (1.0 - p_j))
                    if weight > 0.0:
                        pair_weights.append((i, j, weight))

            pair_sum = sum(weight for _, _, weight in pair_weights)
            if pair_sum > 0.0:
                for i, j, weight in pair_weights:
                    result = self._castability_with_online(
                        deck, spell, turn, context, (definitions[i], definitions[j])
                    )
                    share = p_two_total * weight / pair_sum
                    gain_p1 += share * (result.p1 - base.p1)
                    gain_p2 += share * (result.p2 - base.p2)

        return CastabilityResult(p1=_clamp(base.p1 + gain_p1), p2=_clamp(base.p2 + gain_p2))

    # ============= Turn search and summaries =============

    def find_accelerated_turn(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        producers: Sequence[ProducerInDeck],
        context: AccelContext,
        min_probability: float = DEFAULT_MIN_PROBABILITY,
    ) -> int | None:
        """Earliest turn before the spell's mana value where casting reaches ``min_probability``."""
        for turn in range(1, spell.mana_value):
            result = self.accelerated_castability_at_turn(deck, spell, turn, producers, context)
            if result.p2 >= min_probability:
                logger.debug(f"Acceleration makes MV{spell.mana_value} plausible on turn {turn}")
                return turn
        return None

    def key_accelerators(
        self,
        deck: DeckManaProfile,
        producers: Sequence[ProducerInDeck],
        turn: int,
        context: AccelContext,
        limit: int = KEY_ACCELERATOR_COUNT,
    ) -> tuple[str, ...]:
        """Names of the producers with the largest expected mana on ``turn``."""
        scored: list[tuple[float, str]] = []
        for producer in producers:
            p_online = self.producer_online_probability(deck, producer, turn, context)
            score = p_online * producer.definition.net_mana_per_turn
            if score > 0.0:
                scored.append((score, producer.name))
        scored.sort(key=lambda item: item[0], reverse=True)
        return tuple(name for _, name in scored[:limit])

    def analyze(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        producers: Sequence[ProducerInDeck],
        context: AccelContext,
        min_probability: float = DEFAULT_MIN_PROBABILITY,
    ) -> AcceleratedCastabilityResult:
        """Full comparison at the spell's natural turn (its mana value)."""
        natural_turn = max(1, spell.mana_value)
        base = self.castability_by_turn(deck, spell, natural_turn, context)
        with_acceleration = self.accelerated_castability_at_turn(
            deck, spell, natural_turn, producers, context
        )
        return AcceleratedCastabilityResult(
            base=base,
            with_acceleration=with_acceleration,
            acceleration_impact=with_acceleration.p2 - base.p2,
            accelerated_turn=self.find_accelerated_turn(
                deck, spell, producers, context, min_probability
            ),
            key_accelerators=self.key_accelerators(deck, producers, natural_turn, context),
        )

    def castability_table(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        producers: Sequence[ProducerInDeck],
        context: AccelContext,
        max_turn: int = DEFAULT_TABLE_MAX_TURN,
    ) -> list[TurnCastability]:
        return [
            TurnCastability(
                turn=turn,
                base=self.castability_by_turn(deck, spell, turn, context),
                with_acceleration=self.accelerated_castability_at_turn(
                    deck, spell, turn, producers, context
                ),
            )
            for turn in range(1, max_turn + 1)
        ]

    # ============= Internals =============

    def _cards_seen(self, deck: DeckManaProfile, turn: int, context: AccelContext) -> int:
        return min(cards_seen_by_turn(turn, context.play_draw), max(0, deck.deck_size))

    def _rank_candidates(
        self,
        deck: DeckManaProfile,
        producers: Sequence[ProducerInDeck],
        turn: int,
        context: AccelContext,
    ) -> list[_Candidate]:
        candidates = []
        for producer in producers:
            if producer.copies <= 0:
                continue
            p_online = self.producer_online_probability(deck, producer, turn, context)
            if p_online > 0.0:
                candidates.append(_Candidate(producer=producer, p_online=p_online))

        candidates.sort(key=lambda candidate: candidate.impact, reverse=True)
        if len(candidates) > MAX_CANDIDATES:
            logger.debug(
                f"Keeping {MAX_CANDIDATES} of {len(candidates)} accelerators for turn {turn}"
            )
            candidates = candidates[:MAX_CANDIDATES]
        return candidates

    def _castability_with_online(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        turn: int,
        context: AccelContext,
        online: Sequence[ManaProducerDef],
    ) -> CastabilityResult:
        extra_mana, bonus_sources = online_mana(online)
        seen = self._cards_seen(deck, turn, context)
        mana_producers = [definition for definition in online if not definition.is_enhancer]

        p1 = self._best_color_coverage(deck, spell, seen, mana_producers, bonus_sources)

        lands_needed = max(0, spell.mana_value - extra_mana - deck.bonus_mana_from_lands // 2)
        if lands_needed > turn:
            return CastabilityResult(p1=p1, p2=0.0)

        p_lands = self.hypergeometric.at_least(deck.deck_size, deck.total_lands, seen, lands_needed)
        return CastabilityResult(p1=p1, p2=_clamp(p1 * p_lands))

    def _best_color_coverage(
        self,
        deck: DeckManaProfile,
        spell: ManaCost,
        seen: int,
        producers: Sequence[ManaProducerDef],
        bonus_sources: Mapping[str, int],
    ) -> float:
        """
        Best p1 over the ways online producers can pay for pips.

        Each producer pays at most one pip per turn, and scenarios hold at most
        two producers, so the options are enumerated directly: each producer
        either pays nothing or pays one needed color it can make.
        """
        needed_colors = spell.needed_colors()
        if not needed_colors:
            return 1.0

        remaining = {
            color: max(
                0,
                spell.pips[color]
                - deck.bonus_colored_mana.get(color, 0)
                - bonus_sources.get(color, 0),
            )
            for color in needed_colors
        }

        first_options: list[str | None] = [None]
        second_options: list[str | None] = [None]
        if len(producers) >= 1:
            first_options.extend(producers[0].color_options(needed_colors))
        if len(producers) >= 2:
            second_options.extend(producers[1].color_options(needed_colors))

        best = 0.0
        for first in first_options:
            for second in second_options:
                best = max(best, self._color_probability(deck, seen, remaining, first, second))
                if best >= 1.0:
                    return 1.0
        return best

    def _color_probability(
        self,
        deck: DeckManaProfile,
        seen: int,
        remaining: Mapping[str, int],
        first: str | None,
        second: str | None,
    ) -> float:
        needs = dict(remaining)
        for color in (first, second):
            if color is not None and needs[color] > 0:
                needs[color] -= 1

        probability = 1.0
        for color, need in needs.items():
            if need <= 0:
                continue
            probability = min(
                probability,
                self.hypergeometric.at_least(deck.deck_size, deck.sources_for(color), seen, need),
            )
            if probability == 0.0:
                break
        return probability


def compute_castability_by_turn(
    deck: DeckManaProfile,
    spell_cost: ManaCost,
    turn: int,
    context: AccelContext,
) -> CastabilityResult:
    """Lands-only castability of ``spell_cost`` on ``turn``."""
    return CastabilityEngine.for_deck(deck).castability_by_turn(deck, spell_cost, turn, context)


def producer_online_probability(
    deck: DeckManaProfile,
    producer: ProducerInDeck,
    turn: int,
    context: AccelContext,
) -> float:
    return CastabilityEngine.for_deck(deck).producer_online_probability(
        deck, producer, turn, context
    )


def compute_accelerated_castability(
    deck: DeckManaProfile,
    spell_cost: ManaCost,
    producers: Sequence[ProducerInDeck],
    context: AccelContext,
) -> AcceleratedCastabilityResult:
    """Compare lands-only and accelerated castability at the spell's natural turn."""
    return CastabilityEngine.for_deck(deck).analyze(deck, spell_cost, producers, context)


def find_accelerated_turn(
    deck: DeckManaProfile,
    spell_cost: ManaCost,
    producers: Sequence[ProducerInDeck],
    context: AccelContext,
    min_probability: float = DEFAULT_MIN_PROBABILITY,
) -> int | None:
    return CastabilityEngine.for_deck(deck).find_accelerated_turn(
        deck, spell_cost, producers, context, min_probability
    )


def compute_castability_table(
    deck: DeckManaProfile,
    spell_cost: ManaCost,
    producers: Sequence[ProducerInDeck],
    context: AccelContext,
    max_turn: int = DEFAULT_TABLE_MAX_TURN,
) -> list[TurnCastability]:
    """Lands-only and accelerated castability for turns 1..``max_turn``."""
    return CastabilityEngine.for_deck(deck).castability_table(
        deck, spell_cost, producers, context, max_turn
    )
