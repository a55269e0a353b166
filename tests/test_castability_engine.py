"""Tests for lands-only and accelerated castability."""

from __future__ import annotations

import pytest

from services.castability_engine import (
    CastabilityEngine,
    compute_accelerated_castability,
    compute_castability_by_turn,
    compute_castability_table,
    find_accelerated_turn,
    online_mana,
    producer_online_probability,
)
from utils.mana_types import (
    AccelContext,
    DeckManaProfile,
    ManaCost,
    ManaProducerDef,
    ProducerInDeck,
    ProducerType,
)
from utils.math_utils import at_least_one_copy, hypergeometric_at_least

GOLDFISH = AccelContext()


@pytest.fixture
def engine() -> CastabilityEngine:
    return CastabilityEngine()


# ---------------------------------------------------------------------------
# Lands only
# ---------------------------------------------------------------------------


def test_single_pip_on_turn_one(engine):
    deck = DeckManaProfile(deck_size=60, total_lands=24, land_color_sources={"R": 14})
    result = engine.castability_by_turn(deck, ManaCost.parse("{R}"), 1, GOLDFISH)
    assert result.p1 == pytest.approx(0.861, abs=2e-3)
    assert result.p2 == pytest.approx(result.p1 * hypergeometric_at_least(60, 24, 7, 1))


def test_colorless_spell_has_certain_colors(engine, green_deck):
    result = engine.castability_by_turn(green_deck, ManaCost.parse("{3}"), 3, GOLDFISH)
    assert result.p1 == 1.0
    assert result.p2 == pytest.approx(hypergeometric_at_least(60, 24, 9, 3))


def test_too_few_land_drops_zeroes_p2_but_keeps_p1(engine, green_deck):
    result = engine.castability_by_turn(green_deck, ManaCost.parse("{3}{G}"), 2, GOLDFISH)
    assert result.p2 == 0.0
    assert result.p1 > 0.0


def test_missing_color_is_uncastable(engine, green_deck):
    result = engine.castability_by_turn(green_deck, ManaCost.parse("{1}{U}"), 5, GOLDFISH)
    assert result.p1 == 0.0
    assert result.p2 == 0.0


def test_base_castability_never_drops_over_turns(engine, green_deck):
    spell = ManaCost.parse("{1}{G}{G}")
    previous = 0.0
    for turn in range(1, 10):
        current = engine.castability_by_turn(green_deck, spell, turn, GOLDFISH).p2
        assert current >= previous
        previous = current


def test_draw_sees_more_than_play(engine, green_deck):
    spell = ManaCost.parse("{G}{G}")
    on_play = engine.castability_by_turn(green_deck, spell, 2, AccelContext(play_draw="play"))
    on_draw = engine.castability_by_turn(green_deck, spell, 2, AccelContext(play_draw="draw"))
    assert on_draw.p1 > on_play.p1


def test_bonus_mana_from_lands_lowers_land_requirement(engine):
    tomb_deck = DeckManaProfile(deck_size=60, total_lands=24, bonus_mana_from_lands=4)
    plain_deck = DeckManaProfile(deck_size=60, total_lands=24)
    spell = ManaCost.parse("{3}")
    assert engine.castability_by_turn(plain_deck, spell, 1, GOLDFISH).p2 == 0.0
    assert engine.castability_by_turn(tomb_deck, spell, 1, GOLDFISH).p2 > 0.0


def test_bonus_colored_mana_covers_pips(engine):
    deck = DeckManaProfile(deck_size=60, total_lands=24, bonus_colored_mana={"G": 1})
    assert engine.castability_by_turn(deck, ManaCost.parse("{G}"), 1, GOLDFISH).p1 == 1.0


def test_deck_beyond_table_raises():
    engine = CastabilityEngine(max_population=100)
    deck = DeckManaProfile(deck_size=150, total_lands=60, land_color_sources={"R": 20})
    with pytest.raises(ValueError):
        engine.castability_by_turn(deck, ManaCost.parse("{R}"), 1, GOLDFISH)


def test_module_helpers_size_the_table_for_the_deck():
    deck = DeckManaProfile(deck_size=250, total_lands=100, land_color_sources={"R": 60})
    result = compute_castability_by_turn(deck, ManaCost.parse("{1}{R}"), 3, GOLDFISH)
    assert 0.0 < result.p2 <= result.p1 <= 1.0


# ---------------------------------------------------------------------------
# Producer online estimate
# ---------------------------------------------------------------------------


def test_summoning_sick_dork_is_not_online_on_turn_two(engine, green_deck, elf_package):
    context = AccelContext(removal_rate=0.25)
    assert engine.producer_online_probability(green_deck, elf_package[0], 2, context) == 0.0


def test_dork_online_probability_on_turn_three(engine, green_deck, elf_package):
    context = AccelContext(removal_rate=0.25)
    elves = elf_package[0]
    cast_on_turn_one = engine.castability_by_turn(green_deck, ManaCost.parse("{G}"), 1, context)
    expected = at_least_one_copy(60, 4, 7) * cast_on_turn_one.p2 * 0.75**2
    assert engine.producer_online_probability(green_deck, elves, 3, context) == pytest.approx(
        expected
    )


def test_removal_lowers_dork_online_probability(engine, green_deck, elf_package):
    safe = engine.producer_online_probability(green_deck, elf_package[0], 4, GOLDFISH)
    hostile = engine.producer_online_probability(
        green_deck, elf_package[0], 4, AccelContext(removal_rate=0.4)
    )
    assert 0.0 < hostile < safe


def test_rock_survival_uses_base_then_context_default(engine, green_deck):
    sturdy = ManaProducerDef(name="Rock", cast_cost_generic=1, survival_base=1.0)
    fragile = ManaProducerDef(name="Rock", cast_cost_generic=1, survival_base=0.5)
    unrated = ManaProducerDef(name="Rock", cast_cost_generic=1)
    context = AccelContext(default_rock_survival=0.9)

    def online(definition):
        return engine.producer_online_probability(
            green_deck, ProducerInDeck(definition, 4), 3, context
        )

    assert online(fragile) == pytest.approx(online(sturdy) * 0.5)
    assert online(unrated) == pytest.approx(online(sturdy) * 0.9)


def test_zero_copies_never_online(engine, green_deck, sol_ring):
    producer = ProducerInDeck(definition=sol_ring, copies=0)
    assert engine.producer_online_probability(green_deck, producer, 5, GOLDFISH) == 0.0


def test_module_level_online_probability(green_deck, sol_ring):
    producer = ProducerInDeck(definition=sol_ring, copies=1)
    assert 0.0 < producer_online_probability(green_deck, producer, 3, GOLDFISH) < 1.0


# ---------------------------------------------------------------------------
# Accelerated castability
# ---------------------------------------------------------------------------


def test_no_producers_matches_base(engine, green_deck):
    spell = ManaCost.parse("{2}{G}")
    base = engine.castability_by_turn(green_deck, spell, 3, GOLDFISH)
    assert engine.accelerated_castability_at_turn(green_deck, spell, 3, [], GOLDFISH) == base


def test_elves_improve_three_drop_on_turn_three(engine, green_deck, elf_package):
    context = AccelContext(removal_rate=0.25)
    spell = ManaCost.parse("{2}{G}")
    base = engine.castability_by_turn(green_deck, spell, 3, context)
    accelerated = engine.accelerated_castability_at_turn(
        green_deck, spell, 3, elf_package, context
    )
    assert accelerated.p2 > base.p2
    assert accelerated.p1 >= base.p1


def test_free_mana_enables_a_turn_early(engine, green_deck, lotus_petal):
    spell = ManaCost.parse("{2}{G}")
    petals = [ProducerInDeck(definition=lotus_petal, copies=4)]
    base = engine.castability_by_turn(green_deck, spell, 2, GOLDFISH)
    accelerated = engine.accelerated_castability_at_turn(green_deck, spell, 2, petals, GOLDFISH)
    assert base.p2 == 0.0
    assert accelerated.p2 > 0.0


def test_colorless_rocks_do_not_fix_missing_colors(engine, sol_ring):
    deck = DeckManaProfile(deck_size=60, total_lands=24, land_color_sources={"G": 24})
    mind_stone = ManaProducerDef(name="Mind Stone", cast_cost_generic=2, produces={"C"})
    producers = [ProducerInDeck(sol_ring, 1), ProducerInDeck(mind_stone, 4)]
    spell = ManaCost.parse("{1}{U}")
    base = engine.castability_by_turn(deck, spell, 4, GOLDFISH)
    accelerated = engine.accelerated_castability_at_turn(deck, spell, 4, producers, GOLDFISH)
    assert base.p2 == 0.0
    assert accelerated.p1 == 0.0
    assert accelerated.p2 == 0.0


def test_two_mana_rock_cannot_help_on_turn_one(engine, green_deck):
    signet = ManaProducerDef(name="Arcane Signet", cast_cost_generic=2, produces_any=True)
    spell = ManaCost.parse("{1}{G}")
    result = engine.accelerated_castability_at_turn(
        green_deck, spell, 1, [ProducerInDeck(signet, 4)], GOLDFISH
    )
    assert result.p2 == 0.0


def test_acceleration_never_lowers_castability(engine, green_deck, elf_package, sol_ring, lotus_petal):
    producers = elf_package + [ProducerInDeck(sol_ring, 1), ProducerInDeck(lotus_petal, 2)]
    context = AccelContext(removal_rate=0.35)
    for text in ("{G}", "{1}{G}", "{2}{G}{G}", "{4}", "{3}{U}"):
        spell = ManaCost.parse(text)
        for turn in range(1, 8):
            base = engine.castability_by_turn(green_deck, spell, turn, context)
            accelerated = engine.accelerated_castability_at_turn(
                green_deck, spell, turn, producers, context
            )
            assert accelerated.p2 >= base.p2
            assert 0.0 <= accelerated.p2 <= accelerated.p1 + 1e-12
            assert accelerated.p1 <= 1.0


def test_max_online_zero_is_lands_only(engine, green_deck, elf_package):
    spell = ManaCost.parse("{2}{G}")
    base = engine.castability_by_turn(green_deck, spell, 3, GOLDFISH)
    result = engine.accelerated_castability_at_turn(
        green_deck, spell, 3, elf_package, GOLDFISH, max_online=0
    )
    assert result == base


def test_producer_pair_covers_two_missing_colors(engine):
    deck = DeckManaProfile(deck_size=60, total_lands=24, land_color_sources={"G": 24})
    birds = ManaProducerDef(
        name="Birds of Paradise",
        producer_type=ProducerType.DORK,
        cast_cost_colors={"G": 1},
        delay=1,
        is_creature=True,
        produces_any=True,
    )
    shadow = ManaProducerDef(
        name="Elves of Deep Shadow",
        producer_type=ProducerType.DORK,
        cast_cost_colors={"G": 1},
        delay=1,
        is_creature=True,
        produces={"B"},
    )
    spell = ManaCost.parse("{U}{B}")

    pair = engine._castability_with_online(deck, spell, 4, GOLDFISH, (shadow, birds))
    assert pair.p1 == 1.0
    assert pair.p2 == 1.0
    assert engine._castability_with_online(deck, spell, 4, GOLDFISH, (birds,)).p1 == 0.0
    assert engine._castability_with_online(deck, spell, 4, GOLDFISH, (shadow,)).p1 == 0.0

    base = engine.castability_by_turn(deck, spell, 4, GOLDFISH)
    accelerated = engine.accelerated_castability_at_turn(
        deck, spell, 4, [ProducerInDeck(birds, 4), ProducerInDeck(shadow, 4)], GOLDFISH
    )
    assert base.p1 == 0.0
    assert accelerated.p1 > 0.0
    assert accelerated.p2 == pytest.approx(accelerated.p1)


def test_candidates_are_capped(engine, green_deck):
    producers = [
        ProducerInDeck(ManaProducerDef(name=f"Rock {i}", cast_cost_generic=1, produces={"C"}), 1)
        for i in range(25)
    ]
    candidates = engine._rank_candidates(green_deck, producers, 4, GOLDFISH)
    assert len(candidates) == 18


def test_certain_producer_keeps_weights_finite(engine):
    deck = DeckManaProfile(deck_size=10, total_lands=2, land_color_sources={"G": 2})
    crypt = ManaProducerDef(name="Mana Crypt", produces_amount=2, produces={"C"}, survival_base=1.0)
    result = engine.accelerated_castability_at_turn(
        deck, ManaCost.parse("{3}"), 2, [ProducerInDeck(crypt, 8)], GOLDFISH
    )
    assert 0.0 <= result.p2 <= 1.0


# ---------------------------------------------------------------------------
# Enhancers
# ---------------------------------------------------------------------------


def test_online_mana_with_enhancer(llanowar_elves, sol_ring):
    cub = ManaProducerDef(
        name="Badgermole Cub",
        producer_type=ProducerType.ENHANCER,
        produces_amount=0,
        enhancer_bonus=1,
        enhancer_bonus_colors={"G"},
    )
    extra, bonus_sources = online_mana([llanowar_elves, cub])
    assert extra == 2
    assert bonus_sources == {"G": 1}

    extra, _ = online_mana([sol_ring, cub])
    assert extra == 2


def test_online_mana_without_enhancer(llanowar_elves, sol_ring):
    extra, bonus_sources = online_mana([llanowar_elves, sol_ring])
    assert extra == 3
    assert bonus_sources == {}


# ---------------------------------------------------------------------------
# Turn search and summaries
# ---------------------------------------------------------------------------


def test_find_accelerated_turn_with_free_mana(engine, green_deck, lotus_petal):
    petals = [ProducerInDeck(definition=lotus_petal, copies=4)]
    spell = ManaCost.parse("{2}{G}")
    assert engine.find_accelerated_turn(green_deck, spell, petals, GOLDFISH) == 2


def test_find_accelerated_turn_without_producers(green_deck):
    assert find_accelerated_turn(green_deck, ManaCost.parse("{2}{G}"), [], GOLDFISH) is None


def test_find_accelerated_turn_for_one_drop(engine, green_deck, lotus_petal):
    petals = [ProducerInDeck(definition=lotus_petal, copies=4)]
    assert engine.find_accelerated_turn(green_deck, ManaCost.parse("{G}"), petals, GOLDFISH) is None


def test_key_accelerators_skip_useless_producers(engine, green_deck, elf_package, sol_ring):
    taxed = ManaProducerDef(name="Taxed Rock", cast_cost_generic=2, activation_tax=1)
    producers = elf_package + [
        ProducerInDeck(sol_ring, 1),
        ProducerInDeck(taxed, 4),
        ProducerInDeck(ManaProducerDef(name="Missing Rock", cast_cost_generic=1), 0),
    ]
    names = engine.key_accelerators(green_deck, producers, 3, GOLDFISH)
    assert set(names) == {"Llanowar Elves", "Sol Ring"}


def test_key_accelerators_limit(engine, green_deck):
    producers = [
        ProducerInDeck(ManaProducerDef(name=f"Rock {i}", cast_cost_generic=1), 1 + i)
        for i in range(5)
    ]
    names = engine.key_accelerators(green_deck, producers, 4, GOLDFISH)
    assert names == ("Rock 4", "Rock 3", "Rock 2")


def test_analyze_at_natural_turn(green_deck, elf_package):
    context = AccelContext(removal_rate=0.25)
    spell = ManaCost.parse("{2}{G}")
    result = compute_accelerated_castability(green_deck, spell, elf_package, context)

    base = CastabilityEngine().castability_by_turn(green_deck, spell, 3, context)
    assert result.base == base
    assert result.acceleration_impact == pytest.approx(result.with_acceleration.p2 - base.p2)
    assert result.acceleration_impact > 0.0
    assert result.key_accelerators == ("Llanowar Elves",)


def test_castability_table(green_deck, elf_package):
    rows = compute_castability_table(
        green_deck, ManaCost.parse("{2}{G}"), elf_package, GOLDFISH, max_turn=5
    )
    assert [row.turn for row in rows] == [1, 2, 3, 4, 5]
    for row in rows:
        assert row.with_acceleration.p2 >= row.base.p2
    assert rows[0].base.p2 == 0.0
