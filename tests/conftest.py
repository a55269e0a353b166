from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from utils.mana_types import (  # noqa: E402
    DeckManaProfile,
    ManaProducerDef,
    ProducerInDeck,
    ProducerType,
)


@pytest.fixture
def green_deck() -> DeckManaProfile:
    """60 cards, 24 lands, 14 of them green."""
    return DeckManaProfile(deck_size=60, total_lands=24, land_color_sources={"G": 14})


@pytest.fixture
def llanowar_elves() -> ManaProducerDef:
    return ManaProducerDef(
        name="Llanowar Elves",
        producer_type=ProducerType.DORK,
        cast_cost_colors={"G": 1},
        delay=1,
        is_creature=True,
        produces={"G"},
    )


@pytest.fixture
def sol_ring() -> ManaProducerDef:
    return ManaProducerDef(
        name="Sol Ring",
        producer_type=ProducerType.ROCK,
        cast_cost_generic=1,
        produces_amount=2,
        produces={"C"},
        survival_base=0.99,
    )


@pytest.fixture
def lotus_petal() -> ManaProducerDef:
    return ManaProducerDef(
        name="Lotus Petal",
        producer_type=ProducerType.ONE_SHOT,
        produces_any=True,
        one_shot=True,
        survival_base=1.0,
    )


@pytest.fixture
def elf_package(llanowar_elves) -> list[ProducerInDeck]:
    return [ProducerInDeck(definition=llanowar_elves, copies=4)]


@pytest.fixture
def warnings_log():
    """Collect loguru WARNING messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="WARNING")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def debug_log():
    """Collect loguru DEBUG and above messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="DEBUG")
    yield messages
    logger.remove(handler_id)
