"""Value objects shared by the castability engine and its services."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from utils.constants.engine import COLORS, DEFAULT_ROCK_SURVIVAL
from utils.constants.formats import FORMAT_REMOVAL_RATES
from utils.turns import PlayDraw

_BRACED_SYMBOL_RE = re.compile(r"\{([^{}]+)\}")
_COMPACT_SYMBOL_RE = re.compile(r"(\d+)|([WUBRGCX])", re.IGNORECASE)


def freeze_counts(counts: Mapping[str, int] | None) -> Mapping[str, int]:
    """Normalize a color -> count mapping and wrap it read-only."""
    cleaned: dict[str, int] = {}
    for color, amount in (counts or {}).items():
        key = str(color).strip().upper()
        if key not in COLORS:
            raise ValueError(f"Unknown mana color: {color!r}")
        cleaned[key] = cleaned.get(key, 0) + int(amount)
    return MappingProxyType(cleaned)


def _freeze_colors(colors: Iterable[str] | None) -> frozenset[str]:
    frozen = frozenset(str(color).strip().upper() for color in (colors or ()))
    unknown = frozen.difference(COLORS)
    if unknown:
        raise ValueError(f"Unknown mana colors: {sorted(unknown)}")
    return frozen


@dataclass(frozen=True)
class ManaCost:
    """A spell cost: total mana value, generic part, and colored pips."""

    mana_value: int
    generic: int = 0
    pips: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pips", freeze_counts(self.pips))

    @classmethod
    def from_parts(cls, generic: int = 0, pips: Mapping[str, int] | None = None) -> ManaCost:
        frozen = freeze_counts(pips)
        return cls(mana_value=generic + sum(frozen.values()), generic=generic, pips=frozen)

    @classmethod
    def parse(cls, text: str) -> ManaCost:
        """
        Parse a mana cost such as ``{2}{G}{G}`` or the compact ``2GG``.

        Numbers add generic mana, ``W U B R G C`` add pips, ``X`` counts as zero.
        Hybrid and Phyrexian symbols (``{W/U}``, ``{G/P}``) count as one generic
        mana since either half can pay for them; twobrid symbols (``{2/W}``)
        count as their generic half.

        Raises:
            ValueError: If the text contains an unrecognised symbol
        """
        raw = (text or "").strip()
        if "{" in raw:
            symbols = _BRACED_SYMBOL_RE.findall(raw)
            leftover = _BRACED_SYMBOL_RE.sub("", raw).strip()
            if leftover:
                raise ValueError(f"Invalid mana cost: {text!r}")
        else:
            symbols = []
            position = 0
            for match in _COMPACT_SYMBOL_RE.finditer(raw):
                if raw[position : match.start()].strip():
                    raise ValueError(f"Invalid mana cost: {text!r}")
                symbols.append(match.group(0))
                position = match.end()
            if raw[position:].strip():
                raise ValueError(f"Invalid mana cost: {text!r}")

        generic = 0
        pips: dict[str, int] = {}
        for symbol in symbols:
            token = symbol.strip().upper()
            if token.isdigit():
                generic += int(token)
            elif token == "X":
                continue
            elif token in COLORS:
                pips[token] = pips.get(token, 0) + 1
            elif "/" in token:
                left = token.split("/", 1)[0]
                generic += int(left) if left.isdigit() else 1
            else:
                raise ValueError(f"Unknown mana symbol {{{symbol}}} in {text!r}")
        return cls.from_parts(generic, pips)

    @property
    def colored_pips(self) -> int:
        return sum(self.pips.values())

    def needed_colors(self) -> list[str]:
        """Colors with at least one pip, in WUBRGC order."""
        return [color for color in COLORS if self.pips.get(color, 0) > 0]


class ProducerType(str, Enum):
    """Kinds of non-land mana sources."""

    DORK = "DORK"
    ROCK = "ROCK"
    RITUAL = "RITUAL"
    ONE_SHOT = "ONE_SHOT"
    TREASURE = "TREASURE"
    CONDITIONAL = "CONDITIONAL"
    ENHANCER = "ENHANCER"

    @classmethod
    def coerce(cls, value: ProducerType | str) -> ProducerType:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown producer type: {value!r}") from None


@dataclass(frozen=True)
class ManaProducerDef:
    """Immutable definition of a mana accelerator (dork, rock, ritual...)."""

    name: str
    producer_type: ProducerType = ProducerType.ROCK
    cast_cost_generic: int = 0
    cast_cost_colors: Mapping[str, int] = field(default_factory=dict)
    delay: int = 0
    """Turns before it can produce mana (1 for summoning-sick creatures)."""
    is_creature: bool = False
    produces_amount: int = 1
    activation_tax: int = 0
    """Mana spent each turn to reuse it (Signets pay 1)."""
    produces: frozenset[str] = frozenset()
    produces_any: bool = False
    one_shot: bool = False
    survival_base: float | None = None
    enhancer_bonus: int = 0
    enhancer_bonus_colors: frozenset[str] = frozenset()
    enhances_types: tuple[ProducerType, ...] = (ProducerType.DORK,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "producer_type", ProducerType.coerce(self.producer_type))
        object.__setattr__(self, "cast_cost_colors", freeze_counts(self.cast_cost_colors))
        object.__setattr__(self, "produces", _freeze_colors(self.produces))
        object.__setattr__(self, "enhancer_bonus_colors", _freeze_colors(self.enhancer_bonus_colors))
        object.__setattr__(
            self,
            "enhances_types",
            tuple(ProducerType.coerce(kind) for kind in self.enhances_types),
        )

    @property
    def net_mana_per_turn(self) -> int:
        return max(0, self.produces_amount - self.activation_tax)

    @property
    def is_enhancer(self) -> bool:
        return self.producer_type is ProducerType.ENHANCER

    @property
    def cast_cost(self) -> ManaCost:
        return ManaCost.from_parts(self.cast_cost_generic, self.cast_cost_colors)

    def color_options(self, needed_colors: Iterable[str]) -> list[str]:
        """Needed colors this producer can pay for."""
        if self.produces_any:
            return list(needed_colors)
        return [color for color in needed_colors if color in self.produces]

    @classmethod
    def from_dict(cls, name: str, payload: Mapping[str, Any]) -> ManaProducerDef:
        """Build a definition from a catalogue entry (snake_case keys)."""
        survival = payload.get("survival_base")
        return cls(
            name=name,
            producer_type=payload.get("type", ProducerType.ROCK),
            cast_cost_generic=int(payload.get("cast_cost_generic", 0)),
            cast_cost_colors=payload.get("cast_cost_colors") or {},
            delay=int(payload.get("delay", 0)),
            is_creature=bool(payload.get("is_creature", False)),
            produces_amount=int(payload.get("produces_amount", 1)),
            activation_tax=int(payload.get("activation_tax", 0)),
            produces=payload.get("produces") or (),
            produces_any=bool(payload.get("produces_any", False)),
            one_shot=bool(payload.get("one_shot", False)),
            survival_base=None if survival is None else float(survival),
            enhancer_bonus=int(payload.get("enhancer_bonus", 0)),
            enhancer_bonus_colors=payload.get("enhancer_bonus_colors") or (),
            enhances_types=tuple(payload.get("enhances_types") or (ProducerType.DORK,)),
        )


@dataclass(frozen=True)
class ProducerInDeck:
    definition: ManaProducerDef
    copies: int

    @property
    def name(self) -> str:
        return self.definition.name


@dataclass(frozen=True)
class DeckManaProfile:
    """Land-side mana profile of a deck."""

    deck_size: int
    total_lands: int
    land_color_sources: Mapping[str, int] = field(default_factory=dict)
    bonus_mana_from_lands: int = 0
    """Extra mana beyond one per land (4x Ancient Tomb contributes 4)."""
    bonus_colored_mana: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "land_color_sources", freeze_counts(self.land_color_sources))
        object.__setattr__(self, "bonus_colored_mana", freeze_counts(self.bonus_colored_mana))

    def sources_for(self, color: str) -> int:
        return self.land_color_sources.get(color, 0)


def validate_deck_profile(deck: DeckManaProfile) -> list[str]:
    """Return human-readable problems with a deck profile (empty when consistent)."""
    problems: list[str] = []
    if deck.deck_size <= 0:
        problems.append(f"Deck size must be positive, got {deck.deck_size}")
    if deck.total_lands < 0:
        problems.append(f"Land count must be non-negative, got {deck.total_lands}")
    if deck.total_lands > deck.deck_size:
        problems.append(
            f"Land count ({deck.total_lands}) cannot exceed deck size ({deck.deck_size})"
        )
    for color, sources in deck.land_color_sources.items():
        if sources < 0:
            problems.append(f"{color} sources must be non-negative, got {sources}")
        elif sources > deck.total_lands:
            problems.append(
                f"{color} sources ({sources}) cannot exceed land count ({deck.total_lands})"
            )
    if deck.bonus_mana_from_lands < 0:
        problems.append(
            f"Bonus mana from lands must be non-negative, got {deck.bonus_mana_from_lands}"
        )
    return problems


@dataclass(frozen=True)
class AccelContext:
    """Global assumptions for an accelerated castability analysis."""

    play_draw: PlayDraw = PlayDraw.PLAY
    removal_rate: float = 0.0
    """Chance per exposed turn that a mana creature is removed."""
    default_rock_survival: float = DEFAULT_ROCK_SURVIVAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "play_draw", PlayDraw.coerce(self.play_draw))
        object.__setattr__(self, "removal_rate", min(1.0, max(0.0, float(self.removal_rate))))
        object.__setattr__(
            self,
            "default_rock_survival",
            min(1.0, max(0.0, float(self.default_rock_survival))),
        )

    @classmethod
    def for_format(
        cls,
        format_preset: str,
        play_draw: PlayDraw | str = PlayDraw.PLAY,
        default_rock_survival: float = DEFAULT_ROCK_SURVIVAL,
    ) -> AccelContext:
        key = format_preset.strip().lower()
        if key not in FORMAT_REMOVAL_RATES:
            raise ValueError(
                f"Unknown format preset {format_preset!r}. "
                f"Valid presets: {list(FORMAT_REMOVAL_RATES.keys())}"
            )
        return cls(
            play_draw=play_draw,
            removal_rate=FORMAT_REMOVAL_RATES[key],
            default_rock_survival=default_rock_survival,
        )


@dataclass(frozen=True)
class CastabilityResult:
    p1: float
    """Probability of having the colored sources."""
    p2: float
    """``p1`` weighted by the probability of having enough lands."""


@dataclass(frozen=True)
class AcceleratedCastabilityResult:
    base: CastabilityResult
    with_acceleration: CastabilityResult
    acceleration_impact: float
    accelerated_turn: int | None
    key_accelerators: tuple[str, ...] = ()


@dataclass(frozen=True)
class TurnCastability:
    turn: int
    base: CastabilityResult
    with_acceleration: CastabilityResult
