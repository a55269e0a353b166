"""Turn timeline helpers: how many cards a player has seen by a given turn."""

from __future__ import annotations

from enum import Enum

from utils.constants.engine import STARTING_HAND_SIZE


class PlayDraw(str, Enum):
    """Whether the player goes first (no draw on turn 1) or second."""

    PLAY = "PLAY"
    DRAW = "DRAW"

    @classmethod
    def coerce(cls, value: PlayDraw | str | bool) -> PlayDraw:
        """Accept enum members, "play"/"draw" strings, or an ``on_play`` boolean."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.PLAY if value else cls.DRAW
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized in ("PLAY", "ON_THE_PLAY", "OTP"):
                return cls.PLAY
            if normalized in ("DRAW", "ON_THE_DRAW", "OTD"):
                return cls.DRAW
        raise ValueError(f"Unknown play/draw value: {value!r}")


def cards_seen_by_turn(turn: int, play_draw: PlayDraw | str = PlayDraw.PLAY) -> int:
    """
    Number of cards seen by ``turn`` (opening hand plus draws).

    On the play there is no draw on turn 1, so turn 3 has seen 9 cards; on the
    draw the same turn has seen 10. Turns before the first return 0.
    """
    if turn <= 0:
        return 0
    if PlayDraw.coerce(play_draw) is PlayDraw.PLAY:
        return STARTING_HAND_SIZE + max(0, turn - 1)
    return STARTING_HAND_SIZE + turn
