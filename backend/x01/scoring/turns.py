from __future__ import annotations

from typing import Sequence

from x01.scoring.models import OpenerPolicy


def _seat_of(players: Sequence[str], player_id: str) -> int:
    try:
        return list(players).index(player_id)
    except ValueError:
        raise KeyError(f"player {player_id!r} is not seated in this match") from None


def next_player(players: Sequence[str], last_thrower: str) -> str:
    """Seat-order successor, wrapping after the last seat. Nobody is ever skipped."""
    return players[(_seat_of(players, last_thrower) + 1) % len(players)]


def opener_for(leg_ordinal: int, players: Sequence[str], policy: OpenerPolicy) -> str:
    """
    Player who throws first in a leg.

    `leg_ordinal` is the 0-based index of the leg counted across the whole
    match, not within its set, so rotation carries over set boundaries.
    """
    if not players:
        raise ValueError("a match needs at least one player")
    if leg_ordinal < 0:
        raise ValueError("leg_ordinal must be >= 0")
    if policy == OpenerPolicy.FIXED_SEAT:
        return players[0]
    return players[leg_ordinal % len(players)]
