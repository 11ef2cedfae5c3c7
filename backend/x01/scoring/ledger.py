from __future__ import annotations

from datetime import datetime
from typing import Iterable

from x01.scoring.errors import LegClosed, NothingToUndo
from x01.scoring.models import LegState, Visit
from x01.scoring.validator import Outcome, validate


def open_leg(leg_number: int, starting_score: int, player_ids: Iterable[str]) -> LegState:
    return LegState(
        leg_number=leg_number,
        starting_score=starting_score,
        remaining_by_player={pid: starting_score for pid in player_ids},
    )


def remaining_from_visits(leg: LegState, player_id: str) -> int:
    """Re-derive a player's remaining score from the leg's recorded visits."""
    scored = sum(v.visit_score for v in leg.visits if v.player_id == player_id and not v.bust)
    return leg.starting_score - scored


def apply_visit(
    leg: LegState,
    player_id: str,
    visit_score: int,
    darts_thrown: int,
    *,
    sequence_number: int,
    thrown_at: datetime,
    double_out: bool,
    double_in: bool = False,
) -> tuple[LegState, Visit]:
    """
    Record one visit in an open leg and return the updated leg plus the visit.

    A bust is appended with the thrower's remaining unchanged. A checkout
    closes the leg (winner_id and finished_at are set).
    """
    if not leg.is_open:
        raise LegClosed(f"leg {leg.leg_number} is already finished")
    if player_id not in leg.remaining_by_player:
        raise KeyError(f"player {player_id!r} is not in this leg")

    remaining_before = leg.remaining_by_player[player_id]
    needs_double_in = double_in and remaining_before == leg.starting_score
    outcome = validate(
        remaining_before,
        visit_score,
        darts_thrown,
        double_out=double_out,
        needs_double_in=needs_double_in,
    )

    bust = outcome == Outcome.BUST
    remaining_after = remaining_before if bust else remaining_before - visit_score

    visit = Visit(
        player_id=player_id,
        visit_score=visit_score,
        darts_thrown=darts_thrown,
        sequence_number=sequence_number,
        thrown_at=thrown_at,
        bust=bust,
        checkout=outcome == Outcome.CHECKOUT,
        remaining_before=remaining_before,
        remaining_after=remaining_after,
    )

    remaining = dict(leg.remaining_by_player)
    remaining[player_id] = remaining_after

    winner_id = leg.winner_id
    finished_at = leg.finished_at
    if visit.checkout:
        winner_id = player_id
        finished_at = thrown_at

    updated = LegState(
        leg_number=leg.leg_number,
        starting_score=leg.starting_score,
        remaining_by_player=remaining,
        visits=(*leg.visits, visit),
        winner_id=winner_id,
        finished_at=finished_at,
    )
    return updated, visit


def revert_visit(leg: LegState) -> tuple[LegState, Visit]:
    """
    Remove the leg's last visit, reopening the leg if that visit was the checkout.
    """
    if not leg.visits:
        raise NothingToUndo(f"leg {leg.leg_number} has no visits")

    removed = leg.visits[-1]
    shorter = LegState(
        leg_number=leg.leg_number,
        starting_score=leg.starting_score,
        remaining_by_player=leg.remaining_by_player,
        visits=leg.visits[:-1],
        winner_id=None if removed.checkout else leg.winner_id,
        finished_at=None if removed.checkout else leg.finished_at,
    )

    remaining = dict(leg.remaining_by_player)
    remaining[removed.player_id] = remaining_from_visits(shorter, removed.player_id)

    reverted = LegState(
        leg_number=shorter.leg_number,
        starting_score=shorter.starting_score,
        remaining_by_player=remaining,
        visits=shorter.visits,
        winner_id=shorter.winner_id,
        finished_at=shorter.finished_at,
    )
    return reverted, removed
