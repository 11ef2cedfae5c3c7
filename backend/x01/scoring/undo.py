from __future__ import annotations

from dataclasses import replace

from x01.scoring.errors import NothingToUndo
from x01.scoring.ledger import revert_visit
from x01.scoring.models import MatchState, MatchStatus, Visit
from x01.scoring.progression import retreat


def undo_last_visit(state: MatchState) -> tuple[MatchState, Visit]:
    """
    Revert the most recently accepted visit, wherever it is.

    If that visit finished a leg, set or the match, the decisions it caused are
    rolled back too, and the turn returns to the player who threw it. Only a
    single step is supported; there is no redo.
    """
    if state.last_visit is None:
        raise NothingToUndo("nothing to undo")

    if state.is_over or not state.current_leg.visits:
        state = retreat(state)

    leg, removed = revert_visit(state.current_leg)

    current_set = state.current_set
    legs = (
        *current_set.legs[: state.current_leg_index],
        leg,
        *current_set.legs[state.current_leg_index + 1 :],
    )
    sets = (
        *state.sets[: state.current_set_index],
        replace(current_set, legs=legs),
        *state.sets[state.current_set_index + 1 :],
    )
    reverted = replace(state, sets=sets, current_player_id=removed.player_id)

    # A match with no visits left has not started.
    status = MatchStatus.IN_PROGRESS if reverted.last_visit is not None else MatchStatus.PENDING
    return replace(reverted, status=status), removed
