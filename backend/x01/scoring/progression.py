from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import Iterable, Mapping, Sequence

from x01.scoring.ledger import open_leg
from x01.scoring.models import MatchConfig, MatchState, MatchStatus, SetState
from x01.scoring.turns import opener_for

logger = logging.getLogger(__name__)


def new_set(set_number: int, config: MatchConfig, player_ids: Iterable[str]) -> SetState:
    return SetState(
        set_number=set_number,
        legs_to_win=config.legs_to_win_set,
        legs=(open_leg(1, config.starting_score, player_ids),),
    )


def legs_won(set_state: SetState) -> dict[str, int]:
    return dict(Counter(leg.winner_id for leg in set_state.legs if leg.winner_id is not None))


def sets_won(sets: Iterable[SetState]) -> dict[str, int]:
    return dict(Counter(s.winner_id for s in sets if s.winner_id is not None))


def leg_ordinal(sets: Sequence[SetState], set_index: int, leg_index: int) -> int:
    """0-based position of a leg counted across every set of the match."""
    return sum(len(s.legs) for s in sets[:set_index]) + leg_index


def _decided(wins: Mapping[str, int], target: int) -> str | None:
    # "First to N": a winner has exactly N; later legs/sets are never played.
    for player_id, count in wins.items():
        if count == target:
            return player_id
    return None


def _replace_at(sets: tuple[SetState, ...], index: int, updated: SetState) -> tuple[SetState, ...]:
    return (*sets[:index], updated, *sets[index + 1 :])


def advance(state: MatchState) -> MatchState:
    """
    Move the match past a finished leg.

    - set not decided: open the next leg in the same set
    - set decided, match not: close the set and open a new set with one leg
    - match decided: close the set and finish the match

    A match whose current leg is still open is returned unchanged.
    """
    leg = state.current_leg
    if leg.is_open:
        return state

    config = state.config
    player_ids = state.player_ids
    current_set = state.current_set

    set_winner = _decided(legs_won(current_set), current_set.legs_to_win)
    if set_winner is None:
        next_leg = open_leg(len(current_set.legs) + 1, config.starting_score, player_ids)
        updated_set = replace(current_set, legs=(*current_set.legs, next_leg))
        sets = _replace_at(state.sets, state.current_set_index, updated_set)
        leg_index = len(updated_set.legs) - 1
        ordinal = leg_ordinal(sets, state.current_set_index, leg_index)
        logger.info(
            "match %s: leg %d of set %d won by %s",
            state.match_id,
            leg.leg_number,
            current_set.set_number,
            leg.winner_id,
        )
        return replace(
            state,
            sets=sets,
            current_leg_index=leg_index,
            current_player_id=opener_for(ordinal, player_ids, config.opener_policy),
        )

    closed_set = replace(current_set, winner_id=set_winner, finished_at=leg.finished_at)
    sets = _replace_at(state.sets, state.current_set_index, closed_set)
    logger.info("match %s: set %d won by %s", state.match_id, closed_set.set_number, set_winner)

    match_winner = _decided(sets_won(sets), config.sets_to_win_match)
    if match_winner is not None:
        logger.info("match %s: won by %s", state.match_id, match_winner)
        # current_player_id stays on the thrower of the finishing visit.
        return replace(state, sets=sets, status=MatchStatus.FINISHED, winner_id=match_winner)

    sets = (*sets, new_set(len(sets) + 1, config, player_ids))
    set_index = len(sets) - 1
    ordinal = leg_ordinal(sets, set_index, 0)
    return replace(
        state,
        sets=sets,
        current_set_index=set_index,
        current_leg_index=0,
        current_player_id=opener_for(ordinal, player_ids, config.opener_policy),
    )


def retreat(state: MatchState) -> MatchState:
    """
    Inverse of `advance`: point the match back at the leg whose checkout
    produced the current position.

    - the freshly opened, still empty leg (and its set, if it was the set's
      only leg) is dropped
    - the set and match winners decided by that checkout are cleared

    The leg itself keeps its checkout visit; reverting it is the ledger's job.
    Raises ValueError if the current leg already has visits or there is no
    earlier leg to return to.
    """
    if state.is_over:
        # The finishing leg is still current; only the decisions are undone.
        current_set = replace(state.current_set, winner_id=None, finished_at=None)
        return replace(
            state,
            sets=_replace_at(state.sets, state.current_set_index, current_set),
            status=MatchStatus.IN_PROGRESS,
            winner_id=None,
        )

    if state.current_leg.visits:
        raise ValueError("current leg has visits; nothing to retreat over")

    if state.current_leg_index > 0:
        current_set = state.current_set
        trimmed = replace(current_set, legs=current_set.legs[:-1])
        return replace(
            state,
            sets=_replace_at(state.sets, state.current_set_index, trimmed),
            current_leg_index=len(trimmed.legs) - 1,
        )

    if state.current_set_index > 0:
        sets = state.sets[:-1]
        previous = replace(sets[-1], winner_id=None, finished_at=None)
        sets = _replace_at(sets, len(sets) - 1, previous)
        return replace(
            state,
            sets=sets,
            current_set_index=len(sets) - 1,
            current_leg_index=len(previous.legs) - 1,
        )

    raise ValueError("already at the first leg of the match")
