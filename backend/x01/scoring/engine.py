from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from threading import RLock
from typing import Callable, Sequence
from uuid import uuid4

from x01.scoring.errors import InvalidConfig, MatchFinished, WrongPlayer
from x01.scoring.ledger import apply_visit
from x01.scoring.models import MatchConfig, MatchState, MatchStatus, PlayerSlot
from x01.scoring.progression import advance, new_set
from x01.scoring.turns import next_player, opener_for
from x01.scoring.undo import undo_last_visit

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
CommitHook = Callable[[MatchState], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def create_match(
    config: MatchConfig,
    player_ids: Sequence[str],
    *,
    match_id: str | None = None,
    created_at: datetime | None = None,
) -> MatchState:
    """
    Build a pending match with its first set and leg open.

    Seats follow the order of `player_ids` and never change afterwards.
    """
    ids = tuple(player_ids)
    if not ids:
        raise InvalidConfig("a match needs at least one player")
    if len(set(ids)) != len(ids):
        raise InvalidConfig("player ids must be unique")
    if any(not pid for pid in ids):
        raise InvalidConfig("player ids must be non-empty")

    return MatchState(
        match_id=match_id or str(uuid4()),
        created_at=created_at or utc_now(),
        config=config,
        players=tuple(PlayerSlot(player_id=pid, seat=seat) for seat, pid in enumerate(ids)),
        sets=(new_set(1, config, ids),),
        current_set_index=0,
        current_leg_index=0,
        current_player_id=opener_for(0, ids, config.opener_policy),
        status=MatchStatus.PENDING,
        winner_id=None,
    )


def record_visit(
    state: MatchState,
    player_id: str,
    visit_score: int,
    darts_thrown: int,
    *,
    thrown_at: datetime,
) -> MatchState:
    """
    Apply one visit and return the next snapshot.

    Busts and checkouts are normal transitions. Raises MatchFinished,
    WrongPlayer or InvalidScore (in that order of checking) without touching
    `state`.
    """
    if state.is_over:
        raise MatchFinished("match is already over")
    if player_id != state.current_player_id:
        raise WrongPlayer(f"not {player_id}'s turn; {state.current_player_id} is throwing")

    last = state.last_visit
    leg, visit = apply_visit(
        state.current_leg,
        player_id,
        visit_score,
        darts_thrown,
        sequence_number=last.sequence_number + 1 if last is not None else 1,
        thrown_at=thrown_at,
        double_out=state.config.double_out,
        double_in=state.config.double_in,
    )

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
    updated = replace(state, sets=sets, status=MatchStatus.IN_PROGRESS)

    if visit.checkout:
        return advance(updated)
    return replace(updated, current_player_id=next_player(state.player_ids, player_id))


class MatchEngine:
    """
    Single authoritative writer for one X01 match.

    This module intentionally contains no web/framework imports.

    Every operation runs under this match's own lock and either publishes a
    fully validated snapshot or leaves the current one in place. Different
    matches use different engines and never contend.

    `on_commit` (e.g. a persistence write) sees each new snapshot inside the
    critical section before it becomes current; if it raises, the operation
    fails and the previous snapshot stays.
    """

    def __init__(
        self,
        state: MatchState,
        *,
        clock: Clock | None = None,
        on_commit: CommitHook | None = None,
    ) -> None:
        self._lock = RLock()
        self._state = state
        self._clock = clock or utc_now
        self._on_commit = on_commit

    @classmethod
    def create(
        cls,
        config: MatchConfig,
        player_ids: Sequence[str],
        *,
        match_id: str | None = None,
        clock: Clock | None = None,
        on_commit: CommitHook | None = None,
    ) -> MatchEngine:
        now = (clock or utc_now)()
        state = create_match(config, player_ids, match_id=match_id, created_at=now)
        engine = cls(state, clock=clock, on_commit=on_commit)
        if on_commit is not None:
            on_commit(state)
        return engine

    @property
    def match_id(self) -> str:
        return self._state.match_id

    def state(self) -> MatchState:
        return self._state

    def record_visit(self, player_id: str, visit_score: int, darts_thrown: int) -> MatchState:
        with self._lock:
            state = record_visit(
                self._state,
                player_id,
                visit_score,
                darts_thrown,
                thrown_at=self._clock(),
            )
            visit = state.last_visit
            logger.debug(
                "match %s: visit #%d by %s scored %d with %d dart(s)%s",
                state.match_id,
                visit.sequence_number,
                player_id,
                visit_score,
                darts_thrown,
                " (bust)" if visit.bust else "",
            )
            return self._commit(state)

    def undo(self) -> MatchState:
        with self._lock:
            state, removed = undo_last_visit(self._state)
            logger.debug(
                "match %s: undid visit #%d by %s",
                state.match_id,
                removed.sequence_number,
                removed.player_id,
            )
            return self._commit(state)

    def _commit(self, state: MatchState) -> MatchState:
        if self._on_commit is not None:
            self._on_commit(state)
        self._state = state
        return state
