from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from x01.scoring.models import MatchState, Visit
from x01.scoring.progression import legs_won, sets_won


# --- Derived figures for the scoreboard (computed, never stored) ---


def legs_won_in_current_set(state: MatchState) -> dict[str, int]:
    wins = legs_won(state.current_set)
    return {pid: wins.get(pid, 0) for pid in state.player_ids}


def sets_won_by_player(state: MatchState) -> dict[str, int]:
    wins = sets_won(state.sets)
    return {pid: wins.get(pid, 0) for pid in state.player_ids}


def remaining_by_player(state: MatchState) -> dict[str, int]:
    leg = state.current_leg
    return {pid: leg.remaining_by_player[pid] for pid in state.player_ids}


def current_round(state: MatchState) -> int:
    """1-based round of the current leg; a round is one visit per player."""
    return len(state.current_leg.visits) // len(state.players) + 1


def leg_averages(state: MatchState) -> dict[str, float]:
    """
    Average visit score per player in the current leg. Busts are left out of
    both the total and the visit count.
    """
    out: dict[str, float] = {}
    for pid in state.player_ids:
        scores = [v.visit_score for v in state.current_leg.visits if v.player_id == pid and not v.bust]
        out[pid] = sum(scores) / len(scores) if scores else 0.0
    return out


@dataclass(frozen=True)
class PlayerScoreboard:
    player_id: str
    seat: int
    remaining: int
    legs_won: int
    sets_won: int
    leg_average: float
    last_visit_score: int | None


@dataclass(frozen=True)
class MatchSummary:
    set_number: int
    leg_number: int
    round_number: int
    current_player_id: str
    players: tuple[PlayerScoreboard, ...]


def summarize(state: MatchState) -> MatchSummary:
    legs = legs_won_in_current_set(state)
    sets = sets_won_by_player(state)
    remaining = remaining_by_player(state)
    averages = leg_averages(state)

    last_scores: dict[str, int] = {}
    for v in state.current_leg.visits:
        last_scores[v.player_id] = v.visit_score

    return MatchSummary(
        set_number=state.current_set.set_number,
        leg_number=state.current_leg.leg_number,
        round_number=current_round(state),
        current_player_id=state.current_player_id,
        players=tuple(
            PlayerScoreboard(
                player_id=p.player_id,
                seat=p.seat,
                remaining=remaining[p.player_id],
                legs_won=legs[p.player_id],
                sets_won=sets[p.player_id],
                leg_average=averages[p.player_id],
                last_visit_score=last_scores.get(p.player_id),
            )
            for p in state.players
        ),
    )


# --- Per-match player statistics ---


@dataclass(frozen=True)
class PlayerStats:
    player_id: str
    visits: int
    darts_thrown: int
    scored_points: int
    busts: int
    checkouts: int
    checkout_attempts: int
    highest_visit: int
    highest_checkout: int
    count_180: int
    count_140_plus: int
    count_100_plus: int

    @property
    def three_dart_average(self) -> float:
        if self.darts_thrown == 0:
            return 0.0
        return (self.scored_points / self.darts_thrown) * 3.0

    @property
    def checkout_percentage(self) -> float:
        if self.checkout_attempts == 0:
            return 0.0
        return (self.checkouts / self.checkout_attempts) * 100.0


def _is_checkout_attempt(v: Visit, *, double_out: bool) -> bool:
    """
    Heuristic: a 'checkout attempt' is any visit that starts on a finishable score.
    """
    if v.remaining_before <= 1:
        return False
    if double_out:
        return v.remaining_before <= 170
    return v.remaining_before <= 180


def _accumulate(player_id: str, visits: Iterable[Visit], *, double_out: bool) -> PlayerStats:
    v_for_player = [v for v in visits if v.player_id == player_id]

    # Typical stats exclude busted points (score reverts).
    valid_totals = [v.visit_score for v in v_for_player if not v.bust]
    checkout_totals = [v.visit_score for v in v_for_player if v.checkout]

    return PlayerStats(
        player_id=player_id,
        visits=len(v_for_player),
        darts_thrown=sum(v.darts_thrown for v in v_for_player),
        scored_points=sum(valid_totals),
        busts=sum(1 for v in v_for_player if v.bust),
        checkouts=len(checkout_totals),
        checkout_attempts=sum(1 for v in v_for_player if _is_checkout_attempt(v, double_out=double_out)),
        highest_visit=max(valid_totals, default=0),
        highest_checkout=max(checkout_totals, default=0),
        count_180=sum(1 for t in valid_totals if t == 180),
        count_140_plus=sum(1 for t in valid_totals if t >= 140),
        count_100_plus=sum(1 for t in valid_totals if t >= 100),
    )


def compute_match_stats(state: MatchState) -> tuple[PlayerStats, ...]:
    history = state.history
    return tuple(
        _accumulate(pid, history, double_out=state.config.double_out) for pid in state.player_ids
    )
