from x01.scoring.engine import MatchEngine
from x01.scoring.models import MatchConfig
from x01.scoring.projections import (
    compute_match_stats,
    current_round,
    leg_averages,
    legs_won_in_current_set,
    sets_won_by_player,
    summarize,
)


def _engine(**config) -> MatchEngine:
    return MatchEngine.create(MatchConfig(**config), ["p1", "p2"])


def test_stats_exclude_busted_points() -> None:
    g = _engine(starting_score=10, double_out=True)

    # P1: bust (tries to score 12 from 10)
    g.record_visit("p1", 12, 1)

    # P2: scores 6 (10 -> 4)
    g.record_visit("p2", 6, 1)

    p1, p2 = compute_match_stats(g.state())

    assert p1.visits == 1
    assert p1.busts == 1
    assert p1.scored_points == 0

    assert p2.visits == 1
    assert p2.busts == 0
    assert p2.scored_points == 6
    assert p2.three_dart_average == 18.0


def test_stats_checkout_counts() -> None:
    g = _engine(starting_score=40, double_out=True, legs_to_win_set=2)

    # P1: checks out with D20
    g.record_visit("p1", 40, 1)

    p1, _ = compute_match_stats(g.state())
    assert p1.checkouts == 1
    assert p1.checkout_attempts >= 1
    assert p1.highest_checkout == 40
    assert p1.checkout_percentage == 100.0


def test_stats_span_every_leg() -> None:
    g = _engine(starting_score=301, legs_to_win_set=2)
    g.record_visit("p1", 180, 3)
    g.record_visit("p2", 140, 3)
    g.record_visit("p1", 121, 3)  # checkout, p2 opens leg 2
    g.record_visit("p2", 180, 3)

    p1, p2 = compute_match_stats(g.state())
    assert (p1.count_180, p2.count_180) == (1, 1)
    assert p2.count_140_plus == 2
    assert p1.highest_visit == 180


def test_current_round() -> None:
    g = _engine()
    assert current_round(g.state()) == 1
    g.record_visit("p1", 60, 3)
    assert current_round(g.state()) == 1
    g.record_visit("p2", 60, 3)
    g.record_visit("p1", 60, 3)
    assert current_round(g.state()) == 2


def test_leg_average_ignores_busts() -> None:
    g = _engine(starting_score=101)
    g.record_visit("p1", 100, 3)  # 1 left -> bust under double-out
    g.record_visit("p2", 60, 3)
    g.record_visit("p1", 60, 3)
    g.record_visit("p2", 20, 3)

    averages = leg_averages(g.state())
    assert averages == {"p1": 60.0, "p2": 40.0}


def test_leg_average_is_per_leg() -> None:
    g = _engine(starting_score=40, legs_to_win_set=3)
    g.record_visit("p1", 40, 1)
    assert leg_averages(g.state()) == {"p1": 0.0, "p2": 0.0}


def test_wins_and_summary() -> None:
    g = _engine(starting_score=40, legs_to_win_set=1, sets_to_win_match=3)
    g.record_visit("p1", 40, 1)  # p1 takes set 1
    g.record_visit("p2", 20, 1)

    state = g.state()
    assert sets_won_by_player(state) == {"p1": 1, "p2": 0}
    assert legs_won_in_current_set(state) == {"p1": 0, "p2": 0}

    summary = summarize(state)
    assert (summary.set_number, summary.leg_number, summary.round_number) == (2, 1, 1)
    assert summary.current_player_id == "p1"
    p1, p2 = summary.players
    assert (p1.remaining, p1.sets_won, p1.last_visit_score) == (40, 1, None)
    assert (p2.remaining, p2.leg_average, p2.last_visit_score) == (20, 20.0, 20)
