from datetime import datetime, timedelta, timezone

import pytest

from x01.scoring.engine import MatchEngine
from x01.scoring.errors import NothingToUndo
from x01.scoring.models import MatchConfig, MatchStatus


class _Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=30)
        return self.now


def _engine(**config) -> MatchEngine:
    return MatchEngine.create(MatchConfig(**config), ["p1", "p2"], match_id="m1", clock=_Clock())


def _throw(g: MatchEngine, score: int, darts: int = 3):
    return g.record_visit(g.state().current_player_id, score, darts)


def test_nothing_to_undo_on_fresh_match() -> None:
    g = _engine()
    before = g.state()
    with pytest.raises(NothingToUndo):
        g.undo()
    assert g.state() is before


def test_undo_first_visit_returns_to_pending() -> None:
    g = _engine()
    created = g.state()
    _throw(g, 100)

    assert g.undo() == created
    assert g.state().status == MatchStatus.PENDING


def test_undo_rewinds_turn_and_score() -> None:
    g = _engine()
    _throw(g, 100)
    before = _throw(g, 60)
    _throw(g, 45)

    state = g.undo()
    assert state == before
    assert state.current_player_id == "p1"
    assert state.current_leg.remaining_by_player == {"p1": 401, "p2": 441}


def test_undo_bust() -> None:
    g = _engine(starting_score=40)
    before = g.state()
    _throw(g, 39)  # leaves 1 -> bust

    assert g.undo() == before


def test_undo_crosses_leg_boundary() -> None:
    g = _engine(starting_score=40, legs_to_win_set=3)
    _throw(g, 20, 1)
    before = _throw(g, 10, 1)
    _throw(g, 20, 1)  # p1 checks out, leg 2 opens

    assert len(g.state().current_set.legs) == 2
    state = g.undo()
    assert state == before
    assert len(state.current_set.legs) == 1
    assert state.current_leg.winner_id is None
    assert state.current_player_id == "p1"


def test_undo_crosses_set_boundary() -> None:
    g = _engine(starting_score=40, legs_to_win_set=1, sets_to_win_match=3)
    _throw(g, 40, 1)  # p1 takes set 1
    before = _throw(g, 20, 1)  # p2 opens set 2
    _throw(g, 20, 1)  # p1
    _throw(g, 20, 1)  # p2 takes set 2, set 3 opens

    assert len(g.state().sets) == 3
    state = g.undo()
    assert len(state.sets) == 2
    assert state.sets[1].winner_id is None
    assert state.sets[1].finished_at is None
    assert (state.current_set_index, state.current_leg_index) == (1, 0)
    assert state.current_player_id == "p2"

    state = g.undo()
    assert state == before


def test_undo_unfinishes_match() -> None:
    g = _engine(starting_score=40, legs_to_win_set=1, sets_to_win_match=1)
    _throw(g, 20, 1)
    before = _throw(g, 30, 3)
    finished = _throw(g, 20, 1)
    assert finished.status == MatchStatus.FINISHED

    state = g.undo()
    assert state.status == MatchStatus.IN_PROGRESS
    assert state.winner_id is None
    assert state.current_leg.winner_id is None
    assert state.current_leg.finished_at is None
    assert state.current_set.winner_id is None
    assert state.current_player_id == "p1"
    assert state == before

    # The match continues from there.
    state = _throw(g, 10, 1)
    assert state.current_leg.remaining_by_player["p1"] == 10
    assert state.current_player_id == "p2"


def test_undo_is_single_step_all_the_way_back() -> None:
    g = _engine(starting_score=40, legs_to_win_set=2, sets_to_win_match=2)
    snapshots = [g.state()]
    for score, darts in ((40, 1), (20, 1), (40, 1), (20, 1), (20, 1), (20, 1)):
        snapshots.append(_throw(g, score, darts))

    for expected in reversed(snapshots[:-1]):
        assert g.undo() == expected

    with pytest.raises(NothingToUndo):
        g.undo()


def test_sequence_number_reused_after_undo() -> None:
    g = _engine()
    _throw(g, 60)
    _throw(g, 60)
    g.undo()
    state = _throw(g, 100)
    assert [v.sequence_number for v in state.history] == [1, 2]
