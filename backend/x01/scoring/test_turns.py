import pytest

from x01.scoring.models import OpenerPolicy
from x01.scoring.turns import next_player, opener_for

PLAYERS = ("a", "b", "c")


def test_next_player_wraps() -> None:
    assert next_player(PLAYERS, "a") == "b"
    assert next_player(PLAYERS, "c") == "a"
    assert next_player(("solo",), "solo") == "solo"


def test_unknown_player() -> None:
    with pytest.raises(KeyError):
        next_player(PLAYERS, "z")


def test_rotate_policy() -> None:
    openers = [opener_for(n, PLAYERS, OpenerPolicy.ROTATE) for n in range(5)]
    assert openers == ["a", "b", "c", "a", "b"]


def test_fixed_seat_policy() -> None:
    assert {opener_for(n, PLAYERS, OpenerPolicy.FIXED_SEAT) for n in range(5)} == {"a"}
