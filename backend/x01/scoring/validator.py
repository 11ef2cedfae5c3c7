from __future__ import annotations

from enum import Enum
from functools import lru_cache

from x01.scoring.errors import InvalidScore


class Outcome(str, Enum):
    BUST = "bust"
    NORMAL_SCORE = "normal_score"
    CHECKOUT = "checkout"


def _single_dart_scores() -> frozenset[int]:
    scores = {0, 25, 50}
    for v in range(1, 21):
        scores.update((v, v * 2, v * 3))
    return frozenset(scores)


# Everything one dart can score, including a miss.
SINGLE_DART_SCORES: frozenset[int] = _single_dart_scores()

# Doubles ring plus double bull.
DOUBLE_SCORES: frozenset[int] = frozenset({*(v * 2 for v in range(1, 21)), 50})

MAX_DARTS = 3
MAX_VISIT_SCORE = 180


@lru_cache(maxsize=None)
def achievable_scores(darts_thrown: int) -> frozenset[int]:
    """
    Every aggregate score reachable with exactly `darts_thrown` darts.

    Misses count as darts, so the set for n darts contains the set for n-1.
    """
    if darts_thrown < 0 or darts_thrown > MAX_DARTS:
        raise ValueError("darts_thrown must be between 0 and 3")
    if darts_thrown == 0:
        return frozenset({0})
    previous = achievable_scores(darts_thrown - 1)
    return frozenset(p + s for p in previous for s in SINGLE_DART_SCORES)


@lru_cache(maxsize=None)
def opening_scores(darts_thrown: int) -> frozenset[int]:
    """
    Scores that can count under double-in: nothing counts until a double lands,
    so a counted score is 0 or a double followed by up to n-1 arbitrary darts.
    """
    if darts_thrown < 1 or darts_thrown > MAX_DARTS:
        raise ValueError("darts_thrown must be between 1 and 3")
    rest = achievable_scores(darts_thrown - 1)
    return frozenset({0, *(d + r for d in DOUBLE_SCORES for r in rest)})


def check_visit(visit_score: int, darts_thrown: int, *, needs_double_in: bool = False) -> None:
    """
    Reject malformed visits before any bust/checkout logic runs.

    Raises InvalidScore when the darts count is out of range or the score
    cannot be thrown with that many darts.
    """
    if isinstance(darts_thrown, bool) or not isinstance(darts_thrown, int):
        raise InvalidScore("darts_thrown must be an integer")
    if isinstance(visit_score, bool) or not isinstance(visit_score, int):
        raise InvalidScore("visit_score must be an integer")
    if darts_thrown < 1 or darts_thrown > MAX_DARTS:
        raise InvalidScore("darts_thrown must be between 1 and 3")
    if visit_score < 0 or visit_score > MAX_VISIT_SCORE:
        raise InvalidScore("visit_score must be between 0 and 180")
    if visit_score not in achievable_scores(darts_thrown):
        raise InvalidScore(f"{visit_score} cannot be scored with {darts_thrown} dart(s)")
    if needs_double_in and visit_score not in opening_scores(darts_thrown):
        raise InvalidScore(f"{visit_score} cannot open a double-in leg with {darts_thrown} dart(s)")


def validate(
    remaining: int,
    visit_score: int,
    darts_thrown: int,
    *,
    double_out: bool,
    needs_double_in: bool = False,
) -> Outcome:
    """
    Classify a visit against the thrower's remaining score.

    Key rules:
    - Bust: the visit would take remaining below 0, or (with double-out) leave 1.
    - Checkout: the visit leaves exactly 0. Only the aggregate is known, so a
      double-out finish is taken on trust; the last dart is not checked.
    - Anything else is a normal score.
    """
    check_visit(visit_score, darts_thrown, needs_double_in=needs_double_in)

    candidate = remaining - visit_score
    if candidate < 0:
        return Outcome.BUST
    if double_out and candidate == 1:
        return Outcome.BUST
    if candidate == 0:
        return Outcome.CHECKOUT
    return Outcome.NORMAL_SCORE
