from __future__ import annotations


class MatchError(Exception):
    """
    Base class for rejected match operations.

    A rejected operation never changes match state. `code` is stable and meant
    for API clients; `detail` is for humans.
    """

    code = "match_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return self.detail


class InvalidScore(MatchError, ValueError):
    code = "invalid_score"


class WrongPlayer(MatchError, PermissionError):
    code = "wrong_player"


class MatchFinished(MatchError, RuntimeError):
    code = "match_finished"


class NothingToUndo(MatchError, RuntimeError):
    """Expected boundary: there is no visit left to revert."""

    code = "nothing_to_undo"


class LegClosed(MatchError, RuntimeError):
    code = "leg_closed"


class MatchNotFound(MatchError, KeyError):
    code = "match_not_found"


class InvalidConfig(MatchError, ValueError):
    code = "invalid_config"
