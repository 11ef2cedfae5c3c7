from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from x01.scoring.errors import InvalidConfig


class GameMode(str, Enum):
    X01 = "X01"


class MatchStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class OpenerPolicy(str, Enum):
    """
    Who throws first in a new leg.

    - rotate: leg n (counted across the whole match) is opened by seat n mod players
    - fixed_seat: seat 0 opens every leg
    """

    ROTATE = "rotate"
    FIXED_SEAT = "fixed_seat"


@dataclass(frozen=True)
class MatchConfig:
    starting_score: int = 501
    legs_to_win_set: int = 3
    sets_to_win_match: int = 1
    double_in: bool = False
    double_out: bool = True
    opener_policy: OpenerPolicy = OpenerPolicy.ROTATE
    mode: GameMode = GameMode.X01

    def __post_init__(self) -> None:
        if self.mode != GameMode.X01:
            raise InvalidConfig("only X01 matches are supported")
        if self.starting_score <= 1:
            raise InvalidConfig("starting_score must be > 1")
        if self.legs_to_win_set <= 0:
            raise InvalidConfig("legs_to_win_set must be > 0")
        if self.sets_to_win_match <= 0:
            raise InvalidConfig("sets_to_win_match must be > 0")


@dataclass(frozen=True)
class PlayerSlot:
    player_id: str
    seat: int


@dataclass(frozen=True)
class Visit:
    """
    One player's turn: 1-3 darts recorded as a single aggregate score.

    Busts are recorded too (the darts were thrown), with remaining_after equal
    to remaining_before.
    """

    player_id: str
    visit_score: int
    darts_thrown: int
    sequence_number: int
    thrown_at: datetime
    bust: bool
    checkout: bool
    remaining_before: int
    remaining_after: int


@dataclass(frozen=True)
class LegState:
    leg_number: int
    starting_score: int
    remaining_by_player: Mapping[str, int]
    visits: tuple[Visit, ...] = ()
    winner_id: str | None = None
    finished_at: datetime | None = None

    def __post_init__(self) -> None:
        # Snapshots are handed out and shared; scores must not change under them.
        object.__setattr__(
            self, "remaining_by_player", MappingProxyType(dict(self.remaining_by_player))
        )

    @property
    def is_open(self) -> bool:
        return self.winner_id is None


@dataclass(frozen=True)
class SetState:
    set_number: int
    legs_to_win: int
    legs: tuple[LegState, ...]
    winner_id: str | None = None
    finished_at: datetime | None = None


@dataclass(frozen=True)
class MatchState:
    match_id: str
    created_at: datetime
    config: MatchConfig
    players: tuple[PlayerSlot, ...]
    sets: tuple[SetState, ...]
    current_set_index: int = 0
    current_leg_index: int = 0
    current_player_id: str = ""
    status: MatchStatus = MatchStatus.PENDING
    winner_id: str | None = None  # match winner

    @property
    def is_over(self) -> bool:
        return self.status == MatchStatus.FINISHED

    @property
    def player_ids(self) -> tuple[str, ...]:
        return tuple(p.player_id for p in self.players)

    @property
    def current_set(self) -> SetState:
        return self.sets[self.current_set_index]

    @property
    def current_leg(self) -> LegState:
        return self.current_set.legs[self.current_leg_index]

    @property
    def history(self) -> tuple[Visit, ...]:
        """Every recorded visit in the match, in throw order."""
        return tuple(v for s in self.sets for leg in s.legs for v in leg.visits)

    @property
    def last_visit(self) -> Visit | None:
        for s in reversed(self.sets):
            for leg in reversed(s.legs):
                if leg.visits:
                    return leg.visits[-1]
        return None
