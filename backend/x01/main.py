import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from x01.config import DEFAULT_OPENER_POLICY, DEFAULT_STARTING_SCORE, LOG_LEVEL
from x01.scoring.errors import MatchError
from x01.scoring.models import (
    GameMode,
    LegState,
    MatchConfig,
    MatchState,
    OpenerPolicy,
    SetState,
    Visit,
)
from x01.scoring.projections import (
    PlayerStats,
    compute_match_stats,
    legs_won_in_current_set,
    sets_won_by_player,
    summarize,
)
from x01.scoring.store import get_store

logger = logging.getLogger(__name__)
logging.getLogger("x01").setLevel(LOG_LEVEL)

app = FastAPI(title="X01 Scorer")
store = get_store()

# Problem code -> HTTP status.
_ERROR_STATUS = {
    "invalid_score": 422,
    "invalid_config": 422,
    "wrong_player": 409,
    "match_finished": 409,
    "nothing_to_undo": 409,
    "leg_closed": 409,
    "match_not_found": 404,
}


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: str | None = None
    status: int
    instance: str | None = None
    code: str


@app.exception_handler(MatchError)
async def match_error_handler(request: Request, exc: MatchError) -> JSONResponse:
    status = _ERROR_STATUS.get(exc.code, 400)
    problem = ProblemDetail(
        title=type(exc).__name__,
        detail=exc.detail,
        status=status,
        instance=str(request.url.path),
        code=exc.code,
    )
    return JSONResponse(problem.model_dump(), status_code=status)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    problem = ProblemDetail(
        title="Invalid request",
        detail=detail,
        status=422,
        instance=str(request.url.path),
        code="invalid_request",
    )
    return JSONResponse(problem.model_dump(), status_code=422)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
    problem = ProblemDetail(
        title="Internal Server Error",
        status=500,
        instance=str(request.url.path),
        code="internal_error",
    )
    return JSONResponse(problem.model_dump(), status_code=500)


@app.get("/", include_in_schema=False)
def root(request: Request):
    # If a browser hits the root, take them to Swagger UI.
    # Keep the JSON response for API clients (e.g. curl, fetch).
    accept = (request.headers.get("accept") or "").lower()
    if "text/html" in accept:
        return RedirectResponse(url="/docs")
    return {
        "name": "X01 Scorer",
        "docs": "/docs",
        "health": "/health",
        "endpoints": [
            "GET /games",
            "POST /games",
            "GET /games/{game_id}",
            "DELETE /games/{game_id}",
            "POST /games/{game_id}/throws",
            "POST /games/{game_id}/undo",
            "GET /games/{game_id}/summary",
            "GET /games/{game_id}/stats",
        ],
    }


@app.get("/health")
def health():
    return {"status": "ok"}


class WireModel(BaseModel):
    # camelCase on the wire (what the web client sends and reads); snake_case is accepted too.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Ranges are left to the engine so every bad score or config gets the same problem shape.
class ConfigDTO(WireModel):
    mode: GameMode = GameMode.X01
    starting_score: int = DEFAULT_STARTING_SCORE
    legs_to_win_set: int = Field(
        default=3,
        validation_alias=AliasChoices("legs_to_win_set", "legsToWinSet", "legs"),
        serialization_alias="legsToWinSet",
        description="First to N legs wins a set",
    )
    sets_to_win_match: int = Field(
        default=1,
        validation_alias=AliasChoices("sets_to_win_match", "setsToWinMatch", "sets"),
        serialization_alias="setsToWinMatch",
        description="First to N sets wins the match",
    )
    double_in: bool = False
    double_out: bool = True
    opener_policy: OpenerPolicy = DEFAULT_OPENER_POLICY


class CreateGameRequest(WireModel):
    config: ConfigDTO = Field(default_factory=ConfigDTO)
    player_ids: list[str] = Field(..., description="Throwing order")


class VisitRequest(WireModel):
    player_id: str
    visit_score: int
    darts_thrown: int = 3


class VisitDTO(WireModel):
    player_id: str
    visit_score: int
    darts_thrown: int
    sequence_number: int
    thrown_at: datetime
    bust: bool
    checkout: bool
    remaining_before: int
    remaining_after: int


class LegDTO(WireModel):
    leg_number: int
    starting_score: int
    remaining_by_player: dict[str, int]
    visits: list[VisitDTO]
    winner_id: str | None
    finished_at: datetime | None


class SetDTO(WireModel):
    set_number: int
    legs_to_win: int
    legs: list[LegDTO]
    winner_id: str | None
    finished_at: datetime | None


class GamePlayerDTO(WireModel):
    player_id: str
    seat: int


class PlayerScoreDTO(WireModel):
    player_id: str
    remaining: int
    legs_won: int
    sets_won: int


class GameStateDTO(WireModel):
    id: str
    created_at: datetime
    status: str
    config: ConfigDTO
    players: list[GamePlayerDTO]
    sets: list[SetDTO]
    current_set_index: int
    current_leg_index: int
    current_player_id: str
    winner_id: str | None
    scores: list[PlayerScoreDTO]
    last_visit: VisitDTO | None


class GameHeaderDTO(WireModel):
    id: str
    created_at: datetime
    status: str
    player_ids: list[str]
    winner_id: str | None


class PlayerScoreboardDTO(WireModel):
    player_id: str
    seat: int
    remaining: int
    legs_won: int
    sets_won: int
    leg_average: float
    last_visit_score: int | None


class SummaryDTO(WireModel):
    set_number: int
    leg_number: int
    round_number: int
    current_player_id: str
    players: list[PlayerScoreboardDTO]


class PlayerStatsDTO(WireModel):
    player_id: str
    visits: int
    darts_thrown: int
    scored_points: int
    busts: int
    checkouts: int
    checkout_attempts: int
    checkout_percentage: float
    highest_visit: int
    highest_checkout: int
    count_180: int
    count_140_plus: int
    count_100_plus: int
    three_dart_average: float


def _visit_to_dto(v: Visit) -> VisitDTO:
    return VisitDTO(
        player_id=v.player_id,
        visit_score=v.visit_score,
        darts_thrown=v.darts_thrown,
        sequence_number=v.sequence_number,
        thrown_at=v.thrown_at,
        bust=v.bust,
        checkout=v.checkout,
        remaining_before=v.remaining_before,
        remaining_after=v.remaining_after,
    )


def _leg_to_dto(leg: LegState) -> LegDTO:
    return LegDTO(
        leg_number=leg.leg_number,
        starting_score=leg.starting_score,
        remaining_by_player=dict(leg.remaining_by_player),
        visits=[_visit_to_dto(v) for v in leg.visits],
        winner_id=leg.winner_id,
        finished_at=leg.finished_at,
    )


def _set_to_dto(s: SetState) -> SetDTO:
    return SetDTO(
        set_number=s.set_number,
        legs_to_win=s.legs_to_win,
        legs=[_leg_to_dto(leg) for leg in s.legs],
        winner_id=s.winner_id,
        finished_at=s.finished_at,
    )


def _state_to_dto(s: MatchState) -> GameStateDTO:
    legs = legs_won_in_current_set(s)
    sets = sets_won_by_player(s)
    last_visit = s.last_visit
    return GameStateDTO(
        id=s.match_id,
        created_at=s.created_at,
        status=s.status.value,
        config=ConfigDTO(
            mode=s.config.mode,
            starting_score=s.config.starting_score,
            legs_to_win_set=s.config.legs_to_win_set,
            sets_to_win_match=s.config.sets_to_win_match,
            double_in=s.config.double_in,
            double_out=s.config.double_out,
            opener_policy=s.config.opener_policy,
        ),
        players=[GamePlayerDTO(player_id=p.player_id, seat=p.seat) for p in s.players],
        sets=[_set_to_dto(x) for x in s.sets],
        current_set_index=s.current_set_index,
        current_leg_index=s.current_leg_index,
        current_player_id=s.current_player_id,
        winner_id=s.winner_id,
        scores=[
            PlayerScoreDTO(
                player_id=pid,
                remaining=s.current_leg.remaining_by_player[pid],
                legs_won=legs[pid],
                sets_won=sets[pid],
            )
            for pid in s.player_ids
        ],
        last_visit=_visit_to_dto(last_visit) if last_visit is not None else None,
    )


def _player_stats_to_dto(p: PlayerStats) -> PlayerStatsDTO:
    return PlayerStatsDTO(
        player_id=p.player_id,
        visits=p.visits,
        darts_thrown=p.darts_thrown,
        scored_points=p.scored_points,
        busts=p.busts,
        checkouts=p.checkouts,
        checkout_attempts=p.checkout_attempts,
        checkout_percentage=p.checkout_percentage,
        highest_visit=p.highest_visit,
        highest_checkout=p.highest_checkout,
        count_180=p.count_180,
        count_140_plus=p.count_140_plus,
        count_100_plus=p.count_100_plus,
        three_dart_average=p.three_dart_average,
    )


@app.get("/games", response_model=list[GameHeaderDTO])
def list_games() -> list[GameHeaderDTO]:
    out = []
    for engine in store.list_matches():
        s = engine.state()
        out.append(
            GameHeaderDTO(
                id=s.match_id,
                created_at=s.created_at,
                status=s.status.value,
                player_ids=list(s.player_ids),
                winner_id=s.winner_id,
            )
        )
    return out


@app.post("/games", response_model=GameStateDTO)
def create_game(req: CreateGameRequest) -> GameStateDTO:
    config = MatchConfig(
        starting_score=req.config.starting_score,
        legs_to_win_set=req.config.legs_to_win_set,
        sets_to_win_match=req.config.sets_to_win_match,
        double_in=req.config.double_in,
        double_out=req.config.double_out,
        opener_policy=req.config.opener_policy,
        mode=req.config.mode,
    )
    engine = store.create_match(config, req.player_ids)
    return _state_to_dto(engine.state())


@app.get("/games/{game_id}", response_model=GameStateDTO)
def get_game(game_id: str) -> GameStateDTO:
    return _state_to_dto(store.get(game_id).state())


@app.delete("/games/{game_id}")
def delete_game(game_id: str) -> dict:
    return {"deleted": store.delete_match(game_id)}


@app.post("/games/{game_id}/throws", response_model=GameStateDTO)
def submit_visit(game_id: str, req: VisitRequest) -> GameStateDTO:
    state = store.get(game_id).record_visit(req.player_id, req.visit_score, req.darts_thrown)
    return _state_to_dto(state)


@app.post("/games/{game_id}/undo", response_model=GameStateDTO)
def undo_last_visit(game_id: str) -> GameStateDTO:
    return _state_to_dto(store.get(game_id).undo())


@app.get("/games/{game_id}/summary", response_model=SummaryDTO)
def game_summary(game_id: str) -> SummaryDTO:
    summary = summarize(store.get(game_id).state())
    return SummaryDTO(
        set_number=summary.set_number,
        leg_number=summary.leg_number,
        round_number=summary.round_number,
        current_player_id=summary.current_player_id,
        players=[
            PlayerScoreboardDTO(
                player_id=p.player_id,
                seat=p.seat,
                remaining=p.remaining,
                legs_won=p.legs_won,
                sets_won=p.sets_won,
                leg_average=p.leg_average,
                last_visit_score=p.last_visit_score,
            )
            for p in summary.players
        ],
    )


@app.get("/games/{game_id}/stats", response_model=list[PlayerStatsDTO])
def game_stats(game_id: str) -> list[PlayerStatsDTO]:
    return [_player_stats_to_dto(p) for p in compute_match_stats(store.get(game_id).state())]
