"""
HTTP surface for rankings.

Every response is a JSON envelope: {"success": true, "data": ..., "message": ...}
on success and {"success": false, "error": "..."} on failure.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from . import config, db
from .errors import InvalidMedal, MatchNotFound, PlayerNotFound, TournamentNotFound
from .logging_config import get_logger
from .models import Player
from .ranking import RankingEngine

log = get_logger(__name__)

NOT_FOUND_OR_NO_MATCHES = "Player not found or has no tournament matches"

router = APIRouter(prefix="/api")


class MedalAward(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    medal: Literal["gold", "silver", "bronze"]
    tournament_name: Optional[str] = Field(None, alias="tournamentName")


class MedalEdit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tournament_name: Optional[str] = Field(None, alias="tournamentName")


class TournamentStatus(BaseModel):
    status: Literal["draft", "completed"]


class MatchResult(BaseModel):
    score: Optional[str] = None
    winner: Optional[str] = None
    round: Optional[str] = None


def ok(data, message: str | None = None) -> dict:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def fail(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def _engine(request: Request) -> RankingEngine:
    return request.app.state.engine


def _player_dict(player: Player) -> dict:
    return {
        "id": player.id,
        "name": player.name,
        "gender": player.gender,
        "medals": [m.to_dict() for m in player.medals],
    }


# ========================================
# Rankings
# ========================================

@router.get("/rankings")
async def get_rankings(
    request: Request,
    gender: Optional[Literal["male", "female"]] = None,
    limit: Optional[int] = Query(None, ge=1),
):
    stats = await _engine(request).calculate_rankings(gender=gender, limit=limit)
    return ok(stats.to_dict(), f"Retrieved {len(stats.rankings)} player rankings")


@router.get("/rankings/top/{count}")
async def get_top_players(request: Request, count: str, gender: Optional[Literal["male", "female"]] = None):
    try:
        limit = int(count)
    except ValueError:
        limit = 0
    if limit < 1 or limit > config.TOP_PLAYERS_MAX:
        return fail(400, f"Invalid count parameter (must be between 1 and {config.TOP_PLAYERS_MAX})")
    top = await _engine(request).get_top_players(limit, gender)
    return ok([r.to_dict() for r in top], f"Retrieved top {len(top)} players")


@router.get("/rankings/player/{player_id}")
async def get_player_ranking(request: Request, player_id: str):
    ranking = await _engine(request).get_player_ranking(player_id)
    if ranking is None:
        return fail(404, NOT_FOUND_OR_NO_MATCHES)
    return ok(ranking.to_dict(), f"Retrieved ranking for {ranking.player_name}")


@router.get("/rankings/player/{player_id}/stats")
async def get_player_stats(request: Request, player_id: str):
    stats = await _engine(request).get_player_stats(player_id)
    if stats.ranking is None:
        return fail(404, NOT_FOUND_OR_NO_MATCHES)
    return ok(stats.to_dict(), f"Retrieved stats for {stats.ranking.player_name}")


# ========================================
# Mutations that invalidate rankings
# ========================================

@router.post("/players/{player_id}/medals")
async def award_medal(request: Request, player_id: str, body: MedalAward):
    player = await db.award_medal(player_id, body.medal, body.tournament_name)
    _engine(request).clear_cache()
    suffix = f" for {body.tournament_name}" if body.tournament_name else ""
    return ok(_player_dict(player), f"{body.medal} medal awarded to {player.name}{suffix}")


@router.put("/players/{player_id}/medals/{index}")
async def edit_medal(request: Request, player_id: str, index: int, body: MedalEdit):
    player = await db.edit_medal(player_id, index, body.tournament_name)
    _engine(request).clear_cache()
    return ok(_player_dict(player), f"Medal updated for {player.name}")


@router.delete("/players/{player_id}/medals/{index}")
async def remove_medal(request: Request, player_id: str, index: int):
    removed = await db.remove_medal(player_id, index)
    _engine(request).clear_cache()
    player = await db.get_player(player_id)
    return ok(_player_dict(player), f"{removed.type} medal removed from {player.name}")


@router.patch("/tournaments/{tournament_id}/status")
async def set_tournament_status(request: Request, tournament_id: str, body: TournamentStatus):
    await db.set_tournament_status(tournament_id, body.status)
    _engine(request).clear_cache()
    return ok({"id": tournament_id, "status": body.status}, f"Tournament marked {body.status}")


@router.put("/tournaments/{tournament_id}/matches/{index}")
async def update_match(request: Request, tournament_id: str, index: int, body: MatchResult):
    match = await db.update_match(tournament_id, index, **body.model_dump(exclude_unset=True))
    _engine(request).clear_cache()
    data = {
        "index": index,
        "matchType": match.match_type,
        "score": match.score,
        "winner": match.winner,
        "round": match.round,
    }
    return ok(data, "Match updated successfully")


@router.delete("/tournaments/{tournament_id}")
async def delete_tournament(request: Request, tournament_id: str):
    await db.delete_tournament(tournament_id)
    _engine(request).clear_cache()
    return ok({"id": tournament_id}, "Tournament deleted successfully")


# ========================================
# Error mapping
# ========================================

async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return fail(404, str(exc))


async def _invalid_medal(request: Request, exc: InvalidMedal) -> JSONResponse:
    return fail(400, str(exc))


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.get("loc", ()) if p not in ("query", "path", "body"))
        msg = f"Invalid {where}: {first.get('msg')}" if where else str(first.get("msg"))
    else:
        msg = "Invalid request"
    return fail(400, msg)


async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return fail(500, "Internal server error")


def create_app(engine: RankingEngine | None = None, db_path: str | None = None) -> FastAPI:
    """Build the FastAPI app. The engine (and its cache) lives as long as the app."""
    engine = engine if engine is not None else RankingEngine()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine.store is db:
            await db.init_db(db_path or db.DB_PATH)
            log.info("Rankings service ready | DB=%s | cache TTL=%ss", db.DB_PATH, engine.cache.ttl_seconds)
        yield

    app = FastAPI(title="Tennis club rankings", lifespan=lifespan)
    app.state.engine = engine
    app.include_router(router)
    app.add_exception_handler(PlayerNotFound, _not_found)
    app.add_exception_handler(TournamentNotFound, _not_found)
    app.add_exception_handler(MatchNotFound, _not_found)
    app.add_exception_handler(InvalidMedal, _invalid_medal)
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_exception_handler(Exception, _unexpected)
    return app
