# rockmundo/webapp.py
from __future__ import annotations

import random
from dataclasses import asdict
from datetime import date
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rockmundo.errors import RockmundoError
from rockmundo.fans import calculate_fan_conversion_with_demographics
from rockmundo.festivals import calculate_performance_score, complete_festival_performance, festival_rewards
from rockmundo.finance import band_finances
from rockmundo.gigs import execute_gig
from rockmundo.logger import configure_logging, get_logger
from rockmundo.models import (
    FanConversionInput,
    FestivalPerformanceInput,
    PerformanceMetrics,
    SongQualityInputs,
)
from rockmundo.royalties import calculate_royalty_distribution
from rockmundo.settings import get_settings
from rockmundo.songs import calculate_song_quality
from rockmundo.store import GameStore, get_store

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

app = FastAPI(title="rockmundo game rules")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# One store per process; tests swap it through dependency_overrides.
STORE: GameStore = get_store(settings)


def get_game_store() -> GameStore:
    return STORE


def get_rng() -> random.Random:
    # Deterministic when a seed is configured; otherwise fresh randomness per request.
    return random.Random(settings.rng_seed) if settings.rng_seed is not None else random.Random()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FestivalPerformanceRequest(CamelModel):
    participation_id: str
    band_id: str
    performance_score: float = Field(ge=0, le=100)
    crowd_energy_peak: float = Field(ge=0, le=100)
    crowd_energy_avg: float = Field(ge=0, le=100)
    event_responses: List[float] = []
    songs_performed: int = 0


class FanConversionRequest(CamelModel):
    gig_id: str
    band_id: str
    venue_id: str
    actual_attendance: int = Field(ge=0)
    overall_rating: float = Field(ge=0, le=25)
    performance_grade: str
    band_fame: float = 0
    band_genre: Optional[str] = None


class GigRequest(CamelModel):
    gig_id: str
    band_id: str
    setlist_id: str
    venue_capacity: int = Field(gt=0)
    ticket_price: float = Field(ge=0)


class SongQualityRequest(CamelModel):
    genre: str
    skill_levels: Dict[str, float] = {}
    creative_insight: float = 0
    musical_ability: float = 0
    technical_mastery: float = 0
    session_hours: float = 0
    co_writers: int = Field(default=0, ge=0)
    ai_lyrics: bool = False
    songs_written: int = Field(default=0, ge=0)
    sessions_completed: int = Field(default=0, ge=0)


class RoyaltyRequest(CamelModel):
    gross_revenue: float
    artist_pct: float
    advance_amount: float = 0
    recouped_amount: float = 0
    collaborators: Dict[str, float] = {}


class FestivalScoreRequest(CamelModel):
    song_familiarity: float
    gear_quality: float
    band_chemistry: float
    setlist_flow: float
    crowd_management: float
    event_responses: float
    crowd_energy_avg: float = 50
    base_payment: Optional[float] = None


@app.exception_handler(RockmundoError)
async def rockmundo_error_handler(request: Request, exc: RockmundoError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("%s %s crashed: %r", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})


@app.get("/health")
def health():
    return {"status": "ok", "store": settings.store}


@app.post("/functions/complete-festival-performance")
def festival_performance(
    body: FestivalPerformanceRequest,
    store: GameStore = Depends(get_game_store),
    rng: random.Random = Depends(get_rng),
):
    result = complete_festival_performance(store, FestivalPerformanceInput(**body.model_dump()), rng)
    return {"success": True, **asdict(result)}


@app.post("/functions/fan-conversion")
def fan_conversion(body: FanConversionRequest, store: GameStore = Depends(get_game_store)):
    result = calculate_fan_conversion_with_demographics(store, FanConversionInput(**body.model_dump()))
    return asdict(result)


@app.post("/functions/execute-gig")
def gig(
    body: GigRequest,
    store: GameStore = Depends(get_game_store),
    rng: random.Random = Depends(get_rng),
):
    return asdict(execute_gig(store, rng=rng, **body.model_dump()))


@app.post("/rules/song-quality")
def song_quality(body: SongQualityRequest, rng: random.Random = Depends(get_rng)):
    return asdict(calculate_song_quality(SongQualityInputs(**body.model_dump()), rng))


@app.post("/rules/royalty-distribution")
def royalty_distribution(body: RoyaltyRequest):
    result = calculate_royalty_distribution(
        body.gross_revenue,
        body.artist_pct,
        advance_amount=body.advance_amount,
        recouped_amount=body.recouped_amount,
        collaborators=body.collaborators or None,
    )
    return asdict(result)


@app.post("/rules/festival-score")
def festival_score(body: FestivalScoreRequest):
    metrics = PerformanceMetrics(**body.model_dump(exclude={"crowd_energy_avg", "base_payment"}))
    score = calculate_performance_score(metrics)
    return {
        "performance_score": score,
        "rewards": festival_rewards(score, body.crowd_energy_avg, body.base_payment),
    }


@app.get("/bands/{band_id}/finances")
def finances(band_id: str, store: GameStore = Depends(get_game_store)):
    report = band_finances(store, band_id, date.today())
    return {
        **report,
        "summary": asdict(report["summary"]),
        "ledger": [asdict(m) for m in report["ledger"]],
        "recent": [asdict(t) for t in report["recent"]],
    }
