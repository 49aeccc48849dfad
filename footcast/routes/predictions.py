"""Prediction routes: generate, batch, search, history and grading."""

import asyncio
import logging
import time
from dataclasses import asdict, replace
from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from footcast.database import get_async_session
from footcast.prediction.engine import PredictionEngine
from footcast.prediction.fusion import ExternalJudgmentUnavailable
from footcast.prediction.types import Match
from footcast.state import get_engine, get_shutdown_event
from footcast.storage import PredictionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictions", tags=["predictions"])

# Synthetic fixtures built by /search when no real fixture exists
SEARCH_KICKOFF_TIME = "15:00"
NOT_STARTED = "Not Started"


# =============================================================================
# REQUEST MODELS
# =============================================================================


class MatchRequest(BaseModel):
    match_id: str
    league_id: str = ""
    league_name: str = ""
    country_id: str = ""
    country_name: str = ""
    match_date: str
    match_time: str = ""
    home_team_id: str
    home_team_name: str
    away_team_id: str
    away_team_name: str
    status: str = ""
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    round: Optional[str] = None
    stadium: Optional[str] = None
    referee: Optional[str] = None
    home_badge: Optional[str] = None
    away_badge: Optional[str] = None
    odds_home: Optional[float] = None
    odds_draw: Optional[float] = None
    odds_away: Optional[float] = None


class BatchRequest(BaseModel):
    date_from: str
    date_to: str
    league_id: Optional[str] = None
    country_id: Optional[str] = None
    max_predictions: Optional[int] = Field(default=None, gt=0)


class SearchRequest(BaseModel):
    home_team_id: str = ""
    away_team_id: str = ""
    home_team_name: str = ""
    away_team_name: str = ""
    league_id: str = ""
    league_name: str = ""
    country_id: str = ""
    country_name: str = ""


class DeleteRequest(BaseModel):
    prediction_ids: list[int]


class ResultRequest(BaseModel):
    home: int = Field(ge=0)
    away: int = Field(ge=0)


class MarkRequest(BaseModel):
    is_marked: bool


# =============================================================================
# GENERATION
# =============================================================================


@router.post("/generate")
async def generate_prediction(
    body: MatchRequest,
    engine: PredictionEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_async_session),
):
    """Predict one fixture and store the result."""
    match = Match(**body.model_dump())
    try:
        prediction = await engine.generate_prediction(match)
    except ExternalJudgmentUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))

    prediction.prediction_id = await PredictionStore(session).save_match_and_prediction(prediction)
    return prediction.to_dict()


@router.post("/batch")
async def generate_batch(
    body: BatchRequest,
    engine: PredictionEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_async_session),
    cancel_event: asyncio.Event = Depends(get_shutdown_event),
):
    """
    Predict every upcoming fixture in a date range, one at a time.

    Finished fixtures are ignored. Failing fixtures are reported in
    `skipped` and do not abort the batch.
    """
    limit = min(
        body.max_predictions or engine.settings.MAX_BATCH_PREDICTIONS,
        engine.settings.MAX_BATCH_PREDICTIONS,
    )
    fixtures = await engine.provider.get_fixtures(
        body.date_from, body.date_to, league_id=body.league_id, country_id=body.country_id
    )
    upcoming = [m for m in fixtures if not m.is_finished]
    logger.info(
        f"Batch {body.date_from}..{body.date_to}: {len(fixtures)} fixtures, "
        f"{len(upcoming)} upcoming, limit={limit}"
    )

    store = PredictionStore(session)

    async def save(prediction):
        prediction.prediction_id = await store.save_match_and_prediction(prediction)

    predictions, skipped = await engine.generate_batch(
        upcoming, max_predictions=limit, cancel_event=cancel_event, on_prediction=save
    )
    return {
        "predictions": [p.to_dict() for p in predictions],
        "skipped": skipped,
        "total_fixtures": len(fixtures),
    }


def _oriented_to(match: Match, home_team_id: str) -> Match:
    """The same fixture relabeled so `home_team_id` is the home side."""
    if match.home_team_id == home_team_id:
        return match
    return replace(
        match,
        home_team_id=match.away_team_id,
        home_team_name=match.away_team_name,
        away_team_id=match.home_team_id,
        away_team_name=match.home_team_name,
        home_score=match.away_score,
        away_score=match.home_score,
        home_badge=match.away_badge,
        away_badge=match.home_badge,
        odds_home=match.odds_away,
        odds_away=match.odds_home,
    )


@router.post("/search")
async def search_prediction(
    body: SearchRequest,
    engine: PredictionEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Predict (or report) a fixture between two chosen teams.

    A fixture found with the teams reversed is relabeled to the requested
    orientation first. A finished fixture returns its real score. Otherwise
    the upcoming fixture is predicted, or a synthetic one kicking off
    tomorrow when none is scheduled.
    """
    home_id = body.home_team_id.strip()
    away_id = body.away_team_id.strip()
    if not home_id or not away_id:
        raise HTTPException(status_code=400, detail="Both home_team_id and away_team_id are required.")
    if home_id == away_id:
        raise HTTPException(status_code=400, detail="Home and away teams must be different.")

    found = await engine.provider.find_match_between_teams(home_id, away_id)
    if found is not None:
        found = _oriented_to(found, home_id)

    if found is not None and found.is_finished and found.home_score is not None and found.away_score is not None:
        actual = {"home": found.home_score, "away": found.away_score}
        logger.info(f"Search {home_id} vs {away_id}: finished match {found.match_id}, no prediction")
        return {"status": "finished", "match": asdict(found), "actual_score": actual}

    match = found
    if match is None:
        match = Match(
            match_id=f"search_{home_id}_{away_id}_{int(time.time() * 1000)}",
            league_id=body.league_id,
            league_name=body.league_name,
            country_id=body.country_id,
            country_name=body.country_name,
            match_date=(date.today() + timedelta(days=1)).isoformat(),
            match_time=SEARCH_KICKOFF_TIME,
            home_team_id=home_id,
            home_team_name=body.home_team_name,
            away_team_id=away_id,
            away_team_name=body.away_team_name,
            status=NOT_STARTED,
        )

    try:
        prediction = await engine.generate_prediction(match)
    except ExternalJudgmentUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))

    prediction.prediction_id = await PredictionStore(session).save_match_and_prediction(prediction)
    return {"status": "predicted", "prediction": prediction.to_dict()}


# =============================================================================
# HISTORY
# =============================================================================


@router.get("/history")
async def get_history(
    date_from: str = Query(...),
    date_to: str = Query(...),
    league_id: Optional[str] = Query(None),
    country_id: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_async_session),
):
    """Stored predictions for fixtures in a date range, newest first."""
    predictions = await PredictionStore(session).get_historical_predictions(
        date_from, date_to, league_id=league_id, country_id=country_id
    )
    return {"predictions": [p.to_dict() for p in predictions]}


@router.get("/dates")
async def get_dates(session: AsyncSession = Depends(get_async_session)):
    """Match dates that have stored predictions."""
    return {"dates": await PredictionStore(session).get_available_prediction_dates()}


@router.delete("/{prediction_id}")
async def delete_prediction(prediction_id: int, session: AsyncSession = Depends(get_async_session)):
    if not await PredictionStore(session).delete_prediction(prediction_id):
        raise HTTPException(status_code=404, detail="Prediction not found.")
    return {"deleted": 1}


@router.post("/delete")
async def delete_predictions(body: DeleteRequest, session: AsyncSession = Depends(get_async_session)):
    deleted = await PredictionStore(session).delete_predictions(body.prediction_ids)
    return {"deleted": deleted}


@router.delete("")
async def delete_all_predictions(
    date_from: Optional[str] = Query(None),
    date_to: Optional[str] = Query(None),
    league_id: Optional[str] = Query(None),
    country_id: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_async_session),
):
    """Delete every prediction, or only those matching the filters."""
    deleted = await PredictionStore(session).delete_all_predictions(
        date_from=date_from, date_to=date_to, league_id=league_id, country_id=country_id
    )
    return {"deleted": deleted}


# =============================================================================
# GRADING
# =============================================================================


@router.post("/{prediction_id}/result")
async def record_result(
    prediction_id: int,
    body: ResultRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Store the real final score and grade the prediction."""
    status = await PredictionStore(session).update_prediction_with_result(
        prediction_id, body.home, body.away
    )
    if status is None:
        raise HTTPException(status_code=404, detail="Prediction not found.")
    return {"prediction_id": prediction_id, "result_status": status.value}


@router.post("/{prediction_id}/mark")
async def mark_prediction(
    prediction_id: int,
    body: MarkRequest,
    session: AsyncSession = Depends(get_async_session),
):
    if not await PredictionStore(session).mark_prediction(prediction_id, body.is_marked):
        raise HTTPException(status_code=404, detail="Prediction not found.")
    return {"prediction_id": prediction_id, "is_marked": body.is_marked}
