"""
Prediction storage service.

Persists fixtures and generated predictions, reads them back as
MatchPrediction records and grades them once real scores are known.
"""

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from footcast.models import MatchRecord, PredictionRecord, utcnow
from footcast.prediction.results import determine_result_status
from footcast.prediction.types import (
    FINISHED,
    HeadToHeadSummary,
    Match,
    MatchPrediction,
    ResultStatus,
)

logger = logging.getLogger(__name__)

# Fixture fields copied onto MatchRecord on every upsert
_MATCH_FIELDS = (
    "country_id",
    "country_name",
    "league_id",
    "league_name",
    "match_date",
    "match_time",
    "home_team_id",
    "home_team_name",
    "away_team_id",
    "away_team_name",
    "status",
    "round",
    "stadium",
    "referee",
    "home_badge",
    "away_badge",
    "home_score",
    "away_score",
)


def _match_from_record(record: MatchRecord) -> Match:
    return Match(
        match_id=record.match_id,
        league_id=record.league_id,
        league_name=record.league_name,
        country_id=record.country_id,
        country_name=record.country_name,
        match_date=record.match_date,
        match_time=record.match_time,
        home_team_id=record.home_team_id,
        home_team_name=record.home_team_name,
        away_team_id=record.away_team_id,
        away_team_name=record.away_team_name,
        status=record.status or "",
        home_score=record.home_score,
        away_score=record.away_score,
        round=record.round,
        stadium=record.stadium,
        referee=record.referee,
        home_badge=record.home_badge,
        away_badge=record.away_badge,
    )


def _prediction_from_records(pred: PredictionRecord, match: MatchRecord) -> MatchPrediction:
    h2h_summary = None
    if pred.h2h_home_wins is not None:
        h2h_draws = pred.h2h_draws or 0
        h2h_away_wins = pred.h2h_away_wins or 0
        h2h_summary = HeadToHeadSummary(
            home_wins=pred.h2h_home_wins,
            draws=h2h_draws,
            away_wins=h2h_away_wins,
            total_matches=pred.h2h_home_wins + h2h_draws + h2h_away_wins,
            avg_home_goals=pred.h2h_avg_home_goals or 0.0,
            avg_away_goals=pred.h2h_avg_away_goals or 0.0,
        )
    return MatchPrediction(
        match=_match_from_record(match),
        home_win_prob=pred.winner_home,
        draw_prob=pred.winner_draw,
        away_win_prob=pred.winner_away,
        predicted_home=pred.predicted_score_home,
        predicted_away=pred.predicted_score_away,
        btts_yes=pred.btts_yes,
        btts_no=pred.btts_no,
        over25=pred.over25,
        under25=pred.under25,
        confidence=pred.confidence,
        ai_reasoning=pred.ai_reasoning,
        h2h_summary=h2h_summary,
        prediction_id=pred.id,
        actual_home=pred.actual_score_home,
        actual_away=pred.actual_score_away,
        result_status=ResultStatus(pred.result_status) if pred.result_status else None,
        is_marked=bool(pred.is_marked),
        updated_at=pred.updated_at.isoformat() if pred.updated_at else None,
    )


class PredictionStore:
    """Session-scoped storage operations for matches and predictions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def save_match(self, match: Match) -> int:
        """
        Insert or update a fixture by provider match id.

        Returns:
            Database id of the MatchRecord.
        """
        result = await self.session.execute(
            select(MatchRecord).where(MatchRecord.match_id == match.match_id)
        )
        record = result.scalar_one_or_none()

        if record is None:
            record = MatchRecord(match_id=match.match_id)
            self.session.add(record)

        for name in _MATCH_FIELDS:
            value = getattr(match, name)
            # Never erase a known final score with an empty one
            if name in ("home_score", "away_score") and value is None:
                continue
            setattr(record, name, value)
        record.updated_at = utcnow()

        await self.session.commit()
        await self.session.refresh(record)
        return record.id

    async def save_prediction(self, match_db_id: int, prediction: MatchPrediction) -> int:
        """Insert one prediction row for an already stored match."""
        h2h = prediction.h2h_summary
        record = PredictionRecord(
            match_db_id=match_db_id,
            api_match_id=prediction.match.match_id,
            winner_home=prediction.home_win_prob,
            winner_draw=prediction.draw_prob,
            winner_away=prediction.away_win_prob,
            predicted_score_home=prediction.predicted_home,
            predicted_score_away=prediction.predicted_away,
            btts_yes=prediction.btts_yes,
            btts_no=prediction.btts_no,
            over25=prediction.over25,
            under25=prediction.under25,
            confidence=prediction.confidence,
            h2h_home_wins=h2h.home_wins if h2h else None,
            h2h_draws=h2h.draws if h2h else None,
            h2h_away_wins=h2h.away_wins if h2h else None,
            h2h_avg_home_goals=h2h.avg_home_goals if h2h else None,
            h2h_avg_away_goals=h2h.avg_away_goals if h2h else None,
            ai_reasoning=prediction.ai_reasoning,
        )
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return record.id

    async def save_match_and_prediction(self, prediction: MatchPrediction) -> int:
        """Upsert the fixture, then store the prediction. Returns the prediction id."""
        match_db_id = await self.save_match(prediction.match)
        prediction_id = await self.save_prediction(match_db_id, prediction)
        logger.info(f"Stored prediction {prediction_id} for match {prediction.match.match_id}")
        return prediction_id

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _filtered_query(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        league_id: Optional[str] = None,
        country_id: Optional[str] = None,
    ):
        query = select(PredictionRecord, MatchRecord).join(
            MatchRecord, PredictionRecord.match_db_id == MatchRecord.id
        )
        if date_from:
            query = query.where(MatchRecord.match_date >= date_from)
        if date_to:
            query = query.where(MatchRecord.match_date <= date_to)
        if league_id:
            query = query.where(MatchRecord.league_id == league_id)
        if country_id:
            query = query.where(MatchRecord.country_id == country_id)
        return query

    async def get_historical_predictions(
        self,
        date_from: str,
        date_to: str,
        league_id: Optional[str] = None,
        country_id: Optional[str] = None,
    ) -> list[MatchPrediction]:
        """Stored predictions for fixtures in [date_from, date_to], newest first."""
        query = self._filtered_query(date_from, date_to, league_id, country_id).order_by(
            PredictionRecord.created_at.desc(), PredictionRecord.id.desc()
        )
        result = await self.session.execute(query)
        return [_prediction_from_records(pred, match) for pred, match in result.all()]

    async def get_prediction(self, prediction_id: int) -> Optional[MatchPrediction]:
        result = await self.session.execute(
            select(PredictionRecord, MatchRecord)
            .join(MatchRecord, PredictionRecord.match_db_id == MatchRecord.id)
            .where(PredictionRecord.id == prediction_id)
        )
        row = result.first()
        if row is None:
            return None
        return _prediction_from_records(*row)

    async def get_available_prediction_dates(self) -> list[str]:
        """Distinct match dates that have at least one prediction, most recent first."""
        result = await self.session.execute(
            select(MatchRecord.match_date)
            .join(PredictionRecord, PredictionRecord.match_db_id == MatchRecord.id)
            .distinct()
            .order_by(MatchRecord.match_date.desc())
        )
        return [row[0] for row in result.all()]

    # -------------------------------------------------------------------------
    # Deletes
    # -------------------------------------------------------------------------

    async def delete_prediction(self, prediction_id: int) -> bool:
        """Delete one prediction. Returns False if it did not exist."""
        result = await self.session.execute(
            delete(PredictionRecord).where(PredictionRecord.id == prediction_id)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def delete_predictions(self, prediction_ids: list[int]) -> int:
        """Delete several predictions. Returns the number removed."""
        if not prediction_ids:
            return 0
        result = await self.session.execute(
            delete(PredictionRecord).where(PredictionRecord.id.in_(prediction_ids))
        )
        await self.session.commit()
        return result.rowcount

    async def delete_all_predictions(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        league_id: Optional[str] = None,
        country_id: Optional[str] = None,
    ) -> int:
        """
        Delete predictions, optionally only those whose fixture matches the filters.

        Returns:
            Number of predictions removed.
        """
        statement = delete(PredictionRecord)
        if date_from or date_to or league_id or country_id:
            match_ids = select(MatchRecord.id)
            if date_from:
                match_ids = match_ids.where(MatchRecord.match_date >= date_from)
            if date_to:
                match_ids = match_ids.where(MatchRecord.match_date <= date_to)
            if league_id:
                match_ids = match_ids.where(MatchRecord.league_id == league_id)
            if country_id:
                match_ids = match_ids.where(MatchRecord.country_id == country_id)
            statement = statement.where(PredictionRecord.match_db_id.in_(match_ids))

        result = await self.session.execute(statement)
        await self.session.commit()
        logger.info(f"Deleted {result.rowcount} predictions")
        return result.rowcount

    # -------------------------------------------------------------------------
    # Grading
    # -------------------------------------------------------------------------

    async def update_prediction_with_result(
        self, prediction_id: int, actual_home: int, actual_away: int
    ) -> Optional[ResultStatus]:
        """
        Store the real final score, grade the prediction and mark the match finished.

        Returns:
            The result status, or None if the prediction does not exist.
        """
        pred = await self.session.get(PredictionRecord, prediction_id)
        if pred is None:
            return None

        status = determine_result_status(
            (pred.winner_home, pred.winner_draw, pred.winner_away),
            (pred.predicted_score_home, pred.predicted_score_away),
            (actual_home, actual_away),
        )
        now = utcnow()
        pred.actual_score_home = actual_home
        pred.actual_score_away = actual_away
        pred.result_status = status.value
        pred.updated_at = now

        match = await self.session.get(MatchRecord, pred.match_db_id)
        if match is not None:
            match.home_score = actual_home
            match.away_score = actual_away
            match.status = FINISHED
            match.updated_at = now

        await self.session.commit()
        logger.info(f"Prediction {prediction_id} graded {status.value} ({actual_home}-{actual_away})")
        return status

    async def mark_prediction(self, prediction_id: int, is_marked: bool) -> bool:
        """Set or clear the user bookmark flag. Returns False if not found."""
        pred = await self.session.get(PredictionRecord, prediction_id)
        if pred is None:
            return False
        pred.is_marked = is_marked
        pred.updated_at = utcnow()
        await self.session.commit()
        return True
