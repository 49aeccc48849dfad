"""Database models using SQLModel."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchRecord(SQLModel, table=True):
    """Fixture metadata, one row per provider match id."""

    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: str = Field(unique=True, index=True, max_length=100, description="APIfootball match id")
    country_id: str = Field(default="", max_length=50)
    country_name: str = Field(default="", max_length=100)
    league_id: str = Field(default="", index=True, max_length=50)
    league_name: str = Field(default="", max_length=255)
    match_date: str = Field(index=True, max_length=10, description="YYYY-MM-DD")
    match_time: str = Field(default="", max_length=5, description="HH:MM")

    home_team_id: str = Field(max_length=50, index=True)
    home_team_name: str = Field(max_length=255)
    away_team_id: str = Field(max_length=50, index=True)
    away_team_name: str = Field(max_length=255)

    status: str = Field(default="", max_length=50, description="Provider status, e.g. Finished")
    round: Optional[str] = Field(default=None, max_length=100)
    stadium: Optional[str] = Field(default=None, max_length=255)
    referee: Optional[str] = Field(default=None, max_length=255)
    home_badge: Optional[str] = Field(default=None, max_length=500, description="Team crest URL")
    away_badge: Optional[str] = Field(default=None, max_length=500, description="Team crest URL")

    home_score: Optional[int] = Field(default=None, description="NULL if not played")
    away_score: Optional[int] = Field(default=None, description="NULL if not played")

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class PredictionRecord(SQLModel, table=True):
    """One generated prediction; a match can be predicted many times."""

    __tablename__ = "predictions"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_db_id: int = Field(foreign_key="matches.id", index=True)
    api_match_id: str = Field(index=True, max_length=100)

    winner_home: float = Field(description="Home win probability (0-100)")
    winner_draw: float = Field(description="Draw probability (0-100)")
    winner_away: float = Field(description="Away win probability (0-100)")
    predicted_score_home: int
    predicted_score_away: int
    btts_yes: float
    btts_no: float
    over25: float
    under25: float
    confidence: float

    # Head-to-head summary (NULL when no meetings)
    h2h_home_wins: Optional[int] = Field(default=None)
    h2h_draws: Optional[int] = Field(default=None)
    h2h_away_wins: Optional[int] = Field(default=None)
    h2h_avg_home_goals: Optional[float] = Field(default=None)
    h2h_avg_away_goals: Optional[float] = Field(default=None)

    ai_reasoning: Optional[str] = Field(default=None)

    # Filled once the real match is over
    actual_score_home: Optional[int] = Field(default=None)
    actual_score_away: Optional[int] = Field(default=None)
    result_status: Optional[str] = Field(default=None, max_length=10, description="win, loss, draw")

    is_marked: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
