"""
Typed records for the prediction engine.

Provider payloads arrive as loosely-typed dicts (every number is a string);
the ETL layer converts them into these dataclasses once, so the engine only
ever sees explicit required/optional fields.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

FINISHED = "Finished"


class Venue(str, Enum):
    """Side a team plays on in a given fixture."""

    HOME = "home"
    AWAY = "away"


class ResultStatus(str, Enum):
    """Classification of a stored prediction once the real score is known."""

    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"  # right winner, score too far off


# =============================================================================
# INPUTS
# =============================================================================


@dataclass(frozen=True)
class Match:
    """A fixture to predict (immutable for the duration of a request)."""

    match_id: str
    league_id: str
    league_name: str
    country_id: str
    country_name: str
    match_date: str  # YYYY-MM-DD
    match_time: str  # HH:MM
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

    @property
    def is_finished(self) -> bool:
        return self.status == FINISHED

    @property
    def has_odds(self) -> bool:
        return any(o is not None for o in (self.odds_home, self.odds_draw, self.odds_away))


@dataclass(frozen=True)
class HistoricalMatch:
    """A completed (or listed) fixture used as head-to-head or form evidence."""

    match_id: str
    match_date: str
    home_team_id: str
    home_team_name: str
    away_team_id: str
    away_team_name: str
    home_score: int
    away_score: int
    status: str

    @property
    def is_finished(self) -> bool:
        return self.status == FINISHED


@dataclass
class HeadToHeadData:
    """Head-to-head payload: direct meetings plus each side's latest results."""

    meetings: list[HistoricalMatch] = field(default_factory=list)
    home_latest: list[HistoricalMatch] = field(default_factory=list)
    away_latest: list[HistoricalMatch] = field(default_factory=list)


@dataclass
class VenueStats:
    """Season aggregate for one context (overall, home or away)."""

    played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    position: Optional[int] = None


@dataclass
class TeamSeasonStats:
    """Per-team, per-competition standings line."""

    team_id: str
    team_name: str
    overall: VenueStats = field(default_factory=VenueStats)
    home: VenueStats = field(default_factory=VenueStats)
    away: VenueStats = field(default_factory=VenueStats)
    points: Optional[int] = None

    def for_venue(self, venue: Venue) -> VenueStats:
        return self.home if venue == Venue.HOME else self.away


# =============================================================================
# DERIVED VALUES
# =============================================================================


@dataclass
class HeadToHeadSummary:
    """Meetings reduced onto the current home/away assignment."""

    home_wins: int = 0
    draws: int = 0
    away_wins: int = 0
    total_matches: int = 0
    avg_home_goals: float = 0.0
    avg_away_goals: float = 0.0


@dataclass
class FormSummary:
    """Short-window record for one team."""

    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    avg_goals_for: float = 0.0
    avg_goals_against: float = 0.0
    matches_considered: int = 0


@dataclass(frozen=True)
class ScoreProbability:
    """One cell of the score table."""

    home: int
    away: int
    probability: float


@dataclass
class StatisticalSummary:
    """Output of the statistical pipeline, handed to the judge and the fuser."""

    home_expected_goals: float
    away_expected_goals: float
    score_mode: tuple[int, int]
    home_win_prob: float
    draw_prob: float
    away_win_prob: float
    btts_yes: float
    over25: float
    confidence: float


@dataclass
class ExternalJudgment:
    """
    Structured estimate returned by the external judge.

    Untrusted: values are stored as received and validated by
    fusion.validate_judgment() before use. btts/over-under are optional.
    """

    predicted_home: float
    predicted_away: float
    home_win_prob: float
    draw_prob: float
    away_win_prob: float
    confidence: float = 0.0
    reasoning: Optional[str] = None
    btts_yes: Optional[float] = None
    btts_no: Optional[float] = None
    over25: Optional[float] = None
    under25: Optional[float] = None


# =============================================================================
# OUTPUT
# =============================================================================


@dataclass
class MatchPrediction:
    """Final fused record for one fixture."""

    match: Match
    home_win_prob: float
    draw_prob: float
    away_win_prob: float
    predicted_home: int
    predicted_away: int
    btts_yes: float
    btts_no: float
    over25: float
    under25: float
    confidence: float
    ai_reasoning: Optional[str] = None
    h2h_summary: Optional[HeadToHeadSummary] = None
    # Only set when read back from storage
    prediction_id: Optional[int] = None
    actual_home: Optional[int] = None
    actual_away: Optional[int] = None
    result_status: Optional[ResultStatus] = None
    is_marked: bool = False
    updated_at: Optional[str] = None

    def to_dict(self) -> dict:
        """JSON-ready nested representation."""
        data = {
            "match": asdict(self.match),
            "winner": {
                "home": self.home_win_prob,
                "draw": self.draw_prob,
                "away": self.away_win_prob,
            },
            "predicted_score": {"home": self.predicted_home, "away": self.predicted_away},
            "both_teams_to_score": {"yes": self.btts_yes, "no": self.btts_no},
            "over_under": {"over25": self.over25, "under25": self.under25},
            "confidence": self.confidence,
            "ai_reasoning": self.ai_reasoning,
            "h2h_summary": None,
        }
        if self.h2h_summary is not None:
            h2h = self.h2h_summary
            data["h2h_summary"] = {
                "home_wins": h2h.home_wins,
                "draws": h2h.draws,
                "away_wins": h2h.away_wins,
                "avg_home_goals": h2h.avg_home_goals,
                "avg_away_goals": h2h.avg_away_goals,
            }
        if self.prediction_id is not None:
            data["prediction_id"] = self.prediction_id
            data["actual_score"] = (
                {"home": self.actual_home, "away": self.actual_away}
                if self.actual_home is not None and self.actual_away is not None
                else None
            )
            data["result_status"] = self.result_status.value if self.result_status else None
            data["is_marked"] = self.is_marked
            data["updated_at"] = self.updated_at
        return data
