"""
Fusion of the statistical model with the external judgment.

Mixing weights:
    score       70% judgment / 30% statistical mode
    1X2         60% judgment / 40% statistical, renormalized to 100
    BTTS, O2.5  60% judgment / 40% statistical when the judgment has them
    confidence  50% / 50%
"""

import math
from dataclasses import dataclass, replace
from typing import Optional

from footcast.prediction.blending import normalize_to_100
from footcast.prediction.types import ExternalJudgment, StatisticalSummary

SCORE_AI_WEIGHT = 0.7
PROB_AI_WEIGHT = 0.6
CONFIDENCE_AI_WEIGHT = 0.5

SCORE_MIN = 0
SCORE_MAX = 5


class ExternalJudgmentUnavailable(RuntimeError):
    """The external judge returned nothing usable; no prediction is emitted."""

    def __init__(self, match_id: Optional[str] = None, reason: str = "no judgment returned"):
        self.match_id = match_id
        self.reason = reason
        super().__init__(
            f"External judgment unavailable for match {match_id}: {reason}"
            if match_id
            else f"External judgment unavailable: {reason}"
        )


@dataclass
class FusedOutcome:
    """Core MatchPrediction fields, percentages rounded to one decimal."""

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
    reasoning: Optional[str] = None


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with .5 going up (Python's round() is banker's rounding)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _clamp(value: Optional[float], low: float, high: float) -> float:
    if value is None or not math.isfinite(value):
        return low
    return max(low, min(high, value))


def _clamp_optional(value: Optional[float]) -> Optional[float]:
    return None if value is None else _clamp(value, 0.0, 100.0)


def _clamp_score(value: float) -> int:
    if value is None or not math.isfinite(value):
        return SCORE_MIN
    return int(max(SCORE_MIN, min(SCORE_MAX, round_half_up(value))))


def validate_judgment(judgment: ExternalJudgment) -> ExternalJudgment:
    """
    Sanitize an untrusted judgment.

    - every percentage clamped to [0, 100] (garbage → 0)
    - predicted score rounded and clamped to integers in [SCORE_MIN, SCORE_MAX]
    - winner probabilities rescaled to sum to 100, unless they sum to 0
    """
    home = _clamp(judgment.home_win_prob, 0.0, 100.0)
    draw = _clamp(judgment.draw_prob, 0.0, 100.0)
    away = _clamp(judgment.away_win_prob, 0.0, 100.0)
    home, draw, away = normalize_to_100(home, draw, away)

    return replace(
        judgment,
        predicted_home=_clamp_score(judgment.predicted_home),
        predicted_away=_clamp_score(judgment.predicted_away),
        home_win_prob=home,
        draw_prob=draw,
        away_win_prob=away,
        confidence=_clamp(judgment.confidence, 0.0, 100.0),
        btts_yes=_clamp_optional(judgment.btts_yes),
        btts_no=_clamp_optional(judgment.btts_no),
        over25=_clamp_optional(judgment.over25),
        under25=_clamp_optional(judgment.under25),
    )


def _mix(ai_value: float, stat_value: float, ai_weight: float) -> float:
    return ai_value * ai_weight + stat_value * (1 - ai_weight)


def fuse(
    statistical: StatisticalSummary,
    judgment: Optional[ExternalJudgment],
    match_id: Optional[str] = None,
) -> FusedOutcome:
    """
    Combine the statistical summary with a validated external judgment.

    Raises:
        ExternalJudgmentUnavailable: judgment is None. There is no
            statistics-only fallback here; see statistics_only().
    """
    if judgment is None:
        raise ExternalJudgmentUnavailable(match_id)

    ai = validate_judgment(judgment)
    stat_home, stat_away = statistical.score_mode

    predicted_home = int(round_half_up(_mix(ai.predicted_home, stat_home, SCORE_AI_WEIGHT)))
    predicted_away = int(round_half_up(_mix(ai.predicted_away, stat_away, SCORE_AI_WEIGHT)))

    home, draw, away = normalize_to_100(
        _mix(ai.home_win_prob, statistical.home_win_prob, PROB_AI_WEIGHT),
        _mix(ai.draw_prob, statistical.draw_prob, PROB_AI_WEIGHT),
        _mix(ai.away_win_prob, statistical.away_win_prob, PROB_AI_WEIGHT),
    )

    btts_yes = statistical.btts_yes
    if ai.btts_yes is not None:
        btts_yes = _mix(ai.btts_yes, statistical.btts_yes, PROB_AI_WEIGHT)

    over25 = statistical.over25
    if ai.over25 is not None:
        over25 = _mix(ai.over25, statistical.over25, PROB_AI_WEIGHT)

    confidence = _clamp(
        _mix(ai.confidence, statistical.confidence, CONFIDENCE_AI_WEIGHT), 0.0, 100.0
    )

    return FusedOutcome(
        home_win_prob=round_half_up(home, 1),
        draw_prob=round_half_up(draw, 1),
        away_win_prob=round_half_up(away, 1),
        predicted_home=predicted_home,
        predicted_away=predicted_away,
        btts_yes=round_half_up(btts_yes, 1),
        btts_no=round_half_up(100 - btts_yes, 1),
        over25=round_half_up(over25, 1),
        under25=round_half_up(100 - over25, 1),
        confidence=round_half_up(confidence, 1),
        reasoning=ai.reasoning or None,
    )


def statistics_only(statistical: StatisticalSummary) -> FusedOutcome:
    """Offline-mode outcome: the statistical summary, rounded like fuse()."""
    home, draw, away = normalize_to_100(
        statistical.home_win_prob, statistical.draw_prob, statistical.away_win_prob
    )
    return FusedOutcome(
        home_win_prob=round_half_up(home, 1),
        draw_prob=round_half_up(draw, 1),
        away_win_prob=round_half_up(away, 1),
        predicted_home=statistical.score_mode[0],
        predicted_away=statistical.score_mode[1],
        btts_yes=round_half_up(statistical.btts_yes, 1),
        btts_no=round_half_up(100 - statistical.btts_yes, 1),
        over25=round_half_up(statistical.over25, 1),
        under25=round_half_up(100 - statistical.over25, 1),
        confidence=round_half_up(_clamp(statistical.confidence, 0.0, 100.0), 1),
    )
