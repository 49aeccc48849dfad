"""Grading stored predictions against the real final score."""

from footcast.prediction.types import ResultStatus

# Right winner and each side within this many goals → still a win
SCORE_TOLERANCE = 2


def outcome_of(home_goals: int, away_goals: int) -> str:
    """HOME / DRAW / AWAY for a score."""
    if home_goals > away_goals:
        return "HOME"
    elif away_goals > home_goals:
        return "AWAY"
    return "DRAW"


def predicted_outcome(home_prob: float, draw_prob: float, away_prob: float) -> str:
    """Highest-probability class; ties favour home, then away."""
    if home_prob >= draw_prob and home_prob >= away_prob:
        return "HOME"
    if away_prob >= draw_prob and away_prob >= home_prob:
        return "AWAY"
    return "DRAW"


def determine_result_status(
    winner_probs: tuple[float, float, float],
    predicted_score: tuple[int, int],
    actual_score: tuple[int, int],
) -> ResultStatus:
    """
    Classify a prediction once the match is over.

    Args:
        winner_probs: Predicted (home, draw, away) percentages.
        predicted_score: Predicted (home, away) goals.
        actual_score: Final (home, away) goals.

    Returns:
        LOSS if the predicted winner was wrong, WIN if it was right and the
        score was close, DRAW if it was right but the score was off.
    """
    if predicted_outcome(*winner_probs) != outcome_of(*actual_score):
        return ResultStatus.LOSS

    home_diff = abs(predicted_score[0] - actual_score[0])
    away_diff = abs(predicted_score[1] - actual_score[1])
    if home_diff <= SCORE_TOLERANCE and away_diff <= SCORE_TOLERANCE:
        return ResultStatus.WIN
    return ResultStatus.DRAW
