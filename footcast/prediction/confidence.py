"""Data-completeness confidence for the statistical model."""

# (min meetings, quality): first match wins
H2H_QUALITY_TIERS = ((5, 1.0), (3, 0.8), (2, 0.6), (1, 0.4))
STATS_QUALITY = 1.0
FORM_QUALITY = 0.8

# Any evidence at all is worth at least this much
CONFIDENCE_FLOOR = 30.0


def h2h_quality(total_matches: int) -> float:
    for min_matches, quality in H2H_QUALITY_TIERS:
        if total_matches >= min_matches:
            return quality
    return 0.0


def quality_factors(
    h2h_total_matches: int,
    has_home_stats: bool,
    has_away_stats: bool,
    home_form_goals_for: int,
    away_form_goals_for: int,
) -> list[float]:
    """The five independent quality factors, each in [0, 1]."""
    return [
        h2h_quality(h2h_total_matches),
        STATS_QUALITY if has_home_stats else 0.0,
        STATS_QUALITY if has_away_stats else 0.0,
        FORM_QUALITY if home_form_goals_for > 0 else 0.0,
        FORM_QUALITY if away_form_goals_for > 0 else 0.0,
    ]


def score_confidence(
    h2h_total_matches: int,
    has_home_stats: bool,
    has_away_stats: bool,
    home_form_goals_for: int,
    away_form_goals_for: int,
) -> float:
    """
    Confidence in [0, 100] from the evidence actually available.

    Mean of the quality factors as a percentage, floored at
    CONFIDENCE_FLOOR when anything is present; exactly 0 with no evidence.
    """
    factors = quality_factors(
        h2h_total_matches,
        has_home_stats,
        has_away_stats,
        home_form_goals_for,
        away_form_goals_for,
    )
    total = sum(factors)
    if total <= 0:
        return 0.0
    return max(CONFIDENCE_FLOOR, total / len(factors) * 100)
