"""
Independent-Poisson score model.

P(H=h, A=a) = Poisson(h | λ_home) × Poisson(a | λ_away), enumerated for
0..MAX_GOALS goals per side (36 cells). The table is truncated, so its mass
is slightly below 1; the 1X2 aggregates are renormalized, BTTS and over 2.5
are read off the truncated mass and clamped.
"""

from typing import Sequence

import numpy as np

from footcast.prediction.types import ScoreProbability

MAX_GOALS = 5

# BTTS / over-under are never reported as certainties
MARKET_PROB_MIN = 5.0
MARKET_PROB_MAX = 95.0


def _log_factorials(max_goals: int) -> np.ndarray:
    log_fact = np.zeros(max_goals + 1)
    for k in range(1, max_goals + 1):
        log_fact[k] = log_fact[k - 1] + np.log(k)
    return log_fact


def poisson_pmf(goals: np.ndarray, lam: float) -> np.ndarray:
    """
    Poisson mass for each goal count in `goals`.

    Degenerate rates (λ <= 0) carry no mass at all; callers clamp λ
    into a sane range before asking for a table.
    """
    goals = np.asarray(goals)
    if lam <= 0:
        return np.zeros(goals.shape, dtype=float)
    log_fact = _log_factorials(int(goals.max()) if goals.size else 0)
    return np.exp(goals * np.log(lam) - lam - log_fact[goals])


def score_distribution(
    home_expected_goals: float,
    away_expected_goals: float,
    max_goals: int = MAX_GOALS,
) -> list[ScoreProbability]:
    """
    Joint score table sorted by probability, most likely first.

    Cells are generated home-goals ascending, then away-goals ascending;
    the sort is stable, so ties keep that order.

    Args:
        home_expected_goals: λ for the home side.
        away_expected_goals: λ for the away side.
        max_goals: Highest goal count enumerated per side.

    Returns:
        (max_goals + 1)² ScoreProbability cells.
    """
    goals = np.arange(max_goals + 1)
    p_home = poisson_pmf(goals, home_expected_goals)
    p_away = poisson_pmf(goals, away_expected_goals)
    joint = np.outer(p_home, p_away)

    cells = [
        ScoreProbability(home=h, away=a, probability=float(joint[h, a]))
        for h in range(max_goals + 1)
        for a in range(max_goals + 1)
    ]
    return sorted(cells, key=lambda c: c.probability, reverse=True)


def most_likely_score(table: Sequence[ScoreProbability]) -> ScoreProbability:
    """Mode of a table returned by score_distribution()."""
    return table[0]


def outcome_masses(table: Sequence[ScoreProbability]) -> tuple[float, float, float]:
    """Raw (home win, draw, away win) mass of the truncated table."""
    home = draw = away = 0.0
    for cell in table:
        if cell.home > cell.away:
            home += cell.probability
        elif cell.home < cell.away:
            away += cell.probability
        else:
            draw += cell.probability
    return home, draw, away


def outcome_probabilities(table: Sequence[ScoreProbability]) -> tuple[float, float, float]:
    """1X2 percentages normalized to sum to 100."""
    home, draw, away = outcome_masses(table)
    total = home + draw + away
    if total <= 0:
        return 0.0, 0.0, 0.0
    return home / total * 100, draw / total * 100, away / total * 100


def _clamp_market(prob: float) -> float:
    return min(MARKET_PROB_MAX, max(MARKET_PROB_MIN, prob * 100))


def btts_probability(table: Sequence[ScoreProbability]) -> float:
    """Both-teams-to-score percentage, clamped to [5, 95]."""
    mass = sum(c.probability for c in table if c.home > 0 and c.away > 0)
    return _clamp_market(mass)


def over25_probability(table: Sequence[ScoreProbability]) -> float:
    """Over 2.5 goals percentage, clamped to [5, 95]."""
    mass = sum(c.probability for c in table if c.home + c.away > 2.5)
    return _clamp_market(mass)
