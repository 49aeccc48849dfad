"""
Evidence-weighted fusion of expected goals and 1X2 probabilities.

Expected goals are built as a seed followed by an ordered list of
BlendStep adjustments. Each step names the side it touches, when it
applies, how much weight it takes and where its value comes from:

    value = value × (1 − weight) + source × weight

Steps whose condition fails are skipped, so missing evidence simply drops
out of the blend. The final values are clamped into [XG_MIN, XG_MAX].
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from footcast.prediction.types import FormSummary, HeadToHeadSummary, Venue

logger = logging.getLogger(__name__)

NEUTRAL_PRIOR_GOALS = 1.2
H2H_SEED_MIN_MATCHES = 2

# Opponent defense: own estimate vs (LEAGUE_BASELINE_GOALS − opponent conceded)
LEAGUE_BASELINE_GOALS = 2.0
DEFENSE_WEIGHT_BOTH = 0.4
DEFENSE_WEIGHT_SINGLE = 0.3

H2H_GOALS_MIN_MATCHES = 1
H2H_GOALS_MAX_WEIGHT = 0.5
H2H_GOALS_FULL_WEIGHT_MATCHES = 10

FORM_WEIGHT = 0.2

H2H_OUTCOME_MIN_MATCHES = 2
H2H_OUTCOME_MAX_WEIGHT = 0.4
H2H_OUTCOME_FULL_WEIGHT_MATCHES = 15

XG_MIN = 0.3
XG_MAX = 4.5


@dataclass
class BlendInputs:
    """Everything the expected-goals blend may draw on. None = not available."""

    home_goals: Optional[float]
    away_goals: Optional[float]
    home_conceded: Optional[float]
    away_conceded: Optional[float]
    h2h: HeadToHeadSummary
    home_form: Optional[FormSummary] = None
    away_form: Optional[FormSummary] = None


@dataclass(frozen=True)
class BlendStep:
    """One conditional adjustment of one side's expected goals."""

    name: str
    side: Venue
    condition: Callable[[BlendInputs], bool]
    weight: Callable[[BlendInputs], float]
    source: Callable[[BlendInputs], float]

    def applies(self, inputs: BlendInputs) -> bool:
        return self.condition(inputs)

    def apply(self, value: float, inputs: BlendInputs) -> float:
        weight = self.weight(inputs)
        return value * (1 - weight) + self.source(inputs) * weight


# =============================================================================
# STEP DEFINITIONS
# =============================================================================


def _defense_weight(own_side_conceded: Optional[float]) -> float:
    # Both defenses known → stronger pull; only the opponent's → weaker
    return DEFENSE_WEIGHT_BOTH if own_side_conceded is not None else DEFENSE_WEIGHT_SINGLE


def _h2h_goals_weight(inputs: BlendInputs) -> float:
    return min(H2H_GOALS_MAX_WEIGHT, inputs.h2h.total_matches / H2H_GOALS_FULL_WEIGHT_MATCHES)


def _has_form(form: Optional[FormSummary]) -> bool:
    return form is not None and form.goals_for > 0


EXPECTED_GOALS_STEPS: tuple[BlendStep, ...] = (
    BlendStep(
        name="opponent_defense",
        side=Venue.HOME,
        condition=lambda i: i.away_conceded is not None,
        weight=lambda i: _defense_weight(i.home_conceded),
        source=lambda i: LEAGUE_BASELINE_GOALS - i.away_conceded,
    ),
    BlendStep(
        name="opponent_defense",
        side=Venue.AWAY,
        condition=lambda i: i.home_conceded is not None,
        weight=lambda i: _defense_weight(i.away_conceded),
        source=lambda i: LEAGUE_BASELINE_GOALS - i.home_conceded,
    ),
    BlendStep(
        name="head_to_head_goals",
        side=Venue.HOME,
        condition=lambda i: i.h2h.total_matches >= H2H_GOALS_MIN_MATCHES,
        weight=_h2h_goals_weight,
        source=lambda i: i.h2h.avg_home_goals,
    ),
    BlendStep(
        name="head_to_head_goals",
        side=Venue.AWAY,
        condition=lambda i: i.h2h.total_matches >= H2H_GOALS_MIN_MATCHES,
        weight=_h2h_goals_weight,
        source=lambda i: i.h2h.avg_away_goals,
    ),
    BlendStep(
        name="recent_form",
        side=Venue.HOME,
        condition=lambda i: _has_form(i.home_form),
        weight=lambda i: FORM_WEIGHT,
        source=lambda i: i.home_form.avg_goals_for,
    ),
    BlendStep(
        name="recent_form",
        side=Venue.AWAY,
        condition=lambda i: _has_form(i.away_form),
        weight=lambda i: FORM_WEIGHT,
        source=lambda i: i.away_form.avg_goals_for,
    ),
)


# =============================================================================
# EXPECTED GOALS
# =============================================================================


def seed_expected_goals(inputs: BlendInputs) -> tuple[float, float]:
    """
    Starting point for each side.

    Own season rate if known; otherwise the head-to-head average when at
    least H2H_SEED_MIN_MATCHES meetings exist; otherwise NEUTRAL_PRIOR_GOALS.
    """
    h2h_usable = inputs.h2h.total_matches >= H2H_SEED_MIN_MATCHES

    home = inputs.home_goals
    if home is None:
        home = inputs.h2h.avg_home_goals if h2h_usable else NEUTRAL_PRIOR_GOALS

    away = inputs.away_goals
    if away is None:
        away = inputs.h2h.avg_away_goals if h2h_usable else NEUTRAL_PRIOR_GOALS

    return home, away


def clamp_expected_goals(value: float) -> float:
    return max(XG_MIN, min(XG_MAX, value))


def apply_steps(
    inputs: BlendInputs,
    steps: Sequence[BlendStep] = EXPECTED_GOALS_STEPS,
) -> tuple[float, float, list[str]]:
    """
    Run the seed and every applicable step, without clamping.

    Returns:
        (home, away, applied) where applied lists "<name>:<side>" in order.
    """
    values = dict(zip((Venue.HOME, Venue.AWAY), seed_expected_goals(inputs)))
    applied = []
    for step in steps:
        if not step.applies(inputs):
            continue
        values[step.side] = step.apply(values[step.side], inputs)
        applied.append(f"{step.name}:{step.side.value}")
    return values[Venue.HOME], values[Venue.AWAY], applied


def blend_expected_goals(
    home_goals: Optional[float],
    away_goals: Optional[float],
    home_conceded: Optional[float],
    away_conceded: Optional[float],
    h2h: HeadToHeadSummary,
    home_form: Optional[FormSummary] = None,
    away_form: Optional[FormSummary] = None,
) -> tuple[float, float]:
    """
    Final (home, away) expected goals for the Poisson model.

    Args:
        home_goals: Home side scoring rate at home, or None.
        away_goals: Away side scoring rate away, or None.
        home_conceded: Home side conceding rate at home, or None.
        away_conceded: Away side conceding rate away, or None.
        h2h: Head-to-head summary in the current orientation.
        home_form: Home side recent form, or None.
        away_form: Away side recent form, or None.

    Returns:
        Both rates clamped into [XG_MIN, XG_MAX].
    """
    inputs = BlendInputs(
        home_goals=home_goals,
        away_goals=away_goals,
        home_conceded=home_conceded,
        away_conceded=away_conceded,
        h2h=h2h,
        home_form=home_form,
        away_form=away_form,
    )
    home, away, applied = apply_steps(inputs)
    logger.debug(f"Expected goals blend steps: {applied or ['seed_only']}")
    return clamp_expected_goals(home), clamp_expected_goals(away)


# =============================================================================
# OUTCOME PROBABILITIES
# =============================================================================


def normalize_to_100(home: float, draw: float, away: float) -> tuple[float, float, float]:
    """Scale three non-negative values to sum to 100 (no-op when the sum is 0)."""
    total = home + draw + away
    if total <= 0:
        return home, draw, away
    return home / total * 100, draw / total * 100, away / total * 100


def reweight_outcomes_with_h2h(
    probabilities: tuple[float, float, float],
    h2h: HeadToHeadSummary,
) -> tuple[float, float, float]:
    """
    Blend model 1X2 percentages with head-to-head result rates.

    Needs at least H2H_OUTCOME_MIN_MATCHES meetings; the head-to-head weight
    grows with the number of meetings up to H2H_OUTCOME_MAX_WEIGHT.
    """
    if h2h.total_matches < H2H_OUTCOME_MIN_MATCHES:
        return probabilities

    weight = min(H2H_OUTCOME_MAX_WEIGHT, h2h.total_matches / H2H_OUTCOME_FULL_WEIGHT_MATCHES)
    rates = (
        h2h.home_wins / h2h.total_matches * 100,
        h2h.draws / h2h.total_matches * 100,
        h2h.away_wins / h2h.total_matches * 100,
    )
    blended = [p * (1 - weight) + r * weight for p, r in zip(probabilities, rates)]
    return normalize_to_100(*blended)
