"""
Prediction engine: one fixture in, one MatchPrediction out.

Sequence per fixture:
    odds enrichment -> H2H + season stats fetch -> H2H/form analysis ->
    expected-goals estimates -> evidence blend -> Poisson score table ->
    H2H outcome reweight -> confidence -> external judgment -> fusion

Upstream fetch failures degrade to absent inputs. A missing external
judgment fails the whole prediction with ExternalJudgmentUnavailable,
unless STATISTICS_ONLY_MODE is on.
"""

import asyncio
import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from footcast.config import Settings, get_settings
from footcast.prediction.analysis import analyze_form, analyze_head_to_head
from footcast.prediction.blending import blend_expected_goals, reweight_outcomes_with_h2h
from footcast.prediction.confidence import score_confidence
from footcast.prediction.expected_goals import estimate_goals_conceded, estimate_goals_for
from footcast.prediction.fusion import (
    ExternalJudgmentUnavailable,
    FusedOutcome,
    fuse,
    round_half_up,
    statistics_only,
)
from footcast.prediction.poisson import (
    btts_probability,
    most_likely_score,
    outcome_probabilities,
    over25_probability,
    score_distribution,
)
from footcast.prediction.types import (
    HeadToHeadData,
    HeadToHeadSummary,
    Match,
    MatchPrediction,
    StatisticalSummary,
    TeamSeasonStats,
    Venue,
)
from footcast.telemetry import record_prediction

if TYPE_CHECKING:
    from footcast.etl.base import DataProvider
    from footcast.llm.judgment import MatchJudge

logger = logging.getLogger(__name__)


class PredictionEngine:
    """Generates fused predictions from a data provider and an external judge."""

    def __init__(
        self,
        provider: "DataProvider",
        judge: Optional["MatchJudge"],
        settings: Optional[Settings] = None,
    ):
        self.provider = provider
        self.judge = judge
        self.settings = settings or get_settings()

    @property
    def statistics_only(self) -> bool:
        return self.settings.STATISTICS_ONLY_MODE

    # -------------------------------------------------------------------------
    # Input gathering
    # -------------------------------------------------------------------------

    async def _with_odds(self, match: Match) -> Match:
        """Attach 1X2 odds when the fixture has none; failures are ignored."""
        if match.has_odds:
            return match
        try:
            odds = await self.provider.get_odds(match.match_id)
        except Exception as e:
            logger.warning(f"Failed to fetch odds for match {match.match_id}: {e}")
            return match

        if not odds or not any(v is not None for v in odds.values()):
            logger.info(f"No odds found for match {match.match_id}")
            return match
        return replace(
            match,
            odds_home=odds.get("home"),
            odds_draw=odds.get("draw"),
            odds_away=odds.get("away"),
        )

    async def _fetch_h2h(self, match: Match) -> Optional[HeadToHeadData]:
        try:
            return await self.provider.get_head_to_head(match.home_team_id, match.away_team_id)
        except Exception as e:
            logger.warning(f"H2H fetch failed for match {match.match_id}: {e}")
            return None

    async def _fetch_stats(self, team_id: str, league_id: str) -> Optional[TeamSeasonStats]:
        try:
            return await self.provider.get_team_stats(team_id, league_id)
        except Exception as e:
            logger.warning(f"Team stats fetch failed team={team_id} league={league_id}: {e}")
            return None

    # -------------------------------------------------------------------------
    # Statistical pipeline
    # -------------------------------------------------------------------------

    def build_statistical_summary(
        self,
        match: Match,
        h2h_data: Optional[HeadToHeadData],
        home_stats: Optional[TeamSeasonStats],
        away_stats: Optional[TeamSeasonStats],
    ):
        """
        Run the pure statistical pipeline for one fixture.

        Returns:
            Tuple of (StatisticalSummary, HeadToHeadSummary, home_form, away_form).
            Forms are None when no H2H payload was fetched.
        """
        h2h = analyze_head_to_head(
            h2h_data.meetings if h2h_data else None,
            match.home_team_id,
            match.away_team_id,
        )
        home_form = analyze_form(h2h_data.home_latest, match.home_team_id) if h2h_data else None
        away_form = analyze_form(h2h_data.away_latest, match.away_team_id) if h2h_data else None

        home_goals = estimate_goals_for(home_stats, Venue.HOME)
        away_goals = estimate_goals_for(away_stats, Venue.AWAY)
        home_conceded = estimate_goals_conceded(home_stats, Venue.HOME)
        away_conceded = estimate_goals_conceded(away_stats, Venue.AWAY)

        home_xg, away_xg = blend_expected_goals(
            home_goals,
            away_goals,
            home_conceded,
            away_conceded,
            h2h,
            home_form=home_form,
            away_form=away_form,
        )

        table = score_distribution(home_xg, away_xg)
        mode = most_likely_score(table)
        home_prob, draw_prob, away_prob = reweight_outcomes_with_h2h(
            outcome_probabilities(table), h2h
        )

        has_home_stats = home_goals is not None
        has_away_stats = away_goals is not None
        home_form_goals = home_form.goals_for if home_form else 0
        away_form_goals = away_form.goals_for if away_form else 0
        confidence = score_confidence(
            h2h.total_matches,
            has_home_stats,
            has_away_stats,
            home_form_goals,
            away_form_goals,
        )

        logger.info(
            f"Prediction data sources for match {match.match_id}: "
            f"h2h_matches={h2h.total_matches}, home_stats={has_home_stats}, "
            f"away_stats={has_away_stats}, home_form={home_form_goals > 0}, "
            f"away_form={away_form_goals > 0}, confidence={confidence:.0f}, "
            f"xg={home_xg:.2f}-{away_xg:.2f}"
        )

        summary = StatisticalSummary(
            home_expected_goals=home_xg,
            away_expected_goals=away_xg,
            score_mode=(mode.home, mode.away),
            home_win_prob=home_prob,
            draw_prob=draw_prob,
            away_win_prob=away_prob,
            btts_yes=btts_probability(table),
            over25=over25_probability(table),
            confidence=confidence,
        )
        return summary, h2h, home_form, away_form

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def generate_prediction(self, match: Match, judgment_delay: float = 0.0) -> MatchPrediction:
        """
        Generate the fused prediction for one fixture.

        Args:
            match: Fixture to predict.
            judgment_delay: Seconds to wait before the judgment call (batch pacing).

        Raises:
            ExternalJudgmentUnavailable: the judge returned nothing usable and
                statistics-only mode is off.
        """
        match = await self._with_odds(match)
        h2h_data = await self._fetch_h2h(match)
        home_stats = await self._fetch_stats(match.home_team_id, match.league_id)
        away_stats = await self._fetch_stats(match.away_team_id, match.league_id)

        statistical, h2h, home_form, away_form = self.build_statistical_summary(
            match, h2h_data, home_stats, away_stats
        )

        if self.statistics_only:
            outcome = statistics_only(statistical)
        else:
            judgment = None
            if self.judge is not None:
                if judgment_delay > 0:
                    await asyncio.sleep(judgment_delay)
                judgment = await self.judge.request_judgment(
                    match, h2h_data, home_stats, away_stats, home_form, away_form, statistical
                )
            if judgment is None:
                record_prediction("judgment_unavailable")
                logger.error(f"External judgment unavailable for match {match.match_id}")
                raise ExternalJudgmentUnavailable(match.match_id)
            outcome = fuse(statistical, judgment, match_id=match.match_id)
            logger.info(
                f"Fused match {match.match_id}: AI {judgment.predicted_home:g}-{judgment.predicted_away:g}, "
                f"statistical {statistical.score_mode[0]}-{statistical.score_mode[1]}, "
                f"final {outcome.predicted_home}-{outcome.predicted_away} "
                f"(confidence {outcome.confidence:.0f})"
            )

        record_prediction("ok", outcome.confidence)
        return self._to_prediction(match, outcome, h2h)

    def _to_prediction(
        self, match: Match, outcome: FusedOutcome, h2h: HeadToHeadSummary
    ) -> MatchPrediction:
        h2h_summary = None
        if h2h.total_matches > 0:
            h2h_summary = replace(
                h2h,
                avg_home_goals=round_half_up(h2h.avg_home_goals, 1),
                avg_away_goals=round_half_up(h2h.avg_away_goals, 1),
            )
        return MatchPrediction(
            match=match,
            home_win_prob=outcome.home_win_prob,
            draw_prob=outcome.draw_prob,
            away_win_prob=outcome.away_win_prob,
            predicted_home=outcome.predicted_home,
            predicted_away=outcome.predicted_away,
            btts_yes=outcome.btts_yes,
            btts_no=outcome.btts_no,
            over25=outcome.over25,
            under25=outcome.under25,
            confidence=outcome.confidence,
            ai_reasoning=outcome.reasoning,
            h2h_summary=h2h_summary,
        )

    async def generate_batch(
        self,
        matches: list[Match],
        max_predictions: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_prediction: Optional[Callable[[MatchPrediction], Awaitable[None]]] = None,
    ) -> tuple[list[MatchPrediction], list[str]]:
        """
        Predict fixtures one after another.

        A failing fixture is logged and skipped. Cancellation is checked
        before each fixture starts, so completed predictions are kept.

        Args:
            matches: Fixtures in the order to process.
            max_predictions: Cap on fixtures attempted (default MAX_BATCH_PREDICTIONS).
            cancel_event: Set it to stop before the next fixture.
            on_prediction: Awaited with each successful prediction (e.g. to persist it).

        Returns:
            Tuple of (predictions, skipped match ids).
        """
        limit = max_predictions or self.settings.MAX_BATCH_PREDICTIONS
        delay = 0.0 if self.statistics_only else self.settings.JUDGMENT_REQUEST_DELAY_SECONDS

        predictions: list[MatchPrediction] = []
        skipped: list[str] = []

        for match in matches[:limit]:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Batch cancelled after {len(predictions)} predictions")
                break
            try:
                prediction = await self.generate_prediction(match, judgment_delay=delay)
            except ExternalJudgmentUnavailable as e:
                logger.warning(f"Skipping match {match.match_id}: {e}")
                skipped.append(match.match_id)
                continue
            except Exception as e:
                record_prediction("error")
                logger.exception(f"Skipping match {match.match_id}: {e}")
                skipped.append(match.match_id)
                continue

            predictions.append(prediction)
            if on_prediction is not None:
                try:
                    await on_prediction(prediction)
                except Exception as e:
                    logger.error(f"Failed to store prediction for match {match.match_id}: {e}")

        logger.info(f"Batch complete: {len(predictions)} predictions, {len(skipped)} skipped")
        return predictions, skipped
