"""
Tests for PredictionEngine with a fake provider and judge.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from conftest import AWAY_ID, HOME_ID, fake_provider, hist, make_judgment, make_match, make_stats
from footcast.config import Settings
from footcast.llm.gemini_client import GeminiClient
from footcast.llm.judgment import MatchJudge
from footcast.prediction.engine import PredictionEngine
from footcast.prediction.fusion import ExternalJudgmentUnavailable
from footcast.prediction.types import HeadToHeadData, VenueStats


def fake_judge(judgment=None):
    judge = MagicMock()
    judge.request_judgment = AsyncMock(return_value=judgment)
    return judge


def settings(**kwargs) -> Settings:
    return Settings(JUDGMENT_REQUEST_DELAY_SECONDS=0, **kwargs)


def strong_home_stats():
    # 1.8 scored / 1.0 conceded per home match
    return make_stats(HOME_ID, home=VenueStats(played=10, wins=6, draws=2, losses=2, goals_for=18, goals_against=10))


class TestGeneratePrediction:
    """Test the single-fixture pipeline."""

    @pytest.mark.asyncio
    async def test_end_to_end_fusion(self):
        """Home stats only: statistical 1-1 at confidence 30, fused with a 2-1 judgment."""
        judge = fake_judge(make_judgment())
        engine = PredictionEngine(fake_provider(home_stats=strong_home_stats()), judge, settings())

        prediction = await engine.generate_prediction(make_match())

        statistical = judge.request_judgment.await_args.args[6]
        assert statistical.home_expected_goals == pytest.approx(1.8)
        assert statistical.away_expected_goals == pytest.approx(1.2 * 0.7 + 1.0 * 0.3)
        assert statistical.score_mode == (1, 1)
        assert statistical.confidence == 30.0
        assert (statistical.home_win_prob, statistical.draw_prob, statistical.away_win_prob) == pytest.approx(
            (52.4, 23.4, 24.2), abs=0.5
        )

        assert (prediction.predicted_home, prediction.predicted_away) == (2, 1)
        assert prediction.confidence == 50.0
        assert prediction.ai_reasoning == "Home side stronger at home."
        # 0.6 * (55, 25, 20) + 0.4 * statistical
        assert (prediction.home_win_prob, prediction.draw_prob, prediction.away_win_prob) == pytest.approx(
            (54.0, 24.4, 21.7), abs=0.5
        )
        assert prediction.home_win_prob + prediction.draw_prob + prediction.away_win_prob == pytest.approx(100.0, abs=0.1)
        assert prediction.h2h_summary is None

    @pytest.mark.asyncio
    async def test_judgment_unavailable_raises(self):
        """Judge returns None → ExternalJudgmentUnavailable."""
        engine = PredictionEngine(fake_provider(), fake_judge(None), settings())
        with pytest.raises(ExternalJudgmentUnavailable):
            await engine.generate_prediction(make_match())

    @pytest.mark.asyncio
    async def test_unreadable_provider_body_raises(self):
        """A 200 reply with an HTML body becomes ExternalJudgmentUnavailable."""
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="<html>gateway</html>"))
        gemini = GeminiClient(api_key="k", models=["m1"], client=httpx.AsyncClient(transport=transport))
        judge = MatchJudge(settings(JUDGMENT_PROVIDER="gemini"), client=gemini)
        engine = PredictionEngine(fake_provider(), judge, settings())

        with pytest.raises(ExternalJudgmentUnavailable):
            await engine.generate_prediction(make_match())

    @pytest.mark.asyncio
    async def test_no_judge_raises(self):
        """No judge configured outside statistics-only mode → failure."""
        engine = PredictionEngine(fake_provider(), None, settings())
        with pytest.raises(ExternalJudgmentUnavailable):
            await engine.generate_prediction(make_match())

    @pytest.mark.asyncio
    async def test_statistics_only_mode(self):
        """Judge is never asked; the statistical baseline is served."""
        judge = fake_judge(make_judgment())
        engine = PredictionEngine(
            fake_provider(home_stats=strong_home_stats()), judge, settings(STATISTICS_ONLY_MODE=True)
        )

        prediction = await engine.generate_prediction(make_match())

        judge.request_judgment.assert_not_awaited()
        assert (prediction.predicted_home, prediction.predicted_away) == (1, 1)
        assert prediction.confidence == 30.0
        assert prediction.ai_reasoning is None

    @pytest.mark.asyncio
    async def test_no_data_at_all(self):
        """Every fetch empty → neutral prior, confidence 0, still a prediction."""
        engine = PredictionEngine(fake_provider(), None, settings(STATISTICS_ONLY_MODE=True))
        prediction = await engine.generate_prediction(make_match())
        assert prediction.confidence == 0.0
        assert prediction.home_win_prob == pytest.approx(prediction.away_win_prob)
        assert (prediction.predicted_home, prediction.predicted_away) == (1, 1)

    @pytest.mark.asyncio
    async def test_fetch_failures_tolerated(self):
        """Provider exceptions become absent inputs."""
        provider = fake_provider()
        provider.get_head_to_head.side_effect = RuntimeError("boom")
        provider.get_team_stats.side_effect = RuntimeError("boom")
        provider.get_odds.side_effect = RuntimeError("boom")
        engine = PredictionEngine(provider, fake_judge(make_judgment()), settings())

        prediction = await engine.generate_prediction(make_match())
        assert prediction.match.odds_home is None
        assert prediction.predicted_home == 2

    @pytest.mark.asyncio
    async def test_odds_enrichment(self):
        """Fixtures without odds get them from the provider."""
        provider = fake_provider(odds={"home": 2.0, "draw": 3.2, "away": 3.8})
        engine = PredictionEngine(provider, None, settings(STATISTICS_ONLY_MODE=True))

        prediction = await engine.generate_prediction(make_match())
        assert (prediction.match.odds_home, prediction.match.odds_draw, prediction.match.odds_away) == (2.0, 3.2, 3.8)

    @pytest.mark.asyncio
    async def test_existing_odds_kept(self):
        """Odds already on the fixture are not refetched."""
        provider = fake_provider(odds={"home": 9.0, "draw": 9.0, "away": 9.0})
        engine = PredictionEngine(provider, None, settings(STATISTICS_ONLY_MODE=True))

        prediction = await engine.generate_prediction(make_match(odds_home=1.5, odds_draw=4.0, odds_away=6.0))
        provider.get_odds.assert_not_awaited()
        assert prediction.match.odds_home == 1.5

    @pytest.mark.asyncio
    async def test_h2h_summary_rounded(self):
        """Meeting averages are reported to one decimal, in current orientation."""
        h2h = HeadToHeadData(
            meetings=[
                hist(HOME_ID, AWAY_ID, 2, 0),
                hist(AWAY_ID, HOME_ID, 1, 1),
                hist(AWAY_ID, HOME_ID, 0, 1),
            ]
        )
        engine = PredictionEngine(fake_provider(h2h=h2h), None, settings(STATISTICS_ONLY_MODE=True))

        prediction = await engine.generate_prediction(make_match())
        summary = prediction.h2h_summary
        assert (summary.home_wins, summary.draws, summary.away_wins) == (2, 1, 0)
        assert summary.total_matches == 3
        assert summary.avg_home_goals == 1.3
        assert summary.avg_away_goals == 0.3

    @pytest.mark.asyncio
    async def test_form_comes_from_latest_results(self):
        """Latest results feed form, which reaches the judge."""
        h2h = HeadToHeadData(home_latest=[hist(HOME_ID, "303", 3, 0), hist("404", HOME_ID, 1, 2)])
        judge = fake_judge(make_judgment())
        engine = PredictionEngine(fake_provider(h2h=h2h), judge, settings())

        await engine.generate_prediction(make_match())
        home_form = judge.request_judgment.await_args.args[4]
        assert home_form.wins == 2
        assert home_form.goals_for == 5
        assert home_form.matches_considered == 2


class TestGenerateBatch:
    """Test sequential batch generation."""

    @staticmethod
    def matches(n=3):
        return [make_match(match_id=f"m{i}") for i in range(1, n + 1)]

    @pytest.mark.asyncio
    async def test_failures_are_skipped(self):
        """Missing judgment and unexpected errors skip only that fixture."""

        async def judgment_for(match, *args):
            if match.match_id == "m2":
                return None
            if match.match_id == "m3":
                raise ValueError("unexpected")
            return make_judgment()

        judge = MagicMock()
        judge.request_judgment = AsyncMock(side_effect=judgment_for)
        engine = PredictionEngine(fake_provider(), judge, settings())

        predictions, skipped = await engine.generate_batch(self.matches(4))
        assert [p.match.match_id for p in predictions] == ["m1", "m4"]
        assert skipped == ["m2", "m3"]

    @pytest.mark.asyncio
    async def test_max_predictions(self):
        """Only the first max_predictions fixtures are attempted."""
        engine = PredictionEngine(fake_provider(), None, settings(STATISTICS_ONLY_MODE=True))
        predictions, skipped = await engine.generate_batch(self.matches(5), max_predictions=2)
        assert len(predictions) == 2
        assert skipped == []

    @pytest.mark.asyncio
    async def test_cancellation_keeps_completed(self):
        """Setting the event stops before the next fixture."""
        cancel = asyncio.Event()
        stored = []

        async def on_prediction(prediction):
            stored.append(prediction.match.match_id)
            cancel.set()

        engine = PredictionEngine(fake_provider(), None, settings(STATISTICS_ONLY_MODE=True))
        predictions, _ = await engine.generate_batch(
            self.matches(3), cancel_event=cancel, on_prediction=on_prediction
        )
        assert [p.match.match_id for p in predictions] == ["m1"]
        assert stored == ["m1"]

    @pytest.mark.asyncio
    async def test_callback_failure_keeps_prediction(self):
        """A failing on_prediction callback is logged, not fatal."""
        callback = AsyncMock(side_effect=RuntimeError("db down"))
        engine = PredictionEngine(fake_provider(), None, settings(STATISTICS_ONLY_MODE=True))

        predictions, skipped = await engine.generate_batch(self.matches(2), on_prediction=callback)
        assert len(predictions) == 2
        assert skipped == []
        assert callback.await_count == 2
