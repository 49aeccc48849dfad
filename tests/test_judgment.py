"""
Tests for judgment prompt building, response parsing and MatchJudge.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import AWAY_ID, HOME_ID, hist, make_match, make_statistical, make_stats
from footcast.config import Settings
from footcast.llm.base import LLMResult
from footcast.llm.gemini_client import GeminiError
from footcast.llm.judgment import (
    SYSTEM_PROMPT,
    MatchJudge,
    build_judgment_prompt,
    judgment_from_payload,
    parse_json_response,
)
from footcast.prediction.types import FormSummary, HeadToHeadData, VenueStats

VALID_PAYLOAD = {
    "predictedScore": {"home": 2, "away": 1},
    "winnerProbabilities": {"home": 55, "draw": 25, "away": 20},
    "confidence": 70,
    "reasoning": "Strong home record.",
    "bothTeamsToScore": {"yes": 60, "no": 40},
    "overUnder": {"over25": 65, "under25": 35},
}


def completed(text: str) -> LLMResult:
    return LLMResult(
        status="COMPLETED",
        text=text,
        tokens_in=120,
        tokens_out=80,
        exec_ms=900,
        model_version="gemini-2.5-flash",
    )


class TestParseJsonResponse:
    """Test lenient JSON extraction."""

    def test_plain_json(self):
        """A bare object parses."""
        assert parse_json_response(json.dumps(VALID_PAYLOAD)) == VALID_PAYLOAD

    def test_markdown_fences(self):
        """```json fences are stripped."""
        text = "```json\n" + json.dumps(VALID_PAYLOAD) + "\n```"
        assert parse_json_response(text) == VALID_PAYLOAD

    def test_surrounding_prose(self):
        """Text around the object is ignored; nested braces are balanced."""
        text = "Here is my analysis:\n" + json.dumps(VALID_PAYLOAD) + "\nHope this helps {:"
        assert parse_json_response(text) == VALID_PAYLOAD

    def test_no_object(self):
        """No braces → None."""
        assert parse_json_response("I cannot predict this match.") is None
        assert parse_json_response("") is None

    def test_broken_json(self):
        """Undecodable object → None."""
        assert parse_json_response('{"predictedScore": {"home": 2,}') is None


class TestJudgmentFromPayload:
    """Test the structural check."""

    def test_valid_payload(self):
        """All fields mapped."""
        judgment = judgment_from_payload(VALID_PAYLOAD)
        assert judgment.predicted_home == 2
        assert judgment.predicted_away == 1
        assert judgment.home_win_prob == 55
        assert judgment.confidence == 70
        assert judgment.btts_yes == 60
        assert judgment.under25 == 35
        assert judgment.reasoning == "Strong home record."

    def test_missing_winner_probabilities(self):
        """No winnerProbabilities → zeros, left for validation to handle."""
        judgment = judgment_from_payload({"predictedScore": {"home": 2, "away": 1}, "confidence": 70})
        assert (judgment.predicted_home, judgment.predicted_away) == (2, 1)
        assert (judgment.home_win_prob, judgment.draw_prob, judgment.away_win_prob) == (0, 0, 0)
        assert judgment.confidence == 70

    def test_numeric_strings_accepted(self):
        """Numeric strings such as "55" are read as numbers."""
        judgment = judgment_from_payload(
            {**VALID_PAYLOAD, "winnerProbabilities": {"home": "55", "draw": " 25 ", "away": "20.5"}}
        )
        assert (judgment.home_win_prob, judgment.draw_prob, judgment.away_win_prob) == (55, 25, 20.5)

    def test_garbled_numbers_default_to_zero(self):
        """Words, booleans and NaN become 0."""
        judgment = judgment_from_payload(
            {**VALID_PAYLOAD, "predictedScore": {"home": "two", "away": True}, "confidence": "NaN"}
        )
        assert (judgment.predicted_home, judgment.predicted_away) == (0, 0)
        assert judgment.confidence == 0
        assert judgment.home_win_prob == 55

    def test_not_an_object(self):
        """Only a non-object payload is rejected."""
        assert judgment_from_payload([1, 2, 3]) is None
        assert judgment_from_payload(None) is None

    def test_optional_sections_missing(self):
        """Markets and confidence default when absent."""
        payload = {
            "predictedScore": {"home": 1, "away": 1},
            "winnerProbabilities": {"home": 30, "draw": 40, "away": 30},
        }
        judgment = judgment_from_payload(payload)
        assert judgment.confidence == 0.0
        assert judgment.reasoning is None
        assert judgment.btts_yes is None
        assert judgment.over25 is None


class TestBuildJudgmentPrompt:
    """Test prompt content."""

    def test_contains_match_and_baseline(self):
        """Teams, league and statistical baseline are listed."""
        prompt = build_judgment_prompt(
            make_match(round="Round 9"), None, None, None, None, None, make_statistical()
        )
        assert f"Home Team: Team {HOME_ID}" in prompt
        assert f"Away Team: Team {AWAY_ID}" in prompt
        assert "League: Premier League (England)" in prompt
        assert "Round: Round 9" in prompt
        assert "Expected Goals: Home 1.80, Away 1.10" in prompt
        assert "Win Probabilities: Home 50.0%, Draw 25.0%, Away 25.0%" in prompt
        assert '"predictedScore"' in prompt
        assert "HEAD-TO-HEAD" not in prompt
        assert "HOME TEAM STATISTICS" not in prompt

    def test_h2h_lines_reoriented(self):
        """The current home team is always listed first."""
        h2h = HeadToHeadData(meetings=[hist(AWAY_ID, HOME_ID, 3, 1, match_date="2025-03-01")])
        prompt = build_judgment_prompt(make_match(), h2h, None, None, None, None, make_statistical())
        assert "HEAD-TO-HEAD HISTORY (1 matches):" in prompt
        assert f"2025-03-01: Team {HOME_ID} 1 - 3 Team {AWAY_ID}" in prompt

    def test_stats_and_form_blocks(self):
        """Venue-specific stats and form appear when present."""
        home_stats = make_stats(HOME_ID, home=VenueStats(played=6, wins=4, draws=1, losses=1, goals_for=12, goals_against=5))
        form = FormSummary(wins=3, draws=1, losses=1, goals_for=9, goals_against=4,
                           avg_goals_for=1.8, avg_goals_against=0.8, matches_considered=5)
        prompt = build_judgment_prompt(make_match(), None, home_stats, None, form, None, make_statistical())
        assert "Home Record: 4W-1D-1L" in prompt
        assert "Home Matches Played: 6" in prompt
        assert "HOME TEAM RECENT FORM (Last 5 matches):" in prompt
        assert "Goals For: 9 (Avg: 1.80)" in prompt
        assert "AWAY TEAM STATISTICS" not in prompt


class TestMatchJudge:
    """Test MatchJudge with a fake LLM client."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.configured = True
        client.generate = AsyncMock(return_value=completed(json.dumps(VALID_PAYLOAD)))
        client.close = AsyncMock()
        return client

    def judge(self, client) -> MatchJudge:
        return MatchJudge(Settings(JUDGMENT_PROVIDER="gemini"), client=client)

    async def ask(self, judge):
        return await judge.request_judgment(
            make_match(), None, None, None, None, None, make_statistical()
        )

    @pytest.mark.asyncio
    async def test_returns_judgment(self, client):
        """Valid response → ExternalJudgment; system prompt is sent."""
        judgment = await self.ask(self.judge(client))
        assert judgment.predicted_home == 2
        assert judgment.confidence == 70
        assert client.generate.await_args.kwargs["system"] == SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, client):
        """No API key → None without calling the provider."""
        client.configured = False
        assert await self.ask(self.judge(client)) is None
        client.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_error_result(self, client):
        """ERROR result → None."""
        client.generate.return_value = LLMResult(
            status="ERROR", text="", tokens_in=0, tokens_out=0, exec_ms=10,
            model_version="gemini-2.5-flash", error="HTTP 500",
        )
        assert await self.ask(self.judge(client)) is None

    @pytest.mark.asyncio
    async def test_provider_exception(self, client):
        """Client-level error → None."""
        client.generate.side_effect = GeminiError("GEMINI_API_KEY not configured")
        assert await self.ask(self.judge(client)) is None

    @pytest.mark.asyncio
    async def test_unparseable_response(self, client):
        """Prose-only answer → None."""
        client.generate.return_value = completed("The home side should win comfortably.")
        assert await self.ask(self.judge(client)) is None

    @pytest.mark.asyncio
    async def test_partial_structure(self, client):
        """JSON with garbled numbers still yields a judgment."""
        client.generate.return_value = completed('{"predictedScore": {"home": "two"}}')
        judgment = await self.ask(self.judge(client))
        assert judgment.predicted_home == 0
        assert judgment.home_win_prob == 0

    @pytest.mark.asyncio
    async def test_unexpected_client_exception(self, client):
        """Anything the client raises → None."""
        client.generate.side_effect = RuntimeError("socket closed")
        assert await self.ask(self.judge(client)) is None

    def test_provider_selection(self):
        """JUDGMENT_PROVIDER picks the client class."""
        judge = MatchJudge(Settings(JUDGMENT_PROVIDER="cerebras"))
        assert type(judge.client).__name__ == "CerebrasClient"
        judge = MatchJudge(Settings(JUDGMENT_PROVIDER="gemini"))
        assert type(judge.client).__name__ == "GeminiClient"
