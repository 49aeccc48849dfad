"""
External match judgment via LLM.

Builds a compact prompt from the gathered evidence and the statistical
baseline, asks the configured provider for a JSON estimate and turns it
into an ExternalJudgment. Any failure yields None; the engine decides
what a missing judgment means.
"""

import json
import logging
import math
from typing import Any, Optional

from footcast.config import Settings, get_settings
from footcast.llm.cerebras_client import CerebrasClient, CerebrasError
from footcast.llm.gemini_client import GeminiClient, GeminiError
from footcast.prediction.types import (
    ExternalJudgment,
    FormSummary,
    HeadToHeadData,
    Match,
    StatisticalSummary,
    TeamSeasonStats,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert football analyst with deep knowledge of match statistics, "
    "team performance, and prediction modeling. Always respond with valid JSON only, "
    "no additional text."
)

# Meetings listed in the prompt
PROMPT_H2H_LIMIT = 10

RESPONSE_FORMAT = """{
  "predictedScore": {"home": <integer 0-5>, "away": <integer 0-5>},
  "winnerProbabilities": {"home": <percentage 0-100>, "draw": <percentage 0-100>, "away": <percentage 0-100>},
  "confidence": <percentage 0-100>,
  "reasoning": "<short note (2-3 sentences) explaining your prediction based on the data>",
  "bothTeamsToScore": {"yes": <percentage 0-100>, "no": <percentage 0-100>},
  "overUnder": {"over25": <percentage 0-100>, "under25": <percentage 0-100>}
}"""


# =============================================================================
# PROMPT
# =============================================================================


def _stats_block(title: str, stats: TeamSeasonStats, venue_label: str, venue_stats) -> list[str]:
    overall = stats.overall
    position = overall.position if overall.position is not None else "N/A"
    return [
        f"{title}:",
        f"  Overall Position: {position}",
        f"  Overall Record: {overall.wins}W-{overall.draws}D-{overall.losses}L",
        f"  Goals: {overall.goals_for} For, {overall.goals_against} Against",
        f"  {venue_label} Record: {venue_stats.wins}W-{venue_stats.draws}D-{venue_stats.losses}L",
        f"  {venue_label} Goals: {venue_stats.goals_for} For, {venue_stats.goals_against} Against",
        f"  {venue_label} Matches Played: {venue_stats.played}",
        "",
    ]


def _form_block(title: str, form: FormSummary) -> list[str]:
    return [
        f"{title} (Last {form.matches_considered} matches):",
        f"  Record: {form.wins}W-{form.draws}D-{form.losses}L",
        f"  Goals For: {form.goals_for} (Avg: {form.avg_goals_for:.2f})",
        f"  Goals Against: {form.goals_against} (Avg: {form.avg_goals_against:.2f})",
        "",
    ]


def build_judgment_prompt(
    match: Match,
    h2h: Optional[HeadToHeadData],
    home_stats: Optional[TeamSeasonStats],
    away_stats: Optional[TeamSeasonStats],
    home_form: Optional[FormSummary],
    away_form: Optional[FormSummary],
    statistical: StatisticalSummary,
) -> str:
    """
    Build the judgment prompt.

    Head-to-head lines are re-oriented so the current home team is always
    listed first. Absent evidence sections are left out.
    """
    lines = [
        "Football Match Analysis and Prediction Request",
        "",
        "MATCH INFORMATION:",
        f"Home Team: {match.home_team_name}",
        f"Away Team: {match.away_team_name}",
        f"League: {match.league_name} ({match.country_name})",
        f"Date: {match.match_date} at {match.match_time}",
    ]
    if match.round:
        lines.append(f"Round: {match.round}")
    lines.append("")

    lines += [
        "STATISTICAL MODEL PREDICTION:",
        f"Expected Goals: Home {statistical.home_expected_goals:.2f}, "
        f"Away {statistical.away_expected_goals:.2f}",
        f"Win Probabilities: Home {statistical.home_win_prob:.1f}%, "
        f"Draw {statistical.draw_prob:.1f}%, Away {statistical.away_win_prob:.1f}%",
        "",
    ]

    if h2h is not None:
        meetings = [m for m in h2h.meetings if m.is_finished]
        if meetings:
            lines.append(f"HEAD-TO-HEAD HISTORY ({len(meetings)} matches):")
            for i, m in enumerate(meetings[:PROMPT_H2H_LIMIT], start=1):
                if m.home_team_id == match.home_team_id:
                    line = f"{m.home_team_name} {m.home_score} - {m.away_score} {m.away_team_name}"
                else:
                    line = f"{m.away_team_name} {m.away_score} - {m.home_score} {m.home_team_name}"
                lines.append(f"  {i}. {m.match_date}: {line}")
            lines.append("")

    if home_stats is not None:
        lines += _stats_block(
            f"HOME TEAM STATISTICS ({match.home_team_name})", home_stats, "Home", home_stats.home
        )
    if away_stats is not None:
        lines += _stats_block(
            f"AWAY TEAM STATISTICS ({match.away_team_name})", away_stats, "Away", away_stats.away
        )
    if home_form is not None and home_form.matches_considered:
        lines += _form_block("HOME TEAM RECENT FORM", home_form)
    if away_form is not None and away_form.matches_considered:
        lines += _form_block("AWAY TEAM RECENT FORM", away_form)

    lines += [
        "Based on the match data above, provide your analysis and prediction.",
        "",
        "Consider head-to-head patterns, recent form, home/away records, goal scoring and "
        "defensive statistics, league position, and the statistical model as a baseline.",
        "",
        "Respond in the following JSON format (ONLY JSON, no other text):",
        RESPONSE_FORMAT,
        "",
        "IMPORTANT:",
        "- Winner probabilities must sum to 100%",
        "- Predicted score must be realistic integers (0-5 goals)",
        "- Confidence should reflect data quality and analysis certainty",
        "- Reasoning must be a short note (2-3 sentences) naming the key factors",
    ]
    return "\n".join(lines)


# =============================================================================
# RESPONSE PARSING
# =============================================================================


def parse_json_response(text: str) -> Optional[dict]:
    """
    Parse JSON from LLM response.

    Handles markdown code fences and prose around the object.

    Args:
        text: Raw text from LLM.

    Returns:
        Parsed dict or None if invalid.
    """
    text = (text or "").strip()

    # Remove markdown code blocks if present
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    text = text.strip()

    start = text.find("{")
    if start < 0:
        logger.warning("No JSON object found in response")
        return None

    # Find the matching closing brace (handle nested objects)
    depth = 0
    end = start
    for i, char in enumerate(text[start:], start):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = i + 1
                break

    if depth != 0:
        end = text.rfind("}") + 1

    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse failed: {e}")
        return None

    return data if isinstance(data, dict) else None


def _to_number(value: Any) -> Optional[float]:
    """Numbers and numeric strings as float; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _number(section: Any, key: str) -> float:
    if not isinstance(section, dict):
        return 0.0
    number = _to_number(section.get(key))
    return number if number is not None else 0.0


def _optional_number(section: Any, key: str) -> Optional[float]:
    if isinstance(section, dict):
        return _to_number(section.get(key))
    return None


def judgment_from_payload(payload: Any) -> Optional[ExternalJudgment]:
    """
    Map the provider JSON onto ExternalJudgment.

    Only a payload that is not a JSON object is rejected. A missing or
    unparseable score, probability or confidence becomes 0; range checks
    are left to fusion.validate_judgment().
    """
    if not isinstance(payload, dict):
        return None

    score = payload.get("predictedScore")
    winner = payload.get("winnerProbabilities")
    reasoning = payload.get("reasoning")
    btts = payload.get("bothTeamsToScore")
    over_under = payload.get("overUnder")

    return ExternalJudgment(
        predicted_home=_number(score, "home"),
        predicted_away=_number(score, "away"),
        home_win_prob=_number(winner, "home"),
        draw_prob=_number(winner, "draw"),
        away_win_prob=_number(winner, "away"),
        confidence=_number(payload, "confidence"),
        reasoning=reasoning.strip() if isinstance(reasoning, str) and reasoning.strip() else None,
        btts_yes=_optional_number(btts, "yes"),
        btts_no=_optional_number(btts, "no"),
        over25=_optional_number(over_under, "over25"),
        under25=_optional_number(over_under, "under25"),
    )


# =============================================================================
# JUDGE
# =============================================================================


class MatchJudge:
    """Requests external judgments using the configured LLM provider (Gemini or Cerebras)."""

    def __init__(self, settings: Optional[Settings] = None, client=None):
        self.settings = settings or get_settings()
        self.provider_name = self.settings.JUDGMENT_PROVIDER.lower().strip()

        if client is not None:
            self.client = client
        elif self.provider_name == "cerebras":
            self.client = CerebrasClient()
            logger.info("MatchJudge using Cerebras provider")
        else:
            self.client = GeminiClient()
            logger.info("MatchJudge using Gemini provider")

    async def close(self):
        await self.client.close()

    async def request_judgment(
        self,
        match: Match,
        h2h: Optional[HeadToHeadData],
        home_stats: Optional[TeamSeasonStats],
        away_stats: Optional[TeamSeasonStats],
        home_form: Optional[FormSummary],
        away_form: Optional[FormSummary],
        statistical: StatisticalSummary,
    ) -> Optional[ExternalJudgment]:
        """
        Ask the provider for a judgment on one fixture.

        Returns:
            ExternalJudgment, or None when the provider is not configured,
            the call fails, or the answer holds no JSON object.
        """
        if not self.client.configured:
            logger.warning(
                f"[JUDGMENT] {self.provider_name} not configured, no judgment for match {match.match_id}"
            )
            return None

        prompt = build_judgment_prompt(
            match, h2h, home_stats, away_stats, home_form, away_form, statistical
        )

        try:
            result = await self.client.generate(prompt, system=SYSTEM_PROMPT)
        except (GeminiError, CerebrasError) as e:
            logger.warning(f"[JUDGMENT] match {match.match_id}: {e}")
            return None
        except Exception as e:
            logger.exception(f"[JUDGMENT] match {match.match_id}: provider call failed: {e}")
            return None

        if not result.ok:
            logger.warning(
                f"[JUDGMENT] match {match.match_id}: {result.status} "
                f"after {result.models_tried} model(s): {result.error}"
            )
            return None

        payload = parse_json_response(result.text)
        if payload is None:
            logger.warning(f"[JUDGMENT] match {match.match_id}: unparseable response: {result.text[:500]}")
            return None

        judgment = judgment_from_payload(payload)
        if judgment is None:
            logger.warning(f"[JUDGMENT] match {match.match_id}: response is not a JSON object")
            return None

        log_data = {
            "match_id": match.match_id,
            "model": result.model_version,
            "score": f"{judgment.predicted_home:g}-{judgment.predicted_away:g}",
            "confidence": judgment.confidence,
            "tokens_in": result.tokens_in,
            "tokens_out": result.tokens_out,
            "exec_ms": result.exec_ms,
        }
        logger.info(f"[JUDGMENT] {json.dumps(log_data)}")
        return judgment
