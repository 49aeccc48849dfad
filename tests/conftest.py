"""Shared factories for footcast tests."""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

from footcast.prediction.types import (
    ExternalJudgment,
    HistoricalMatch,
    Match,
    StatisticalSummary,
    TeamSeasonStats,
    VenueStats,
)

HOME_ID = "101"
AWAY_ID = "202"


def make_match(
    match_id: str = "5001",
    home_team_id: str = HOME_ID,
    away_team_id: str = AWAY_ID,
    status: str = "",
    **kwargs,
) -> Match:
    values = dict(
        match_id=match_id,
        league_id="152",
        league_name="Premier League",
        country_id="44",
        country_name="England",
        match_date="2026-10-24",
        match_time="15:00",
        home_team_id=home_team_id,
        home_team_name=f"Team {home_team_id}",
        away_team_id=away_team_id,
        away_team_name=f"Team {away_team_id}",
        status=status,
    )
    values.update(kwargs)
    return Match(**values)


def hist(
    home_team_id: str,
    away_team_id: str,
    home_score: int,
    away_score: int,
    status: str = "Finished",
    match_date: str = "2025-01-01",
) -> HistoricalMatch:
    return HistoricalMatch(
        match_id=f"h-{home_team_id}-{away_team_id}-{home_score}{away_score}",
        match_date=match_date,
        home_team_id=home_team_id,
        home_team_name=f"Team {home_team_id}",
        away_team_id=away_team_id,
        away_team_name=f"Team {away_team_id}",
        home_score=home_score,
        away_score=away_score,
        status=status,
    )


def make_stats(
    team_id: str,
    home: Optional[VenueStats] = None,
    away: Optional[VenueStats] = None,
) -> TeamSeasonStats:
    home = home or VenueStats()
    away = away or VenueStats()
    overall = VenueStats(
        played=home.played + away.played,
        wins=home.wins + away.wins,
        draws=home.draws + away.draws,
        losses=home.losses + away.losses,
        goals_for=home.goals_for + away.goals_for,
        goals_against=home.goals_against + away.goals_against,
        position=4,
    )
    return TeamSeasonStats(
        team_id=team_id,
        team_name=f"Team {team_id}",
        overall=overall,
        home=home,
        away=away,
    )


def make_statistical(**kwargs) -> StatisticalSummary:
    values = dict(
        home_expected_goals=1.8,
        away_expected_goals=1.1,
        score_mode=(2, 1),
        home_win_prob=50.0,
        draw_prob=25.0,
        away_win_prob=25.0,
        btts_yes=55.0,
        over25=50.0,
        confidence=30.0,
    )
    values.update(kwargs)
    return StatisticalSummary(**values)


def make_judgment(**kwargs) -> ExternalJudgment:
    values = dict(
        predicted_home=2,
        predicted_away=1,
        home_win_prob=55.0,
        draw_prob=25.0,
        away_win_prob=20.0,
        confidence=70.0,
        reasoning="Home side stronger at home.",
        btts_yes=60.0,
        btts_no=40.0,
        over25=65.0,
        under25=35.0,
    )
    values.update(kwargs)
    return ExternalJudgment(**values)


def fake_provider(h2h=None, home_stats=None, away_stats=None, odds=None, fixtures=None, found=None):
    """DataProvider double; team stats are looked up by team id."""
    provider = MagicMock()
    provider.get_odds = AsyncMock(return_value=odds)
    provider.get_head_to_head = AsyncMock(return_value=h2h)
    provider.get_fixtures = AsyncMock(return_value=fixtures or [])
    provider.find_match_between_teams = AsyncMock(return_value=found)

    async def team_stats(team_id, league_id):
        return {HOME_ID: home_stats, AWAY_ID: away_stats}.get(team_id)

    provider.get_team_stats = AsyncMock(side_effect=team_stats)
    return provider
