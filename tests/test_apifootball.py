"""
Tests for the APIfootball provider: payload parsing and HTTP behavior.

HTTP is mocked with httpx.MockTransport; retry delays are zero.
"""

from datetime import date, timedelta

import httpx
import pytest

from footcast.etl.apifootball import (
    APIFootballProvider,
    parse_head_to_head,
    parse_match,
    parse_odds,
    parse_standing,
)


def event(match_id="900", home="101", away="202", match_date="2026-10-24", **extra) -> dict:
    row = {
        "match_id": match_id,
        "country_id": "44",
        "country_name": "England",
        "league_id": "152",
        "league_name": "Premier League",
        "match_date": match_date,
        "match_time": "15:00",
        "match_status": "",
        "match_hometeam_id": home,
        "match_hometeam_name": f"Team {home}",
        "match_hometeam_score": "",
        "match_awayteam_id": away,
        "match_awayteam_name": f"Team {away}",
        "match_awayteam_score": "",
        "match_round": "9",
        "match_stadium": "",
        "match_referee": "",
    }
    row.update(extra)
    return row


def standing_row(team_id="101") -> dict:
    return {
        "team_id": team_id,
        "team_name": f"Team {team_id}",
        "overall_league_position": "3",
        "overall_league_payed": "10",
        "overall_league_W": "6",
        "overall_league_D": "2",
        "overall_league_L": "2",
        "overall_league_GF": "19",
        "overall_league_GA": "9",
        "overall_league_PTS": "20",
        "home_league_payed": "5",
        "home_league_W": "4",
        "home_league_D": "1",
        "home_league_L": "0",
        "home_league_GF": "12",
        "home_league_GA": "3",
        "away_league_payed": "5",
        "away_league_W": "2",
        "away_league_D": "1",
        "away_league_L": "2",
        "away_league_GF": "7",
        "away_league_GA": "6",
    }


def provider_for(handler, api_key="k") -> APIFootballProvider:
    return APIFootballProvider(
        api_key=api_key,
        base_url="https://api.test",
        requests_per_minute=6000,
        retry_delay=0,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestParsing:
    """Test payload conversion."""

    def test_parse_match_strings(self):
        """Numeric strings become numbers; blanks become None."""
        match = parse_match(
            event(match_status="Finished", match_hometeam_score="2", match_awayteam_score="0",
                  match_odd_1="1.85", match_odd_x="", match_odd_2="4.2")
        )
        assert match.match_id == "900"
        assert match.home_team_id == "101"
        assert match.is_finished
        assert (match.home_score, match.away_score) == (2, 0)
        assert match.round == "9"
        assert match.stadium is None
        assert (match.odds_home, match.odds_draw, match.odds_away) == (1.85, None, 4.2)

    def test_parse_head_to_head(self):
        """Meetings and latest results; missing scores count as 0."""
        data = {
            "firstTeam_VS_secondTeam": [
                event(match_status="Finished", match_hometeam_score="1", match_awayteam_score="1")
            ],
            "firstTeam_lastResults": [event(match_id="1", match_hometeam_score="3", match_awayteam_score="")],
            "secondTeam_Latest": [event(match_id="2"), event(match_id="3")],
        }
        h2h = parse_head_to_head(data)
        assert len(h2h.meetings) == 1
        assert h2h.meetings[0].home_score == 1
        assert h2h.home_latest[0].away_score == 0
        assert [m.match_id for m in h2h.away_latest] == ["2", "3"]

    def test_parse_standing(self):
        """Overall/home/away blocks and points."""
        stats = parse_standing(standing_row())
        assert stats.overall.position == 3
        assert stats.overall.played == 10
        assert stats.home.goals_for == 12
        assert stats.away.goals_against == 6
        assert stats.home.position is None
        assert stats.points == 20

    def test_parse_odds_first_priced_row(self):
        """Rows without prices are skipped."""
        rows = [
            {"odd_bookmakers": "A", "odd_1": "", "odd_x": "", "odd_2": ""},
            {"odd_bookmakers": "B", "odd_1": "2.10", "odd_x": "3.30", "odd_2": "3.60"},
        ]
        assert parse_odds(rows) == {"home": 2.1, "draw": 3.3, "away": 3.6}
        assert parse_odds([]) is None


class TestProviderRequests:
    """Test HTTP handling."""

    @pytest.mark.asyncio
    async def test_fixtures_query(self):
        """action, filters and APIkey are sent as query parameters."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params)
            return httpx.Response(200, json=[event()])

        provider = provider_for(handler)
        fixtures = await provider.get_fixtures("2026-10-24", "2026-10-25", league_id="152")

        assert len(fixtures) == 1
        params = seen[0]
        assert params["action"] == "get_events"
        assert params["from"] == "2026-10-24"
        assert params["league_id"] == "152"
        assert "country_id" not in params
        assert params["APIkey"] == "k"

    @pytest.mark.asyncio
    async def test_error_envelope_is_no_data(self):
        """{"error": 404, ...} → empty result, not an exception."""
        provider = provider_for(
            lambda r: httpx.Response(200, json={"error": 404, "message": "No event found"})
        )
        assert await provider.get_fixtures("2026-10-24", "2026-10-24") == []
        assert await provider.get_head_to_head("101", "202") is None

    @pytest.mark.asyncio
    async def test_server_error_retried(self):
        """5xx is retried with backoff."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json=[event()])

        fixtures = await provider_for(handler).get_fixtures("2026-10-24", "2026-10-24")
        assert len(calls) == 3
        assert len(fixtures) == 1

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        """4xx other than 429 fails at once."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401)

        assert await provider_for(handler).get_odds("900") is None
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_retries(self):
        """Persistent 429 → no data after max_retries attempts."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        assert await provider_for(handler).get_standings("152") == []
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_calls(self):
        """No APIFOOTBALL_KEY → every fetch is empty."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json=[])

        provider = provider_for(handler, api_key="")
        assert await provider.get_fixtures("2026-10-24", "2026-10-24") == []
        assert await provider.get_team_stats("101", "152") is None
        assert calls == []


class TestProviderFetches:
    """Test typed fetch results."""

    @pytest.mark.asyncio
    async def test_team_stats_matches_team(self):
        """The row for the requested team is chosen, not the first row."""
        provider = provider_for(
            lambda r: httpx.Response(200, json=[standing_row("303"), standing_row("101")])
        )
        stats = await provider.get_team_stats("101", "152")
        assert stats.team_id == "101"

    @pytest.mark.asyncio
    async def test_team_stats_no_matching_row(self):
        """Another team's standing is never substituted."""
        provider = provider_for(lambda r: httpx.Response(200, json=[standing_row("303")]))
        assert await provider.get_team_stats("101", "152") is None

    @pytest.mark.asyncio
    async def test_head_to_head(self):
        """firstTeamId / secondTeamId carry the current orientation."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.params)
            return httpx.Response(200, json={"firstTeam_VS_secondTeam": [event()]})

        h2h = await provider_for(handler).get_head_to_head("101", "202")
        assert seen[0]["firstTeamId"] == "101"
        assert seen[0]["secondTeamId"] == "202"
        assert len(h2h.meetings) == 1
        assert h2h.home_latest == []

    @pytest.mark.asyncio
    async def test_odds(self):
        """get_odds returns the first priced row."""
        provider = provider_for(
            lambda r: httpx.Response(200, json=[{"match_id": "900", "odd_1": "1.5", "odd_x": "4", "odd_2": "6"}])
        )
        assert await provider.get_odds("900") == {"home": 1.5, "draw": 4.0, "away": 6.0}


class TestFindMatchBetweenTeams:
    """Test fixture search around today."""

    @pytest.mark.asyncio
    async def test_prefers_exact_orientation(self):
        """Exact home/away beats a closer reversed fixture."""
        today = date.today()
        rows = [
            event("1", home="202", away="101", match_date=(today + timedelta(days=1)).isoformat()),
            event("2", home="101", away="202", match_date=(today + timedelta(days=9)).isoformat()),
            event("3", home="101", away="303", match_date=today.isoformat()),
        ]
        provider = provider_for(lambda r: httpx.Response(200, json=rows))

        match = await provider.find_match_between_teams("101", "202")
        assert match.match_id == "2"

    @pytest.mark.asyncio
    async def test_closest_date_wins(self):
        """Among same-orientation fixtures the nearest to today is picked."""
        today = date.today()
        rows = [
            event("1", match_date=(today - timedelta(days=20)).isoformat()),
            event("2", match_date=(today + timedelta(days=3)).isoformat()),
        ]
        provider = provider_for(lambda r: httpx.Response(200, json=rows))

        match = await provider.find_match_between_teams("101", "202")
        assert match.match_id == "2"

    @pytest.mark.asyncio
    async def test_none_found(self):
        """No fixture between the pair → None."""
        provider = provider_for(lambda r: httpx.Response(200, json=[event(home="101", away="303")]))
        assert await provider.find_match_between_teams("101", "202") is None
