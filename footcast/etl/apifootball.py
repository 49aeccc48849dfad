"""APIfootball v3 data provider implementation (apiv3.apifootball.com)."""

import asyncio
import logging
import time
from datetime import date, timedelta
from typing import Any, Optional

import httpx

from footcast.config import get_settings
from footcast.etl.base import DataProvider
from footcast.prediction.types import (
    HeadToHeadData,
    HistoricalMatch,
    Match,
    TeamSeasonStats,
    VenueStats,
)
from footcast.telemetry import record_provider_error, record_provider_request

logger = logging.getLogger(__name__)

PROVIDER = "apifootball"

# Fixture search window for find_match_between_teams()
SEARCH_DAYS_BACK = 30
SEARCH_DAYS_FORWARD = 30


class APIFootballError(RuntimeError):
    """Error response (or exhausted retries) from APIfootball."""


# =============================================================================
# PAYLOAD PARSING
# =============================================================================
# APIfootball returns every number as a string ("3", "", "1.85").


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def _to_optional_int(value: Any) -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _to_optional_float(value: Any) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_match(event: dict) -> Match:
    """Parse a get_events row into a Match."""
    return Match(
        match_id=str(event.get("match_id", "")),
        league_id=str(event.get("league_id", "")),
        league_name=event.get("league_name", "") or "",
        country_id=str(event.get("country_id", "")),
        country_name=event.get("country_name", "") or "",
        match_date=event.get("match_date", "") or "",
        match_time=event.get("match_time", "") or "",
        home_team_id=str(event.get("match_hometeam_id", "")),
        home_team_name=event.get("match_hometeam_name", "") or "",
        away_team_id=str(event.get("match_awayteam_id", "")),
        away_team_name=event.get("match_awayteam_name", "") or "",
        status=event.get("match_status", "") or "",
        home_score=_to_optional_int(event.get("match_hometeam_score")),
        away_score=_to_optional_int(event.get("match_awayteam_score")),
        round=_text(event.get("match_round")),
        stadium=_text(event.get("match_stadium")),
        referee=_text(event.get("match_referee")),
        home_badge=_text(event.get("team_home_badge")),
        away_badge=_text(event.get("team_away_badge")),
        odds_home=_to_optional_float(event.get("match_odd_1")),
        odds_draw=_to_optional_float(event.get("match_odd_x")),
        odds_away=_to_optional_float(event.get("match_odd_2")),
    )


def parse_historical_match(event: dict) -> HistoricalMatch:
    """Parse a get_H2H row; missing scores count as 0."""
    return HistoricalMatch(
        match_id=str(event.get("match_id", "")),
        match_date=event.get("match_date", "") or "",
        home_team_id=str(event.get("match_hometeam_id", "")),
        home_team_name=event.get("match_hometeam_name", "") or "",
        away_team_id=str(event.get("match_awayteam_id", "")),
        away_team_name=event.get("match_awayteam_name", "") or "",
        home_score=_to_int(event.get("match_hometeam_score")),
        away_score=_to_int(event.get("match_awayteam_score")),
        status=event.get("match_status", "") or "",
    )


def parse_head_to_head(data: dict) -> HeadToHeadData:
    """
    Parse a get_H2H response.

    "firstTeam" is always the team passed as firstTeamId (the current home side).
    Older payloads name the latest-results lists *_Latest instead of *_lastResults.
    """
    meetings = data.get("firstTeam_VS_secondTeam") or []
    home_latest = data.get("firstTeam_lastResults") or data.get("firstTeam_Latest") or []
    away_latest = data.get("secondTeam_lastResults") or data.get("secondTeam_Latest") or []
    return HeadToHeadData(
        meetings=[parse_historical_match(m) for m in meetings],
        home_latest=[parse_historical_match(m) for m in home_latest],
        away_latest=[parse_historical_match(m) for m in away_latest],
    )


def _venue_stats(row: dict, prefix: str) -> VenueStats:
    # "payed" is the provider's spelling
    return VenueStats(
        played=_to_int(row.get(f"{prefix}_league_payed")),
        wins=_to_int(row.get(f"{prefix}_league_W")),
        draws=_to_int(row.get(f"{prefix}_league_D")),
        losses=_to_int(row.get(f"{prefix}_league_L")),
        goals_for=_to_int(row.get(f"{prefix}_league_GF")),
        goals_against=_to_int(row.get(f"{prefix}_league_GA")),
        position=_to_optional_int(row.get(f"{prefix}_league_position")),
    )


def parse_standing(row: dict) -> TeamSeasonStats:
    """Parse a get_standings row into TeamSeasonStats."""
    return TeamSeasonStats(
        team_id=str(row.get("team_id", "")),
        team_name=row.get("team_name", "") or "",
        overall=_venue_stats(row, "overall"),
        home=_venue_stats(row, "home"),
        away=_venue_stats(row, "away"),
        points=_to_optional_int(row.get("overall_league_PTS")),
    )


def parse_odds(rows: list) -> Optional[dict]:
    """First bookmaker row carrying any 1X2 price."""
    for row in rows or []:
        odds = {
            "home": _to_optional_float(row.get("odd_1")),
            "draw": _to_optional_float(row.get("odd_x")),
            "away": _to_optional_float(row.get("odd_2")),
        }
        if any(v is not None for v in odds.values()):
            return odds
    return None


# =============================================================================
# PROVIDER
# =============================================================================


class APIFootballProvider(DataProvider):
    """APIfootball v3 provider with rate limiting, retries and telemetry."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        requests_per_minute: Optional[int] = None,
        timeout: Optional[float] = None,
        retry_delay: float = 5.0,
        max_retries: int = 3,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.api_key = (api_key if api_key is not None else settings.APIFOOTBALL_KEY or "").strip()
        self.base_url = (base_url or settings.APIFOOTBALL_BASE_URL).strip().rstrip("/")
        rpm = requests_per_minute or settings.API_REQUESTS_PER_MINUTE
        self.min_interval = 60 / rpm if rpm > 0 else 0.0
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.client = client or httpx.AsyncClient(timeout=timeout or settings.API_TIMEOUT_SECONDS)

        self._throttle_lock = asyncio.Lock()
        self._last_request_ts = 0.0

        if not self.api_key:
            logger.warning("APIFOOTBALL_KEY not configured; all fetches will return no data")

    async def _throttle(self) -> None:
        """Keep at least min_interval seconds between requests."""
        async with self._throttle_lock:
            wait = self.min_interval - (time.monotonic() - self._last_request_ts)
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_ts = time.monotonic()

    async def _request(self, action: str, params: dict, entity: str) -> Any:
        """
        Make a rate-limited request to the API.

        Implements exponential backoff on 429, timeouts and transport errors.

        Args:
            action: APIfootball action (get_events, get_H2H, ...).
            params: Query parameters besides action/APIkey.
            entity: Entity label for telemetry.

        Raises:
            APIFootballError: provider error envelope, missing key or
                exhausted retries.
        """
        if not self.api_key:
            raise APIFootballError("APIFOOTBALL_KEY not configured")

        url = f"{self.base_url}/"
        query = {"action": action, **params, "APIkey": self.api_key}

        for attempt in range(self.max_retries):
            start_time = time.time()
            try:
                await self._throttle()
                response = await self.client.get(url, params=query)
                latency_ms = (time.time() - start_time) * 1000

                if response.status_code == 429:
                    record_provider_request(PROVIDER, entity, 429, latency_ms)
                    record_provider_error(PROVIDER, entity, "rate_limit")
                    wait_time = self.retry_delay * (2**attempt)
                    logger.warning(f"Rate limited on {action}. Waiting {wait_time}s before retry...")
                    await asyncio.sleep(wait_time)
                    continue

                response.raise_for_status()
                record_provider_request(PROVIDER, entity, response.status_code, latency_ms)

                data = response.json()
                if isinstance(data, dict) and str(data.get("error", 0)) not in ("0", "None"):
                    record_provider_error(PROVIDER, entity, "api_error")
                    raise APIFootballError(data.get("message") or "API returned an error")
                return data

            except httpx.TimeoutException as e:
                record_provider_error(PROVIDER, entity, "timeout")
                logger.error(f"Timeout on {action}: {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2**attempt))
                    continue
                raise APIFootballError(f"{action} timed out after {self.max_retries} attempts") from e

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                record_provider_request(PROVIDER, entity, status_code, (time.time() - start_time) * 1000)
                record_provider_error(PROVIDER, entity, f"http_{status_code}")
                logger.error(f"HTTP error on {action}: {status_code}")
                if status_code >= 500 and attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2**attempt))
                    continue
                raise APIFootballError(f"{action} failed with HTTP {status_code}") from e

            except httpx.RequestError as e:
                record_provider_error(PROVIDER, entity, "request_error")
                logger.error(f"Request error on {action}: {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2**attempt))
                    continue
                raise APIFootballError(f"{action} failed: {e}") from e

        raise APIFootballError(f"{action} still rate limited after {self.max_retries} attempts")

    # -------------------------------------------------------------------------
    # Public fetches: failures degrade to "no data"
    # -------------------------------------------------------------------------

    async def get_fixtures(
        self,
        date_from: str,
        date_to: str,
        league_id: Optional[str] = None,
        country_id: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> list[Match]:
        params = {"from": date_from, "to": date_to}
        if league_id:
            params["league_id"] = league_id
        if country_id:
            params["country_id"] = country_id
        if team_id:
            params["team_id"] = team_id

        try:
            data = await self._request("get_events", params, entity="fixtures")
        except Exception as e:
            logger.warning(f"Error fetching fixtures {date_from}..{date_to}: {e}")
            return []

        if not isinstance(data, list):
            return []
        return [parse_match(event) for event in data]

    async def get_head_to_head(
        self, home_team_id: str, away_team_id: str
    ) -> Optional[HeadToHeadData]:
        try:
            data = await self._request(
                "get_H2H",
                {"firstTeamId": home_team_id, "secondTeamId": away_team_id},
                entity="h2h",
            )
        except Exception as e:
            logger.warning(f"Error fetching H2H {home_team_id} vs {away_team_id}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        return parse_head_to_head(data)

    async def get_team_stats(self, team_id: str, league_id: str) -> Optional[TeamSeasonStats]:
        """
        Standings line for one team.

        Only the row whose team_id matches is returned; another team's line
        would be worse than no stats at all.
        """
        try:
            data = await self._request(
                "get_standings",
                {"league_id": league_id, "team_id": team_id},
                entity="standings",
            )
        except Exception as e:
            logger.warning(f"Error fetching team stats team={team_id} league={league_id}: {e}")
            return None

        if not isinstance(data, list):
            return None
        for row in data:
            if str(row.get("team_id", "")) == str(team_id):
                return parse_standing(row)
        return None

    async def get_standings(self, league_id: str) -> list[TeamSeasonStats]:
        try:
            data = await self._request("get_standings", {"league_id": league_id}, entity="standings")
        except Exception as e:
            logger.warning(f"Error fetching standings league={league_id}: {e}")
            return []

        if not isinstance(data, list):
            return []
        return [parse_standing(row) for row in data]

    async def get_odds(self, match_id: str) -> Optional[dict]:
        try:
            data = await self._request("get_odds", {"match_id": match_id}, entity="odds")
        except Exception as e:
            logger.warning(f"Error fetching odds for match {match_id}: {e}")
            return None

        if not isinstance(data, list):
            return None
        return parse_odds(data)

    async def find_match_between_teams(
        self, home_team_id: str, away_team_id: str
    ) -> Optional[Match]:
        """
        Look for a fixture between two teams around today.

        Prefers the exact home/away orientation, then the fixture closest
        to today.
        """
        today = date.today()
        fixtures = await self.get_fixtures(
            (today - timedelta(days=SEARCH_DAYS_BACK)).isoformat(),
            (today + timedelta(days=SEARCH_DAYS_FORWARD)).isoformat(),
            team_id=home_team_id,
        )
        pair = {str(home_team_id), str(away_team_id)}
        candidates = [m for m in fixtures if {m.home_team_id, m.away_team_id} == pair]
        if not candidates:
            return None

        def sort_key(match: Match):
            exact = match.home_team_id == str(home_team_id)
            try:
                distance = abs((date.fromisoformat(match.match_date) - today).days)
            except ValueError:
                distance = SEARCH_DAYS_BACK + SEARCH_DAYS_FORWARD
            return (not exact, distance)

        return sorted(candidates, key=sort_key)[0]

    async def close(self) -> None:
        await self.client.aclose()
