"""Abstract base class for sports-data providers."""

from abc import ABC, abstractmethod
from typing import Optional

from footcast.prediction.types import HeadToHeadData, Match, TeamSeasonStats


class DataProvider(ABC):
    """
    Abstract base class for football data providers.

    Fetch methods never raise to the caller: a failed fetch is logged and
    returned as None (or an empty list), and the prediction engine treats
    it as missing evidence.
    """

    @abstractmethod
    async def get_fixtures(
        self,
        date_from: str,
        date_to: str,
        league_id: Optional[str] = None,
        country_id: Optional[str] = None,
        team_id: Optional[str] = None,
    ) -> list[Match]:
        """
        Fetch fixtures in a date range.

        Args:
            date_from: First day, YYYY-MM-DD.
            date_to: Last day, YYYY-MM-DD.
            league_id: Optional competition filter.
            country_id: Optional country filter.
            team_id: Optional filter on one participating team.

        Returns:
            List of Match objects (empty on failure).
        """
        pass

    @abstractmethod
    async def get_head_to_head(
        self, home_team_id: str, away_team_id: str
    ) -> Optional[HeadToHeadData]:
        """Fetch past meetings plus each team's latest results, or None."""
        pass

    @abstractmethod
    async def get_team_stats(self, team_id: str, league_id: str) -> Optional[TeamSeasonStats]:
        """Fetch one team's standings line in a competition, or None."""
        pass

    @abstractmethod
    async def get_standings(self, league_id: str) -> list[TeamSeasonStats]:
        """Fetch a full league table (empty on failure)."""
        pass

    @abstractmethod
    async def get_odds(self, match_id: str) -> Optional[dict]:
        """
        Fetch 1X2 market odds for a fixture.

        Returns:
            {"home": float|None, "draw": float|None, "away": float|None} or None.
        """
        pass

    async def find_match_between_teams(
        self, home_team_id: str, away_team_id: str
    ) -> Optional[Match]:
        """Find a recent or upcoming fixture between two teams (optional capability)."""
        return None

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
