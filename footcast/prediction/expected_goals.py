"""Per-team scoring and conceding rates from season standings."""

from typing import Optional

from footcast.prediction.types import TeamSeasonStats, Venue

# Fewer venue matches than this and the rate is not trusted
MIN_MATCHES_PLAYED = 3


def _venue_rate(stats: Optional[TeamSeasonStats], venue: Venue, conceded: bool) -> Optional[float]:
    if stats is None:
        return None
    line = stats.for_venue(venue)
    if line.played < MIN_MATCHES_PLAYED:
        return None
    goals = line.goals_against if conceded else line.goals_for
    return goals / line.played


def estimate_goals_for(stats: Optional[TeamSeasonStats], venue: Venue) -> Optional[float]:
    """
    Goals scored per match at `venue`.

    Returns None (insufficient data) when stats are missing or the team has
    played fewer than MIN_MATCHES_PLAYED matches at that venue.
    """
    return _venue_rate(stats, venue, conceded=False)


def estimate_goals_conceded(stats: Optional[TeamSeasonStats], venue: Venue) -> Optional[float]:
    """Goals conceded per match at `venue`; None on insufficient data."""
    return _venue_rate(stats, venue, conceded=True)
