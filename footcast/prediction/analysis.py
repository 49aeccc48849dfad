"""Head-to-head and recent-form reducers."""

from typing import Optional, Sequence

from footcast.prediction.types import FormSummary, HeadToHeadSummary, HistoricalMatch

FORM_WINDOW = 5


def analyze_head_to_head(
    meetings: Optional[Sequence[HistoricalMatch]],
    home_team_id: str,
    away_team_id: str,
) -> HeadToHeadSummary:
    """
    Reduce past meetings onto the current fixture's home/away assignment.

    Only finished meetings count. A meeting where the current home team was
    the visitor has its score swapped, so the summary does not depend on
    where each historical game was played. No meetings is a valid all-zero
    summary, not an error.

    Args:
        meetings: Past fixtures between the two teams (any order).
        home_team_id: Current home team.
        away_team_id: Current away team.

    Returns:
        HeadToHeadSummary in the current orientation.
    """
    if not meetings:
        return HeadToHeadSummary()

    home_wins = draws = away_wins = 0
    total_home_goals = total_away_goals = 0
    counted = 0

    for meeting in meetings:
        if not meeting.is_finished:
            continue

        if meeting.home_team_id == home_team_id:
            home_goals, away_goals = meeting.home_score, meeting.away_score
        else:
            home_goals, away_goals = meeting.away_score, meeting.home_score

        total_home_goals += home_goals
        total_away_goals += away_goals
        if home_goals > away_goals:
            home_wins += 1
        elif home_goals < away_goals:
            away_wins += 1
        else:
            draws += 1
        counted += 1

    if counted == 0:
        return HeadToHeadSummary()

    return HeadToHeadSummary(
        home_wins=home_wins,
        draws=draws,
        away_wins=away_wins,
        total_matches=counted,
        avg_home_goals=total_home_goals / counted,
        avg_away_goals=total_away_goals / counted,
    )


def analyze_form(
    recent_matches: Optional[Sequence[HistoricalMatch]],
    team_id: str,
    window: int = FORM_WINDOW,
) -> FormSummary:
    """
    Summarize a team's last `window` finished matches (most recent first).

    Averages divide by the number of matches actually considered, so an
    empty list gives an all-zero summary.
    """
    if not recent_matches:
        return FormSummary()

    finished = [m for m in recent_matches if m.is_finished][:window]
    summary = FormSummary(matches_considered=len(finished))

    for match in finished:
        if match.home_team_id == team_id:
            scored, conceded = match.home_score, match.away_score
        else:
            scored, conceded = match.away_score, match.home_score

        summary.goals_for += scored
        summary.goals_against += conceded
        if scored > conceded:
            summary.wins += 1
        elif scored < conceded:
            summary.losses += 1
        else:
            summary.draws += 1

    if summary.matches_considered:
        summary.avg_goals_for = summary.goals_for / summary.matches_considered
        summary.avg_goals_against = summary.goals_against / summary.matches_considered
    return summary
