"""
Team Statistics Ledger

Applies (factor=+1) or reverts (factor=-1) the effect of one match result on
the running statistics of its two teams, in place.

Applying and then reverting the same score pair restores every field
exactly, which is what lets a corrected score be handled as
"revert old, apply new".
"""

from leaguehub.errors import IntegrityViolation
from leaguehub.services.standings import DRAW_POINTS, WIN_POINTS

APPLY = 1
REVERT = -1


def _check_arguments(home_team, away_team, home_score: int, away_score: int, factor: int) -> None:
    if factor not in (APPLY, REVERT):
        raise IntegrityViolation(f"Ledger factor must be +1 or -1, got {factor}")
    if home_team is None or away_team is None:
        raise IntegrityViolation("Cannot adjust statistics for a match missing a team reference")
    if home_score is None or away_score is None:
        raise IntegrityViolation("Cannot adjust statistics for a match without both scores")
    if home_score < 0 or away_score < 0:
        raise IntegrityViolation(f"Scores must be non-negative, got {home_score}-{away_score}")


def adjust_team_stats(home_team, away_team, home_score: int, away_score: int, factor: int) -> None:
    """
    Adjust both teams' statistics for one result.

    Args:
        home_team, away_team: objects carrying played/won/drawn/lost/goals_for/
            goals_against/goal_difference/points (Team rows in production)
        home_score, away_score: the result being applied or reverted
        factor: APPLY (+1) or REVERT (-1)

    Raises:
        IntegrityViolation: bad factor, missing team, or missing/negative score
    """
    _check_arguments(home_team, away_team, home_score, away_score, factor)

    home_team.played += factor
    away_team.played += factor

    home_team.goals_for += home_score * factor
    home_team.goals_against += away_score * factor
    away_team.goals_for += away_score * factor
    away_team.goals_against += home_score * factor

    # Recomputed rather than incremented so it can never drift
    home_team.goal_difference = home_team.goals_for - home_team.goals_against
    away_team.goal_difference = away_team.goals_for - away_team.goals_against

    if home_score > away_score:
        home_team.won += factor
        home_team.points += WIN_POINTS * factor
        away_team.lost += factor
    elif home_score < away_score:
        away_team.won += factor
        away_team.points += WIN_POINTS * factor
        home_team.lost += factor
    else:
        home_team.drawn += factor
        away_team.drawn += factor
        home_team.points += DRAW_POINTS * factor
        away_team.points += DRAW_POINTS * factor


def apply_result(home_team, away_team, home_score: int, away_score: int) -> None:
    adjust_team_stats(home_team, away_team, home_score, away_score, APPLY)


def revert_result(home_team, away_team, home_score: int, away_score: int) -> None:
    adjust_team_stats(home_team, away_team, home_score, away_score, REVERT)


def reset_team_stats(team) -> None:
    """Zero a team's running statistics (used when its fixtures are cleared)."""
    team.played = 0
    team.won = 0
    team.drawn = 0
    team.lost = 0
    team.goals_for = 0
    team.goals_against = 0
    team.goal_difference = 0
    team.points = 0
