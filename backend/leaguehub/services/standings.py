"""
Standings Calculator

Ranks the teams of a tournament from their results.

Two derivations are exposed and must always agree field-for-field:
- compute_standings(): from scratch over the completed matches
- standings_from_snapshots(): off the running statistics kept on each Team
  row by services.team_ledger

Ordering: points desc, goal difference desc, goals for desc. Teams still tied
after all three keep their input order (Python's sort is stable); there is
no further tie-break.
"""

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Sequence

from sqlmodel import Session, select

from leaguehub.errors import NotFoundError
from leaguehub.models.match import MATCH_COMPLETED, Match
from leaguehub.models.team import Team
from leaguehub.models.tournament import Tournament

WIN_POINTS = 3
DRAW_POINTS = 1

SOURCE_MATCHES = "matches"
SOURCE_SNAPSHOT = "snapshot"


@dataclass
class Standing:
    team_id: int
    team_name: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _ranking_key(standing: Standing):
    return (standing.points, standing.goal_difference, standing.goals_for)


def rank_standings(standings: Iterable[Standing]) -> List[Standing]:
    """Sort descending by points, goal difference, goals for (stable)."""
    return sorted(standings, key=_ranking_key, reverse=True)


def _is_countable(match) -> bool:
    return match.status == MATCH_COMPLETED and match.home_score is not None and match.away_score is not None


def compute_standings(teams: Sequence, matches: Iterable) -> List[Standing]:
    """
    Compute standings from scratch.

    Args:
        teams: objects with ``id`` and ``name`` (one Standing each, even with no games)
        matches: objects with ``home_team_id``, ``away_team_id``, ``home_score``,
            ``away_score`` and ``status``. Only completed, fully scored matches
            between two known teams are counted; anything else is skipped.

    Returns:
        Ranked list of Standing records
    """
    table: Dict[int, Standing] = {team.id: Standing(team_id=team.id, team_name=team.name) for team in teams}

    for match in matches:
        if not _is_countable(match):
            continue
        home = table.get(match.home_team_id)
        away = table.get(match.away_team_id)
        if home is None or away is None:
            continue

        home.played += 1
        away.played += 1
        home.goals_for += match.home_score
        home.goals_against += match.away_score
        away.goals_for += match.away_score
        away.goals_against += match.home_score

        if match.home_score > match.away_score:
            home.won += 1
            home.points += WIN_POINTS
            away.lost += 1
        elif match.home_score < match.away_score:
            away.won += 1
            away.points += WIN_POINTS
            home.lost += 1
        else:
            home.drawn += 1
            away.drawn += 1
            home.points += DRAW_POINTS
            away.points += DRAW_POINTS

    for standing in table.values():
        standing.goal_difference = standing.goals_for - standing.goals_against

    return rank_standings(table.values())


def standings_from_snapshots(teams: Sequence) -> List[Standing]:
    """Rank teams using the running statistics stored on each team."""
    return rank_standings(
        Standing(
            team_id=team.id,
            team_name=team.name,
            played=team.played,
            won=team.won,
            drawn=team.drawn,
            lost=team.lost,
            goals_for=team.goals_for,
            goals_against=team.goals_against,
            goal_difference=team.goal_difference,
            points=team.points,
        )
        for team in teams
    )


def calculate_standings(session: Session, tournament_id: int, source: str = SOURCE_MATCHES) -> List[Standing]:
    """Load a tournament's teams (and completed matches) and rank them."""
    if session.get(Tournament, tournament_id) is None:
        raise NotFoundError.for_entity("Tournament", tournament_id)

    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all()

    if source == SOURCE_SNAPSHOT:
        return standings_from_snapshots(teams)

    matches = session.exec(
        select(Match)
        .where(Match.tournament_id == tournament_id, Match.status == MATCH_COMPLETED)
        .order_by(Match.id)
    ).all()
    return compute_standings(teams, matches)
