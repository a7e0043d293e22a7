"""
Schedule Service

Persists generated round robin fixtures for a tournament.

Generation always replaces: existing matches are deleted and the new
fixtures inserted in the same transaction, so readers never observe a
half-cleared schedule. Because completed matches disappear with the old
fixtures, every team's statistics snapshot is reset in that transaction too.
"""

import logging
from datetime import date, time
from typing import List

from sqlalchemy import delete
from sqlmodel import Session, select

from leaguehub.errors import NotFoundError
from leaguehub.models.match import MATCH_SCHEDULED, Match
from leaguehub.models.team import Team
from leaguehub.models.tournament import Tournament
from leaguehub.schemas import TournamentRead
from leaguehub.services.realtime import EventPublisher
from leaguehub.services.schedule_generator import generate_fixtures
from leaguehub.services.team_ledger import reset_team_stats
from leaguehub.services.tournament_view import rebuild_and_publish
from leaguehub.utils.row_guards import claim_revision

logger = logging.getLogger(__name__)


def _load_tournament_teams(session: Session, tournament_id: int) -> List[Team]:
    if session.get(Tournament, tournament_id) is None:
        raise NotFoundError.for_entity("Tournament", tournament_id)
    return list(session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all())


def _clear_matches_and_stats(session: Session, teams: List[Team], tournament_id: int) -> int:
    """Delete all fixtures and zero the snapshots. Does not commit."""
    result = session.execute(delete(Match).where(Match.tournament_id == tournament_id))
    for team in teams:
        claim_revision(session, team)
        reset_team_stats(team)
        session.add(team)
    return result.rowcount or 0


def generate_schedule(
    session: Session,
    publisher: EventPublisher,
    tournament_id: int,
    start_date: date,
    matches_per_day: int,
    time_slot_interval: int,
    start_time: time = time(0, 0),
) -> TournamentRead:
    """
    Replace the tournament's fixtures with a fresh round robin.

    Teams are rotated in registration (id) order, so the result is
    deterministic for a given team list and parameters.

    Raises:
        NotFoundError: tournament does not exist
        ValidationFailure: fewer than 2 teams, or bad packing parameters
            (raised before anything is deleted)
    """
    teams = _load_tournament_teams(session, tournament_id)
    fixtures = generate_fixtures(
        [team.id for team in teams],
        start_date=start_date,
        matches_per_day=matches_per_day,
        slot_interval=time_slot_interval,
        start_time=start_time,
    )

    try:
        deleted = _clear_matches_and_stats(session, teams, tournament_id)
        session.add_all(
            [
                Match(
                    tournament_id=tournament_id,
                    home_team_id=fixture.home_team_id,
                    away_team_id=fixture.away_team_id,
                    round_number=fixture.round_number,
                    sequence_in_round=fixture.sequence_in_round,
                    date=fixture.date,
                    time=fixture.time,
                    status=MATCH_SCHEDULED,
                )
                for fixture in fixtures
            ]
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Generated %d fixtures for tournament %d (%d teams, %d per day, %d min slots); replaced %d",
        len(fixtures),
        tournament_id,
        len(teams),
        matches_per_day,
        time_slot_interval,
        deleted,
    )
    return rebuild_and_publish(session, publisher, tournament_id)


def clear_schedule(session: Session, publisher: EventPublisher, tournament_id: int) -> TournamentRead:
    """Delete every fixture of the tournament and reset team statistics."""
    teams = _load_tournament_teams(session, tournament_id)
    try:
        deleted = _clear_matches_and_stats(session, teams, tournament_id)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Cleared %d fixtures for tournament %d", deleted, tournament_id)
    return rebuild_and_publish(session, publisher, tournament_id)
