"""
Tournament read model.

build_tournament_view() is the single place the full aggregate is rebuilt.
Mutating services call it deliberately after they commit, so the write
transaction and the read that feeds callers/subscribers stay separate.
"""

import logging
from typing import Dict, List

from sqlmodel import Session, select

from leaguehub.errors import NotFoundError
from leaguehub.models.match import Match
from leaguehub.models.notification import Notification
from leaguehub.models.player import Player
from leaguehub.models.team import Team
from leaguehub.models.tournament import Tournament
from leaguehub.schemas import (
    MatchRead,
    NotificationRead,
    PlayerRead,
    TeamRead,
    TeamSummary,
    TournamentRead,
)
from leaguehub.services.realtime import tournament_updated

logger = logging.getLogger(__name__)


def build_tournament_view(session: Session, tournament_id: int) -> TournamentRead:
    """
    Rebuild the tournament aggregate from the database.

    Collections are returned in insertion (id) order. Match team references
    are resolved against the tournament's own teams.

    Raises:
        NotFoundError: tournament does not exist
    """
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        raise NotFoundError.for_entity("Tournament", tournament_id)

    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all()
    team_ids = [t.id for t in teams]

    players_by_team: Dict[int, List[PlayerRead]] = {team_id: [] for team_id in team_ids}
    if team_ids:
        players = session.exec(select(Player).where(Player.team_id.in_(team_ids)).order_by(Player.id)).all()
        for player in players:
            players_by_team[player.team_id].append(PlayerRead.model_validate(player))

    summaries = {t.id: TeamSummary(id=t.id, name=t.name) for t in teams}

    team_views = [TeamRead(**team.model_dump(), players=players_by_team[team.id]) for team in teams]

    matches = session.exec(select(Match).where(Match.tournament_id == tournament_id).order_by(Match.id)).all()
    match_views = [
        MatchRead(
            id=m.id,
            tournament_id=m.tournament_id,
            home_team_id=m.home_team_id,
            away_team_id=m.away_team_id,
            home_team=summaries.get(m.home_team_id),
            away_team=summaries.get(m.away_team_id),
            round_number=m.round_number,
            sequence_in_round=m.sequence_in_round,
            date=m.date,
            time=m.time,
            venue=m.venue,
            home_score=m.home_score,
            away_score=m.away_score,
            status=m.status,
        )
        for m in matches
    ]

    notifications = session.exec(
        select(Notification).where(Notification.tournament_id == tournament_id).order_by(Notification.id)
    ).all()

    return TournamentRead(
        id=tournament.id,
        name=tournament.name,
        format=tournament.format,
        start_date=tournament.start_date,
        end_date=tournament.end_date,
        status=tournament.status,
        teams=team_views,
        matches=match_views,
        notifications=[NotificationRead.model_validate(n, from_attributes=True) for n in notifications],
    )


def rebuild_and_publish(session: Session, publisher, tournament_id: int) -> TournamentRead:
    """
    Rebuild the aggregate after a commit and push it to subscribers.

    A failed push is logged and does not undo or fail the committed change.
    """
    view = build_tournament_view(session, tournament_id)
    try:
        publisher.publish(tournament_updated(view))
    except Exception:
        logger.exception("Failed to publish update for tournament %d", tournament_id)
    return view
