"""
Team and player lifecycle.

These operations never touch a team's statistics; those belong to the score
transactions. Manager identities are issued by an external directory (the
auth service); this module only asks it and stores the returned id.

Deleting a team is blocked while any match references it: clear or
regenerate the schedule first.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from leaguehub.errors import IntegrityViolation, LeagueHubError, NotFoundError, ValidationFailure
from leaguehub.models.match import Match
from leaguehub.models.player import Player
from leaguehub.models.team import Team
from leaguehub.models.tournament import Tournament
from leaguehub.services.realtime import EventPublisher
from leaguehub.services.tournament_view import rebuild_and_publish

logger = logging.getLogger(__name__)

TEAM_UPDATABLE_FIELDS = ("name", "manager_name", "manager_email")
PLAYER_UPDATABLE_FIELDS = ("name", "number", "position")
TEAM_REQUIRED_FIELDS = ("name",)
PLAYER_REQUIRED_FIELDS = ("name",)


class ManagerDirectory(Protocol):
    """Auth-side directory of team manager identities."""

    def ensure_manager(self, name: Optional[str], email: Optional[str]) -> Optional[int]: ...

    def change_manager_email(self, manager_id: Optional[int], old_email: Optional[str], new_email: str) -> None: ...


class NoManagerDirectory:
    """Directory used when no auth service is wired in: issues no identities."""

    def ensure_manager(self, name: Optional[str], email: Optional[str]) -> Optional[int]:
        return None

    def change_manager_email(self, manager_id: Optional[int], old_email: Optional[str], new_email: str) -> None:
        if manager_id is not None:
            logger.warning("No manager directory configured; manager %d keeps its old email", manager_id)


def _get_team(session: Session, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if team is None:
        raise NotFoundError.for_entity("Team", team_id)
    return team


def _get_player(session: Session, player_id: int) -> Player:
    player = session.get(Player, player_id)
    if player is None:
        raise NotFoundError.for_entity("Player", player_id)
    return player


def _require_values(changes: Dict[str, Any], required: Sequence[str]) -> None:
    nulled = sorted(field for field in required if field in changes and changes[field] is None)
    if nulled:
        raise ValidationFailure(f"{', '.join(nulled)} cannot be null")


def _is_unique_violation(exc: IntegrityError) -> bool:
    # SQLite: "UNIQUE constraint failed"; PostgreSQL: "duplicate key value violates unique constraint"
    return "unique" in str(exc.orig).lower()


def _translate_integrity_error(session: Session, exc: IntegrityError, duplicate_message: str) -> LeagueHubError:
    session.rollback()
    if _is_unique_violation(exc):
        return ValidationFailure(duplicate_message)
    logger.error("Integrity error while saving: %s", exc.orig)
    return IntegrityViolation(f"Could not save changes: {exc.orig}")


def _flush(session: Session, duplicate_message: str) -> None:
    try:
        session.flush()
    except IntegrityError as e:
        raise _translate_integrity_error(session, e, duplicate_message) from e
    except Exception:
        session.rollback()
        raise


def _commit(session: Session, duplicate_message: str) -> None:
    try:
        session.commit()
    except IntegrityError as e:
        raise _translate_integrity_error(session, e, duplicate_message) from e
    except Exception:
        session.rollback()
        raise


def create_team(
    session: Session,
    publisher: EventPublisher,
    tournament_id: int,
    name: str,
    manager_name: Optional[str] = None,
    manager_email: Optional[str] = None,
    players: Optional[List[Dict[str, Any]]] = None,
    directory: Optional[ManagerDirectory] = None,
) -> Team:
    """Register a team and its initial players in one transaction."""
    if session.get(Tournament, tournament_id) is None:
        raise NotFoundError.for_entity("Tournament", tournament_id)

    duplicate_message = f"Team with name '{name}' already exists in this tournament"
    team = Team(
        tournament_id=tournament_id,
        name=name,
        manager_name=manager_name,
        manager_email=manager_email,
    )
    team.players = [Player(**player) for player in players or []]

    session.add(team)
    # Name uniqueness is settled by the flush, before any identity is issued
    _flush(session, duplicate_message)
    team.manager_id = (directory or NoManagerDirectory()).ensure_manager(manager_name, manager_email)
    _commit(session, duplicate_message)
    session.refresh(team)

    logger.info(
        "Created team %d '%s' in tournament %d with %d player(s)", team.id, name, tournament_id, len(team.players)
    )
    rebuild_and_publish(session, publisher, tournament_id)
    return team


def update_team(
    session: Session,
    publisher: EventPublisher,
    team_id: int,
    changes: Dict[str, Any],
    directory: Optional[ManagerDirectory] = None,
) -> Team:
    """Update name/manager fields. Statistics are never writable here."""
    unknown = sorted(set(changes) - set(TEAM_UPDATABLE_FIELDS))
    if unknown:
        raise ValidationFailure(f"Only {', '.join(TEAM_UPDATABLE_FIELDS)} can be updated, got {unknown}")
    _require_values(changes, TEAM_REQUIRED_FIELDS)

    team = _get_team(session, team_id)
    new_email = changes.get("manager_email")
    if new_email and new_email != team.manager_email:
        (directory or NoManagerDirectory()).change_manager_email(team.manager_id, team.manager_email, new_email)

    for field, value in changes.items():
        setattr(team, field, value)

    session.add(team)
    _commit(session, f"Team with name '{changes.get('name')}' already exists in this tournament")
    session.refresh(team)

    rebuild_and_publish(session, publisher, team.tournament_id)
    return team


def delete_team(session: Session, publisher: EventPublisher, team_id: int) -> None:
    team = _get_team(session, team_id)
    tournament_id = team.tournament_id

    referenced = session.exec(
        select(Match.id).where(or_(Match.home_team_id == team_id, Match.away_team_id == team_id))
    ).first()
    if referenced is not None:
        raise ValidationFailure(f"Team {team_id} still has scheduled matches; clear the schedule before deleting it")

    try:
        session.delete(team)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info("Deleted team %d from tournament %d", team_id, tournament_id)
    rebuild_and_publish(session, publisher, tournament_id)


def create_player(
    session: Session,
    publisher: EventPublisher,
    team_id: int,
    name: str,
    number: Optional[int] = None,
    position: Optional[str] = None,
) -> Player:
    team = _get_team(session, team_id)
    player = Player(team_id=team.id, name=name, number=number, position=position)
    session.add(player)
    _commit(session, f"Could not add player '{name}'")
    session.refresh(player)

    rebuild_and_publish(session, publisher, team.tournament_id)
    return player


def update_player(session: Session, publisher: EventPublisher, player_id: int, changes: Dict[str, Any]) -> Player:
    unknown = sorted(set(changes) - set(PLAYER_UPDATABLE_FIELDS))
    if unknown:
        raise ValidationFailure(f"Only {', '.join(PLAYER_UPDATABLE_FIELDS)} can be updated, got {unknown}")
    _require_values(changes, PLAYER_REQUIRED_FIELDS)

    player = _get_player(session, player_id)
    for field, value in changes.items():
        setattr(player, field, value)

    session.add(player)
    _commit(session, f"Could not update player {player_id}")
    session.refresh(player)

    rebuild_and_publish(session, publisher, player.team.tournament_id)
    return player


def delete_player(session: Session, publisher: EventPublisher, player_id: int) -> None:
    player = _get_player(session, player_id)
    tournament_id = player.team.tournament_id
    try:
        session.delete(player)
        session.commit()
    except Exception:
        session.rollback()
        raise
    rebuild_and_publish(session, publisher, tournament_id)
