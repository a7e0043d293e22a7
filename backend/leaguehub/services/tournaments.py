"""
Tournament and notification operations.

Status changes are admin-driven through update_tournament(); nothing in the
core advances a tournament's status on its own.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from leaguehub.errors import NotFoundError, ValidationFailure
from leaguehub.models.notification import NOTIFICATION_PRIORITIES, PRIORITY_NORMAL, Notification
from leaguehub.models.tournament import TOURNAMENT_DRAFT, TOURNAMENT_STATUSES, Tournament
from leaguehub.schemas import NotificationRead, TournamentRead
from leaguehub.services.realtime import EventPublisher, notification_created
from leaguehub.services.tournament_view import rebuild_and_publish

logger = logging.getLogger(__name__)

TOURNAMENT_UPDATABLE_FIELDS = ("name", "format", "start_date", "end_date", "status")
# Columns that may be changed but never cleared
TOURNAMENT_REQUIRED_FIELDS = ("name", "format", "status")


def _check_dates(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and end_date < start_date:
        raise ValidationFailure("end_date must be >= start_date")


def _check_status(status: str) -> None:
    if status not in TOURNAMENT_STATUSES:
        raise ValidationFailure(f"Invalid tournament status: {status}")


def list_tournaments(session: Session) -> List[Tournament]:
    return list(session.exec(select(Tournament).order_by(Tournament.id)).all())


def create_tournament(
    session: Session,
    name: str,
    format: str = "Round Robin",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: str = TOURNAMENT_DRAFT,
) -> Tournament:
    _check_dates(start_date, end_date)
    _check_status(status)

    tournament = Tournament(name=name, format=format, start_date=start_date, end_date=end_date, status=status)
    try:
        session.add(tournament)
        session.commit()
        session.refresh(tournament)
    except Exception:
        session.rollback()
        raise
    logger.info("Created tournament %d '%s'", tournament.id, tournament.name)
    return tournament


def update_tournament(
    session: Session, publisher: EventPublisher, tournament_id: int, changes: Dict[str, Any]
) -> TournamentRead:
    """Partial merge of name/format/dates/status."""
    unknown = sorted(set(changes) - set(TOURNAMENT_UPDATABLE_FIELDS))
    if unknown:
        raise ValidationFailure(f"Unknown tournament fields: {unknown}")
    nulled = sorted(field for field in TOURNAMENT_REQUIRED_FIELDS if field in changes and changes[field] is None)
    if nulled:
        raise ValidationFailure(f"{', '.join(nulled)} cannot be null")

    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        raise NotFoundError.for_entity("Tournament", tournament_id)

    if "status" in changes:
        _check_status(changes["status"])
    _check_dates(changes.get("start_date", tournament.start_date), changes.get("end_date", tournament.end_date))

    old_status = tournament.status
    for field, value in changes.items():
        setattr(tournament, field, value)

    try:
        session.add(tournament)
        session.commit()
    except Exception:
        session.rollback()
        raise

    if tournament.status != old_status:
        logger.info("Tournament %d status %s -> %s", tournament_id, old_status, tournament.status)
    return rebuild_and_publish(session, publisher, tournament_id)


def create_notification(
    session: Session,
    publisher: EventPublisher,
    tournament_id: int,
    message: str,
    priority: str = PRIORITY_NORMAL,
) -> NotificationRead:
    """Post a notification and push it (and the refreshed aggregate) to subscribers."""
    if not message or not message.strip():
        raise ValidationFailure("message must not be empty")
    if priority not in NOTIFICATION_PRIORITIES:
        raise ValidationFailure(f"Invalid notification priority: {priority}")
    if session.get(Tournament, tournament_id) is None:
        raise NotFoundError.for_entity("Tournament", tournament_id)

    notification = Notification(tournament_id=tournament_id, message=message.strip(), priority=priority)
    try:
        session.add(notification)
        session.commit()
        session.refresh(notification)
    except Exception:
        session.rollback()
        raise

    view = NotificationRead.model_validate(notification, from_attributes=True)
    logger.info("Notification %d (%s) posted to tournament %d", view.id, view.priority, tournament_id)
    try:
        publisher.publish(notification_created(view))
    except Exception:
        logger.exception("Failed to publish notification %d", view.id)
    rebuild_and_publish(session, publisher, tournament_id)
    return view
