from datetime import date, time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, model_validator
from sqlmodel import Session

from leaguehub.database import get_session
from leaguehub.models.notification import PRIORITY_NORMAL
from leaguehub.models.tournament import TOURNAMENT_DRAFT
from leaguehub.routes.realtime import get_publisher
from leaguehub.schemas import NotificationRead, StandingRead, TournamentRead, TournamentSummary
from leaguehub.services import schedule_service
from leaguehub.services import tournaments as tournament_service
from leaguehub.services.realtime import EventPublisher
from leaguehub.services.standings import SOURCE_MATCHES, SOURCE_SNAPSHOT, calculate_standings
from leaguehub.services.tournament_view import build_tournament_view

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class TournamentCreate(BaseModel):
    name: str = Field(min_length=1)
    format: str = "Round Robin"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: str = TOURNAMENT_DRAFT

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    format: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[str] = None

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class GenerateScheduleRequest(BaseModel):
    start_date: date
    start_time: time = time(0, 0)  # Kickoff of the first slot on every day
    matches_per_day: int = Field(ge=1)
    time_slot_interval: int = Field(ge=1)  # Minutes between kickoffs on the same day


class NotificationCreate(BaseModel):
    message: str = Field(min_length=1)
    priority: str = PRIORITY_NORMAL


# ============================================================================
# Tournament Endpoints
# ============================================================================


@router.get("/tournaments", response_model=List[TournamentSummary])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return tournament_service.list_tournaments(session)


@router.post("/tournaments", response_model=TournamentRead, status_code=201)
def create_tournament(request: TournamentCreate, session: Session = Depends(get_session)):
    """Create a tournament (no teams, no fixtures)"""
    tournament = tournament_service.create_tournament(session, **request.model_dump())
    return build_tournament_view(session, tournament.id)


@router.get("/tournaments/{tournament_id}", response_model=TournamentRead)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Full aggregate: teams with players, matches with teams, notifications"""
    return build_tournament_view(session, tournament_id)


@router.put("/tournaments/{tournament_id}", response_model=TournamentRead)
def update_tournament(
    tournament_id: int,
    request: TournamentUpdate,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Partial update, including the admin-driven status"""
    return tournament_service.update_tournament(
        session, publisher, tournament_id, request.model_dump(exclude_unset=True)
    )


@router.get("/tournaments/{tournament_id}/standings", response_model=List[StandingRead])
def get_standings(
    tournament_id: int,
    source: str = Query(SOURCE_MATCHES, pattern=f"^({SOURCE_MATCHES}|{SOURCE_SNAPSHOT})$"),
    session: Session = Depends(get_session),
):
    """
    Ranked standings.

    source=matches recomputes from completed matches; source=snapshot reads
    the running totals stored on each team. Both always agree.
    """
    return [s.to_dict() for s in calculate_standings(session, tournament_id, source)]


# ============================================================================
# Schedule Endpoints
# ============================================================================


@router.post("/tournaments/{tournament_id}/schedule/generate", response_model=TournamentRead)
def generate_schedule(
    tournament_id: int,
    request: GenerateScheduleRequest,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    """
    Replace all fixtures with a round robin.

    Every team plays every other team once. Fixtures are packed
    matches_per_day to a calendar day, time_slot_interval minutes apart.
    """
    return schedule_service.generate_schedule(
        session,
        publisher,
        tournament_id,
        start_date=request.start_date,
        matches_per_day=request.matches_per_day,
        time_slot_interval=request.time_slot_interval,
        start_time=request.start_time,
    )


@router.delete("/tournaments/{tournament_id}/schedule", response_model=TournamentRead)
def clear_schedule(
    tournament_id: int,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Delete every fixture and reset team statistics"""
    return schedule_service.clear_schedule(session, publisher, tournament_id)


# ============================================================================
# Notification Endpoints
# ============================================================================


@router.post("/tournaments/{tournament_id}/notifications", response_model=NotificationRead, status_code=201)
def create_notification(
    tournament_id: int,
    request: NotificationCreate,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    return tournament_service.create_notification(
        session, publisher, tournament_id, message=request.message, priority=request.priority
    )
