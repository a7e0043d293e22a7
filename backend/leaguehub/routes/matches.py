"""
Match endpoints: score entry/correction, schedule metadata, status.

Score submissions run through ScoreTransactionManager, which retries
conflicting transactions before answering 409.
"""

import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, StrictInt
from sqlmodel import Session

from leaguehub.config import SCORE_SUBMIT_MAX_ATTEMPTS
from leaguehub.database import get_session
from leaguehub.routes.realtime import get_publisher
from leaguehub.schemas import TournamentRead
from leaguehub.services.realtime import EventPublisher
from leaguehub.services.score_transactions import ScoreTransactionManager

router = APIRouter()


def get_score_manager(publisher: EventPublisher = Depends(get_publisher)) -> ScoreTransactionManager:
    return ScoreTransactionManager(publisher=publisher, max_attempts=SCORE_SUBMIT_MAX_ATTEMPTS)


class ScoreSubmission(BaseModel):
    home_score: StrictInt = Field(ge=0)
    away_score: StrictInt = Field(ge=0)


class MatchScheduleUpdate(BaseModel):
    date: Optional[datetime.date] = None
    time: Optional[datetime.time] = None
    venue: Optional[str] = None


class MatchStatusUpdate(BaseModel):
    status: str


@router.post("/matches/{match_id}/score", response_model=TournamentRead)
def submit_score(
    match_id: int,
    request: ScoreSubmission,
    session: Session = Depends(get_session),
    manager: ScoreTransactionManager = Depends(get_score_manager),
):
    """Record or correct a result; returns the refreshed tournament"""
    return manager.submit_score(session, match_id, request.home_score, request.away_score)


@router.put("/matches/{match_id}", response_model=TournamentRead)
def update_match(
    match_id: int,
    request: MatchScheduleUpdate,
    session: Session = Depends(get_session),
    manager: ScoreTransactionManager = Depends(get_score_manager),
):
    """Change date/time/venue only (fields left out are unchanged)"""
    return manager.update_match(session, match_id, request.model_dump(exclude_unset=True))


@router.patch("/matches/{match_id}/status", response_model=TournamentRead)
def update_match_status(
    match_id: int,
    request: MatchStatusUpdate,
    session: Session = Depends(get_session),
    manager: ScoreTransactionManager = Depends(get_score_manager),
):
    """scheduled / in_progress / postponed; completion goes through /score"""
    return manager.set_match_status(session, match_id, request.status)
