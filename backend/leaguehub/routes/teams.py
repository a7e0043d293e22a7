"""
Team Management API Routes
Provides CRUD operations for teams and their players.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import Session

from leaguehub.database import get_session
from leaguehub.routes.realtime import get_publisher
from leaguehub.schemas import PlayerRead, TeamRead
from leaguehub.services import teams as team_service
from leaguehub.services.realtime import EventPublisher

router = APIRouter()


def get_manager_directory() -> team_service.ManagerDirectory:
    """Manager identities come from the auth service; none is wired in by default"""
    return team_service.NoManagerDirectory()


# ============================================================================
# Request Models
# ============================================================================


class PlayerCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    number: Optional[int] = Field(default=None, ge=0)
    position: Optional[str] = None


class PlayerUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    number: Optional[int] = Field(default=None, ge=0)
    position: Optional[str] = None


class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    manager_name: Optional[str] = None
    manager_email: Optional[EmailStr] = None
    players: List[PlayerCreateRequest] = []


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    manager_name: Optional[str] = None
    manager_email: Optional[EmailStr] = None


# ============================================================================
# Team CRUD Endpoints
# ============================================================================


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamRead, status_code=201)
def create_team(
    tournament_id: int,
    request: TeamCreateRequest,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
    directory: team_service.ManagerDirectory = Depends(get_manager_directory),
):
    """
    Register a team, optionally with its initial players.

    Constraints:
    - (tournament_id, name) must be unique
    """
    return team_service.create_team(
        session,
        publisher,
        tournament_id,
        name=request.name,
        manager_name=request.manager_name,
        manager_email=request.manager_email,
        players=[p.model_dump() for p in request.players],
        directory=directory,
    )


@router.put("/teams/{team_id}", response_model=TeamRead)
def update_team(
    team_id: int,
    request: TeamUpdateRequest,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
    directory: team_service.ManagerDirectory = Depends(get_manager_directory),
):
    """
    Update a team's name or manager details. Statistics are read-only.
    """
    return team_service.update_team(
        session, publisher, team_id, request.model_dump(exclude_unset=True), directory=directory
    )


@router.delete("/teams/{team_id}", status_code=204)
def delete_team(
    team_id: int,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    """
    Delete a team and its players. Rejected while matches reference the team.
    """
    team_service.delete_team(session, publisher, team_id)
    return Response(status_code=204)


# ============================================================================
# Player Endpoints
# ============================================================================


@router.post("/teams/{team_id}/players", response_model=PlayerRead, status_code=201)
def create_player(
    team_id: int,
    request: PlayerCreateRequest,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    return team_service.create_player(session, publisher, team_id, **request.model_dump())


@router.put("/players/{player_id}", response_model=PlayerRead)
def update_player(
    player_id: int,
    request: PlayerUpdateRequest,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    return team_service.update_player(session, publisher, player_id, request.model_dump(exclude_unset=True))


@router.delete("/players/{player_id}", status_code=204)
def delete_player(
    player_id: int,
    session: Session = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
):
    team_service.delete_player(session, publisher, player_id)
    return Response(status_code=204)
