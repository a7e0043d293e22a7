"""
Read models for the tournament aggregate.

These are what callers and realtime subscribers receive: the tournament with
its teams (and players), its matches (with both teams resolved) and its
notifications. Built from table rows by services.tournament_view.
"""

import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class PlayerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    name: str
    number: Optional[int] = None
    position: Optional[str] = None


class TeamRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    manager_name: Optional[str] = None
    manager_email: Optional[str] = None
    manager_id: Optional[int] = None
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int
    players: List[PlayerRead] = []


class TeamSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class MatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    home_team_id: int
    away_team_id: int
    home_team: Optional[TeamSummary] = None
    away_team: Optional[TeamSummary] = None
    round_number: Optional[int] = None
    sequence_in_round: Optional[int] = None
    date: Optional[datetime.date] = None
    time: Optional[datetime.time] = None
    venue: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: str


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    message: str
    priority: str
    timestamp: datetime.datetime


class TournamentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    format: str
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    status: str


class TournamentRead(TournamentSummary):
    teams: List[TeamRead] = []
    matches: List[MatchRead] = []
    notifications: List[NotificationRead] = []


class StandingRead(BaseModel):
    team_id: int
    team_name: str
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    goal_difference: int
    points: int
