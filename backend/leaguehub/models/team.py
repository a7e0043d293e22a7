from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from leaguehub.models.timestamps import utc_now

if TYPE_CHECKING:
    from leaguehub.models.player import Player
    from leaguehub.models.tournament import Tournament

# Running statistics carried on every team row, in display order
TEAM_STAT_FIELDS = (
    "played",
    "won",
    "drawn",
    "lost",
    "goals_for",
    "goals_against",
    "goal_difference",
    "points",
)


class Team(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    manager_name: Optional[str] = Field(default=None)
    manager_email: Optional[str] = Field(default=None)
    manager_id: Optional[int] = Field(default=None)  # Identity issued by the auth service, never by us

    # Statistics snapshot: mutated only by services.team_ledger
    played: int = Field(default=0)
    won: int = Field(default=0)
    drawn: int = Field(default=0)
    lost: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    goal_difference: int = Field(default=0)  # Always goals_for - goals_against
    points: int = Field(default=0)

    revision: int = Field(default=1)  # Bumped by every score transaction touching this row
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
    players: List["Player"] = Relationship(
        back_populates="team",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Player.id"},
    )
