import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from leaguehub.models.timestamps import utc_now

if TYPE_CHECKING:
    from leaguehub.models.match import Match
    from leaguehub.models.notification import Notification
    from leaguehub.models.team import Team

TOURNAMENT_DRAFT = "draft"
TOURNAMENT_LIVE = "live"
TOURNAMENT_COMPLETED = "completed"
TOURNAMENT_STATUSES = (TOURNAMENT_DRAFT, TOURNAMENT_LIVE, TOURNAMENT_COMPLETED)


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    format: str = Field(default="Round Robin")  # Free text label, only round robin is generated
    start_date: Optional[datetime.date] = Field(default=None)
    end_date: Optional[datetime.date] = Field(default=None)
    status: str = Field(default=TOURNAMENT_DRAFT)  # "draft" | "live" | "completed" (admin-driven)
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}
    )

    # Relationships (insertion order)
    teams: List["Team"] = Relationship(back_populates="tournament", sa_relationship_kwargs={"order_by": "Team.id"})
    matches: List["Match"] = Relationship(
        back_populates="tournament", sa_relationship_kwargs={"order_by": "Match.id"}
    )
    notifications: List["Notification"] = Relationship(
        back_populates="tournament", sa_relationship_kwargs={"order_by": "Notification.id"}
    )
