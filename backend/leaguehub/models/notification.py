from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from leaguehub.models.timestamps import utc_now

if TYPE_CHECKING:
    from leaguehub.models.tournament import Tournament

PRIORITY_NORMAL = "normal"
PRIORITY_URGENT = "urgent"
NOTIFICATION_PRIORITIES = (PRIORITY_NORMAL, PRIORITY_URGENT)


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    message: str
    priority: str = Field(default=PRIORITY_NORMAL)  # "normal" | "urgent"
    timestamp: datetime = Field(default_factory=utc_now)

    tournament: "Tournament" = Relationship(back_populates="notifications")
