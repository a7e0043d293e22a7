from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from leaguehub.models.timestamps import utc_now

if TYPE_CHECKING:
    from leaguehub.models.team import Team


class Player(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="team.id", index=True)
    name: str
    number: Optional[int] = Field(default=None)  # Shirt number
    position: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})

    team: "Team" = Relationship(back_populates="players")
