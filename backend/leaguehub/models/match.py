import datetime
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

from leaguehub.models.timestamps import utc_now

if TYPE_CHECKING:
    from leaguehub.models.team import Team
    from leaguehub.models.tournament import Tournament

MATCH_SCHEDULED = "scheduled"
MATCH_IN_PROGRESS = "in_progress"
MATCH_COMPLETED = "completed"
MATCH_POSTPONED = "postponed"
MATCH_STATUSES = (MATCH_SCHEDULED, MATCH_IN_PROGRESS, MATCH_COMPLETED, MATCH_POSTPONED)


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    home_team_id: int = Field(foreign_key="team.id")
    away_team_id: int = Field(foreign_key="team.id")

    # Position in the generated rotation (1-based)
    round_number: Optional[int] = Field(default=None)
    sequence_in_round: Optional[int] = Field(default=None)

    date: Optional[datetime.date] = Field(default=None)
    time: Optional[datetime.time] = Field(default=None)
    venue: Optional[str] = Field(default=None)

    # Both null until the first score entry, then both set
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)
    status: str = Field(default=MATCH_SCHEDULED)  # "scheduled" | "in_progress" | "completed" | "postponed"

    revision: int = Field(default=1)  # Bumped by every score transaction on this row
    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now}
    )

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
    home_team: "Team" = Relationship(sa_relationship_kwargs={"foreign_keys": "Match.home_team_id"})
    away_team: "Team" = Relationship(sa_relationship_kwargs={"foreign_keys": "Match.away_team_id"})

    @property
    def is_scored(self) -> bool:
        return self.home_score is not None and self.away_score is not None
