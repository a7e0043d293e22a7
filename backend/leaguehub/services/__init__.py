"""
Services Layer

Business logic that:
- Accepts domain inputs (IDs, sessions, publishers)
- Returns domain outputs (models, read models, dataclasses)
- Does NOT depend on HTTP request/response objects
- Raises leaguehub.errors exceptions, never HTTPException

Pure modules (no session): standings (compute_standings), team_ledger,
schedule_generator.
"""

# Force SQLModel table registration at test discovery time
from leaguehub.models.match import Match  # noqa: F401
from leaguehub.models.notification import Notification  # noqa: F401
from leaguehub.models.player import Player  # noqa: F401
from leaguehub.models.team import Team  # noqa: F401
from leaguehub.models.tournament import Tournament  # noqa: F401
