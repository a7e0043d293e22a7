from leaguehub.models.match import Match
from leaguehub.models.notification import Notification
from leaguehub.models.player import Player
from leaguehub.models.team import Team
from leaguehub.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "Player",
    "Match",
    "Notification",
]
