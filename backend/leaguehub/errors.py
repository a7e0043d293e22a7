"""
Domain errors raised by the services layer.

Routes never translate these by hand: main.py registers one exception
handler per class and maps it onto an HTTP status.

- NotFoundError       -> 404, caller should not retry
- ValidationFailure   -> 422, rejected before any mutation
- ConflictError       -> 409, concurrent modification; retry the whole transaction
- IntegrityViolation  -> 500, an invariant would break; transaction rolled back
"""


class LeagueHubError(Exception):
    """Base class for all domain errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LeagueHubError):
    """Referenced tournament, team, player or match does not exist"""

    status_code = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: int) -> "NotFoundError":
        return cls(f"{entity} with ID {entity_id} not found")


class ValidationFailure(LeagueHubError):
    """Malformed or inadmissible input"""

    status_code = 422


class ConflictError(LeagueHubError):
    """Row changed underneath the transaction"""

    status_code = 409


class IntegrityViolation(LeagueHubError):
    """Applying the operation would break a data invariant"""

    status_code = 500
