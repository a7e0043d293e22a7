"""
Score/Result Transaction Manager

submit_score() moves a match to "completed" with the given scores and keeps
both teams' running statistics consistent, whether this is the first entry
or a correction:

1. Lock the match, then its two teams (ascending id), and claim their revisions
2. If the match was already completed, revert the old result
3. Write the new scores, status = completed
4. Apply the new result
5. Commit match + both teams together
6. Rebuild the tournament aggregate and publish it

Any failure rolls the whole attempt back. Concurrent edits (a revision claim
that matches no row, a stale ORM flush, a database lock/serialization error)
surface as ConflictError and the attempt is retried from step 1, up to
max_attempts times.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session

from leaguehub.config import SCORE_SUBMIT_MAX_ATTEMPTS
from leaguehub.errors import ConflictError, IntegrityViolation, NotFoundError, ValidationFailure
from leaguehub.models.match import MATCH_COMPLETED, MATCH_STATUSES, Match
from leaguehub.models.team import Team
from leaguehub.schemas import TournamentRead
from leaguehub.services.realtime import EventPublisher, NullPublisher
from leaguehub.services.team_ledger import apply_result, revert_result
from leaguehub.services.tournament_view import rebuild_and_publish
from leaguehub.utils.row_guards import claim_revision, lock_row

logger = logging.getLogger(__name__)

# Match fields updatable without touching scores or statistics
MATCH_METADATA_FIELDS = ("date", "time", "venue")

_CONFLICT_MARKERS = ("database is locked", "deadlock", "could not serialize")


def _is_lock_conflict(exc: OperationalError) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _CONFLICT_MARKERS)


def validate_score(value: Any, side: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailure(f"{side}_score must be an integer, got {value!r}")
    if value < 0:
        raise ValidationFailure(f"{side}_score must be >= 0, got {value}")
    return value


class ScoreTransactionManager:
    """Runs score submissions and match edits as all-or-nothing units."""

    def __init__(self, publisher: Optional[EventPublisher] = None, max_attempts: int = SCORE_SUBMIT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.publisher = publisher or NullPublisher()
        self.max_attempts = max_attempts

    def submit_score(self, session: Session, match_id: int, home_score: int, away_score: int) -> TournamentRead:
        """
        Record (or correct) the result of a match.

        Raises:
            ValidationFailure: score is not a non-negative integer (nothing written)
            NotFoundError: match does not exist
            ConflictError: still conflicting after max_attempts
            IntegrityViolation: match references a missing team
        """
        validate_score(home_score, "home")
        validate_score(away_score, "away")

        attempt = 1
        while True:
            try:
                tournament_id = self._submit_once(session, match_id, home_score, away_score)
                break
            except ConflictError as e:
                if attempt >= self.max_attempts:
                    logger.warning(
                        "Score submission for match %d gave up after %d attempt(s): %s", match_id, attempt, e.message
                    )
                    raise
                logger.warning(
                    "Score submission for match %d conflicted (attempt %d/%d), retrying: %s",
                    match_id,
                    attempt,
                    self.max_attempts,
                    e.message,
                )
                attempt += 1

        return rebuild_and_publish(session, self.publisher, tournament_id)

    def _submit_once(self, session: Session, match_id: int, home_score: int, away_score: int) -> int:
        try:
            match = lock_row(session, Match, match_id)
            if match is None:
                raise NotFoundError.for_entity("Match", match_id)

            tournament_id = match.tournament_id
            home_team_id = match.home_team_id
            away_team_id = match.away_team_id
            if home_team_id == away_team_id:
                raise IntegrityViolation(f"Match {match_id} pairs team {home_team_id} with itself")

            # Lock teams in ascending id order so concurrent submissions never deadlock
            teams: Dict[int, Optional[Team]] = {}
            for team_id in sorted((home_team_id, away_team_id)):
                teams[team_id] = lock_row(session, Team, team_id)
            home_team = teams[home_team_id]
            away_team = teams[away_team_id]
            if home_team is None or away_team is None:
                raise IntegrityViolation(f"Match {match_id} references a missing team")

            claim_revision(session, match)
            for team_id in sorted(teams):
                claim_revision(session, teams[team_id])

            if match.status == MATCH_COMPLETED and match.is_scored:
                revert_result(home_team, away_team, match.home_score, match.away_score)
                logger.info(
                    "Correcting match %d: %d-%d -> %d-%d",
                    match_id,
                    match.home_score,
                    match.away_score,
                    home_score,
                    away_score,
                )
            else:
                logger.info("Recording match %d result %d-%d", match_id, home_score, away_score)

            match.home_score = home_score
            match.away_score = away_score
            match.status = MATCH_COMPLETED
            apply_result(home_team, away_team, home_score, away_score)

            session.add(match)
            session.add(home_team)
            session.add(away_team)
            session.commit()
            return tournament_id
        except StaleDataError as e:
            session.rollback()
            raise ConflictError(f"Match {match_id} changed during submission: {e}") from e
        except OperationalError as e:
            session.rollback()
            if _is_lock_conflict(e):
                raise ConflictError(f"Match {match_id} is locked by another transaction") from e
            raise
        except IntegrityViolation:
            session.rollback()
            logger.exception("Integrity violation while scoring match %d; rolled back", match_id)
            raise
        except Exception:
            session.rollback()
            raise

    def update_match(self, session: Session, match_id: int, changes: Dict[str, Any]) -> TournamentRead:
        """
        Merge date/time/venue onto a match. Scores and statistics are untouched.

        Keys outside date/time/venue are rejected; keys not present are left as-is.
        """
        unknown = sorted(set(changes) - set(MATCH_METADATA_FIELDS))
        if unknown:
            raise ValidationFailure(f"Only {', '.join(MATCH_METADATA_FIELDS)} can be updated here, got {unknown}")

        match = session.get(Match, match_id)
        if match is None:
            raise NotFoundError.for_entity("Match", match_id)

        for field, value in changes.items():
            setattr(match, field, value)

        tournament_id = match.tournament_id
        try:
            session.add(match)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Updated match %d schedule fields: %s", match_id, ", ".join(sorted(changes)) or "none")
        return rebuild_and_publish(session, self.publisher, tournament_id)

    def set_match_status(self, session: Session, match_id: int, status: str) -> TournamentRead:
        """
        Move a match between scheduled / in_progress / postponed.

        "completed" is reached only through submit_score, and a completed match
        keeps its status (scores and status change together).
        """
        if status not in MATCH_STATUSES:
            raise ValidationFailure(f"Invalid match status: {status}")
        if status == MATCH_COMPLETED:
            raise ValidationFailure("A match becomes completed only by submitting its score")

        match = session.get(Match, match_id)
        if match is None:
            raise NotFoundError.for_entity("Match", match_id)
        if match.status == MATCH_COMPLETED:
            raise ValidationFailure(f"Match {match_id} is completed; correct its score instead")

        match.status = status
        tournament_id = match.tournament_id
        try:
            session.add(match)
            session.commit()
        except Exception:
            session.rollback()
            raise

        logger.info("Match %d status set to %s", match_id, status)
        return rebuild_and_publish(session, self.publisher, tournament_id)
