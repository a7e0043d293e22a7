"""
Row Guards for concurrent score transactions.

Two layers, used together on the match row and its two team rows:
- lock_row(): SELECT ... FOR UPDATE (PostgreSQL row lock; SQLite ignores it)
- claim_revision(): compare-and-swap on the row's ``revision`` column. If
  another transaction committed a change since the row was read, zero rows
  match and ConflictError is raised so the caller can retry from scratch.
"""

from typing import Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import Session, SQLModel, select

from leaguehub.errors import ConflictError

ModelT = TypeVar("ModelT", bound=SQLModel)


def lock_row(session: Session, model: Type[ModelT], row_id: int) -> Optional[ModelT]:
    """Load one row by id, locking it for the rest of the transaction."""
    return session.exec(select(model).where(model.id == row_id).with_for_update()).first()


def claim_revision(session: Session, row: SQLModel) -> int:
    """
    Bump ``row.revision`` only if the stored value is still the one we read.

    Returns:
        The new revision

    Raises:
        ConflictError: the row changed (or vanished) since it was loaded
    """
    model = type(row)
    seen = row.revision
    result = session.execute(
        update(model)
        .where(model.id == row.id, model.revision == seen)
        .values(revision=seen + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(
            f"{model.__name__} {row.id} was modified concurrently (expected revision {seen})"
        )
    # Keep the in-memory row in step without marking it dirty
    set_committed_value(row, "revision", seen + 1)
    return seen + 1
