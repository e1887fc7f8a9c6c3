"""Commit helper translating optimistic-lock failures into ledger errors."""

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from eventledger.core.exceptions import ConcurrentUpdateError


def commit_or_conflict(db: Session, label: str) -> None:
    # Version counters make every UPDATE conditional; zero matched rows means a lost race.
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentUpdateError(f"{label} was changed by another request; reload and try again") from exc
