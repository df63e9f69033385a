"""
Ledger helpers shared by every scoring operation.

The UserAggregate row is the one shared, mutated resource. Every service that
changes points follows the same shape inside a single transaction:

    with transaction(db, "operation name"):  # all-or-nothing
        user = lock_user(db, user_id)        # SELECT ... FOR UPDATE
        ... dependent reads / writes ...
        apply_delta(user, delta, today)

Only `transaction` commits.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecoscore.core.errors import InvalidDateError, StoreUnavailableError, UserNotFoundError
from ecoscore.models.user import UserAggregate

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def week_start(day: date) -> date:
    """Monday of the ISO week containing `day`; the week-window key."""
    return day - timedelta(days=day.weekday())


def parse_day(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidDateError(value) from exc


# ---------------------------------------------------------------------------
# Row access (locking)
# ---------------------------------------------------------------------------

def _locked_query(db: Session, user_id: str):
    return (
        db.query(UserAggregate)
        .filter(UserAggregate.id == user_id)
        .populate_existing()
        .with_for_update()
    )


def lock_user(db: Session, user_id: str) -> UserAggregate:
    """Load the user's aggregate row under a write lock. Raises if absent."""
    user = _locked_query(db, user_id).first()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def get_or_create_user(
    db: Session,
    user_id: str,
    display_name: str = "",
    email: str = "",
) -> UserAggregate:
    """
    Locked load, creating a zeroed aggregate when none exists yet.
    The new row is flushed but not committed.
    """
    user = _locked_query(db, user_id).first()
    if user is not None:
        return user
    user = UserAggregate(
        id=user_id,
        display_name=display_name,
        email=email,
        total_points=0,
        weekly_points=0,
        last_weekly_reset=None,
        badges_json="[]",
        earned_achievements_json="[]",
        friends_json="[]",
        is_private=False,
        email_notifications=True,
    )
    db.add(user)
    db.flush()
    logger.info("Created aggregate for user %s", user_id)
    return user


# ---------------------------------------------------------------------------
# Point ledger
# ---------------------------------------------------------------------------

def apply_delta(user: UserAggregate, delta: int, today: Optional[date] = None) -> None:
    """
    Add `delta` to the lifetime total and to the current week window.

    When the stored window key is older than this week's Monday the weekly
    total restarts at `delta` instead of accumulating.
    """
    window = week_start(today or _today())
    if user.last_weekly_reset is None or user.last_weekly_reset < window:
        user.weekly_points = delta
        user.last_weekly_reset = window
    else:
        user.weekly_points = (user.weekly_points or 0) + delta
    user.total_points = (user.total_points or 0) + delta


def current_weekly_points(user: UserAggregate, today: Optional[date] = None) -> int:
    """Weekly points as of `today`; a stale window reads as zero."""
    window = week_start(today or _today())
    if user.last_weekly_reset is None or user.last_weekly_reset < window:
        return 0
    return user.weekly_points


@contextmanager
def transaction(db: Session, operation: str) -> Iterator[Session]:
    """
    Run the body as one all-or-nothing unit and commit at the end.

    Store errors (raised by the body or by the commit) roll back and surface
    as StoreUnavailableError. Any other exception rolls back and propagates
    unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Transaction %s failed: %s", operation, exc)
        raise StoreUnavailableError(operation) from exc
    except Exception:
        db.rollback()
        raise
