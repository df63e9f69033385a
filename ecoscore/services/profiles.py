"""
Profile service: lazily-created user aggregates, profile settings, search
and leaderboards.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ecoscore.core.errors import UserNotFoundError
from ecoscore.models.user import UserAggregate
from ecoscore.services.ledger import _today, get_or_create_user, lock_user, transaction, week_start

SEARCH_LIMIT = 20


def ensure_user_profile(
    db: Session,
    user_id: str,
    display_name: str = "",
    email: str = "",
) -> UserAggregate:
    """Create the aggregate if missing; an existing profile is left untouched."""
    with transaction(db, "profile ensure"):
        user = get_or_create_user(db, user_id, display_name=display_name, email=email)
    db.refresh(user)
    return user


def get_user_profile(db: Session, user_id: str) -> UserAggregate:
    user = db.get(UserAggregate, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def update_profile(
    db: Session,
    user_id: str,
    display_name: Optional[str] = None,
    email: Optional[str] = None,
    email_notifications: Optional[bool] = None,
    is_private: Optional[bool] = None,
) -> UserAggregate:
    with transaction(db, "profile update"):
        user = lock_user(db, user_id)
        if display_name is not None:
            user.display_name = display_name
        if email is not None:
            user.email = email
        if email_notifications is not None:
            user.email_notifications = email_notifications
        if is_private is not None:
            user.is_private = is_private
    db.refresh(user)
    return user


def update_privacy(db: Session, user_id: str, is_private: bool) -> UserAggregate:
    return update_profile(db, user_id, is_private=is_private)


def search_users(db: Session, term: str) -> list[UserAggregate]:
    """Public users whose display name starts with `term` (case-sensitive)."""
    if not term:
        return []
    return (
        db.query(UserAggregate)
        .filter(
            UserAggregate.display_name.startswith(term, autoescape=True),
            UserAggregate.is_private == False,  # noqa: E712
        )
        .order_by(UserAggregate.display_name)
        .limit(SEARCH_LIMIT)
        .all()
    )


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------

def get_global_leaderboard(db: Session, limit: int = 10) -> list[UserAggregate]:
    return (
        db.query(UserAggregate)
        .filter(UserAggregate.is_private == False)  # noqa: E712
        .order_by(UserAggregate.total_points.desc(), UserAggregate.id)
        .limit(limit)
        .all()
    )


def get_weekly_leaderboard(
    db: Session,
    limit: int = 10,
    today: Optional[date] = None,
) -> list[UserAggregate]:
    """Public users ranked by points in the current week window only."""
    window = week_start(today or _today())
    return (
        db.query(UserAggregate)
        .filter(
            UserAggregate.is_private == False,  # noqa: E712
            UserAggregate.last_weekly_reset == window,
        )
        .order_by(UserAggregate.weekly_points.desc(), UserAggregate.id)
        .limit(limit)
        .all()
    )


def get_friends_progress(db: Session, user_id: str) -> list[UserAggregate]:
    user = get_user_profile(db, user_id)
    friend_ids = user.friend_ids
    if not friend_ids:
        return []
    return (
        db.query(UserAggregate)
        .filter(UserAggregate.id.in_(friend_ids))
        .order_by(UserAggregate.total_points.desc(), UserAggregate.id)
        .all()
    )
