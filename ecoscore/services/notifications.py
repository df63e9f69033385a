"""
Notification fan-out for newly earned achievements.

One mail per (friend, achievement) pair, dispatched on a thread pool. Every
send is independent: a failure is logged and counted, never raised, and never
touches the already-committed award.

Recipients are resolved while the award transaction still holds the user's
row lock (`recipient_emails`); the post-commit `fan_out` step reads nothing
from the store.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from ecoscore.core.config import settings
from ecoscore.models.user import UserAggregate
from ecoscore.services.mail import Mailer, achievement_message

logger = logging.getLogger(__name__)


@dataclass
class FanOutResult:
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    # (recipient, achievement_id) pairs that did not go out
    failures: list[tuple[str, str]] = field(default_factory=list)


def send_best_effort(mailer: Mailer, recipient: str, subject: str, body: str) -> bool:
    """Send one message; log and return False on any failure."""
    try:
        ok = bool(mailer.send(recipient, subject, body))
    except Exception as exc:
        logger.warning("Notification to %s failed: %s", recipient, exc)
        return False
    if not ok:
        logger.warning("Notification to %s was rejected by the mailer", recipient)
    return ok


def _recipients(db: Session, user: UserAggregate) -> list[UserAggregate]:
    friend_ids = user.friend_ids
    if not friend_ids:
        return []
    friends = db.query(UserAggregate).filter(UserAggregate.id.in_(friend_ids)).all()
    return [f for f in friends if f.email_notifications and f.email]


def recipient_emails(db: Session, user: UserAggregate) -> list[str]:
    """Addresses of friends who want achievement mail."""
    return [f.email for f in _recipients(db, user)]


def fan_out(
    user_id: str,
    user_name: str,
    emails: Sequence[str],
    achievements: Sequence,
    mailer: Optional[Mailer],
    max_workers: Optional[int] = None,
) -> FanOutResult:
    result = FanOutResult()
    if mailer is None or not achievements or not emails:
        return result

    name = user_name or "A friend"
    jobs = []
    for email in emails:
        for ach in achievements:
            subject, body = achievement_message(name, ach.name, ach.points_bonus)
            jobs.append((email, ach.id, subject, body))

    result.attempted = len(jobs)
    workers = max(1, min(max_workers or settings.NOTIFY_MAX_WORKERS, len(jobs)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="notify") as pool:
        futures = [
            (email, ach_id, pool.submit(send_best_effort, mailer, email, subject, body))
            for email, ach_id, subject, body in jobs
        ]
        for email, ach_id, fut in futures:
            if fut.result():
                result.sent += 1
            else:
                result.failed += 1
                result.failures.append((email, ach_id))

    if result.failed:
        logger.warning(
            "Achievement fan-out for %s: %d/%d notifications failed",
            user_id, result.failed, result.attempted,
        )
    return result


def notify_achievement_friends(
    db: Session,
    user: UserAggregate,
    achievements: Sequence,
    mailer: Optional[Mailer],
    max_workers: Optional[int] = None,
) -> FanOutResult:
    """Resolve recipients from the store, then fan out."""
    if mailer is None or not achievements:
        return FanOutResult()
    return fan_out(
        user.id,
        user.display_name,
        recipient_emails(db, user),
        achievements,
        mailer,
        max_workers=max_workers,
    )
