"""
Day-streak calculation over sparse dated records.

A streak is anchored on today, or on yesterday when nothing is logged today
yet (the user still "has" yesterday's streak until the day ends).
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from ecoscore.models.daily_entry import DailyEntry
from ecoscore.services.ledger import _today, parse_day


def _as_date(item: Any) -> date:
    if isinstance(item, (date, str)):
        return parse_day(item)
    return parse_day(item.date)


def compute_streak(entries: Iterable[Any], today: Optional[date] = None) -> int:
    """
    Count consecutive logged days ending at the anchor.

    `entries` may hold dates, ISO strings, or objects with a `.date`
    attribute (e.g. DailyEntry rows). Callers supply at most one record per
    day; dates after the anchor are skipped.
    """
    dates = sorted((_as_date(e) for e in entries), reverse=True)
    if not dates:
        return 0

    anchor = today or _today()
    if anchor not in dates:
        anchor = anchor - timedelta(days=1)

    streak = 0
    for d in dates:
        if d == anchor:
            streak += 1
            anchor = anchor - timedelta(days=1)
        elif d < anchor:
            break
    return streak


def get_user_streak(db: Session, user_id: str, today: Optional[date] = None) -> int:
    """Streak from every stored entry date of the user."""
    rows = (
        db.query(DailyEntry.date)
        .filter(DailyEntry.user_id == user_id)
        .order_by(DailyEntry.date.desc())
        .all()
    )
    return compute_streak([r.date for r in rows], today=today)
