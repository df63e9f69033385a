"""
Entry Upsert Engine + entry read helpers.

Public API
----------
upsert_entry(db, user_id, day, text, impact, points, comment, ...) → UpsertResult
get_recent_entries(db, user_id, limit)                              → list[DailyEntry]
get_entry_for_day(db, user_id, day)                                 → DailyEntry | None
get_impact_comparison(db, user_id)                                  → ImpactComparison

Upsert transaction
------------------
  lock (or lazily create) the user's aggregate
  → look up the (user_id, day) entry
  → revise in place (delta = new - old) or insert (delta = new)
  → apply delta to total + weekly window
  → commit once

The lock is taken before the lookup so two saves for the same user are
serialised and can never both insert. Achievement evaluation runs after the
commit in its own transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Union

from sqlalchemy.orm import Session

from ecoscore.core.errors import StoreUnavailableError
from ecoscore.models.daily_entry import DailyEntry, IMPACT_FIELDS
from ecoscore.services.achievements import Achievement, evaluate_achievements
from ecoscore.services.ledger import apply_delta, get_or_create_user, parse_day, transaction
from ecoscore.services.mail import Mailer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class UpsertResult:
    entry: DailyEntry
    delta: int
    created: bool
    new_achievements: list[Achievement] = field(default_factory=list)


@dataclass
class ImpactComparison:
    current: dict[str, float]
    previous: dict[str, float]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _impact_value(impact: Mapping[str, Any], name: str) -> Any:
    value = impact.get(name)
    return 0.0 if value is None else value


def _find_entry(db: Session, user_id: str, day: date) -> Optional[DailyEntry]:
    return (
        db.query(DailyEntry)
        .filter(DailyEntry.user_id == user_id, DailyEntry.date == day)
        .first()
    )


def _write_fields(
    entry: DailyEntry,
    text: str,
    impact: Mapping[str, Any],
    points: int,
    comment: str,
    actions: Optional[list[str]],
) -> None:
    entry.raw_text = text
    for name in IMPACT_FIELDS:
        setattr(entry, name, _impact_value(impact, name))
    entry.points = points
    entry.ai_comment = comment
    entry.actions = actions


# ---------------------------------------------------------------------------
# Public — upsert
# ---------------------------------------------------------------------------

def upsert_entry(
    db: Session,
    user_id: str,
    day: Union[date, str],
    text: str,
    impact: Mapping[str, Any],
    points: int,
    comment: str,
    actions: Optional[list[str]] = None,
    mailer: Optional[Mailer] = None,
    today: Optional[date] = None,
) -> UpsertResult:
    """
    Create or revise the user's entry for `day` and move the ledger by the
    net point change. Impact and points are stored as given.

    Retrying with the same input converges: the second call finds the entry
    and applies a delta of zero.
    """
    target_day = parse_day(day)

    with transaction(db, "entry upsert"):
        user = get_or_create_user(db, user_id)
        entry = _find_entry(db, user_id, target_day)

        if entry is not None:
            created = False
            delta = points - (entry.points or 0)
            _write_fields(entry, text, impact, points, comment, actions)
            entry.last_modified = datetime.now(tz=timezone.utc)
        else:
            created = True
            delta = points
            entry = DailyEntry(user_id=user_id, date=target_day)
            _write_fields(entry, text, impact, points, comment, actions)
            db.add(entry)

        apply_delta(user, delta, today)

    db.refresh(entry)
    logger.info(
        "%s entry %s for %s on %s (delta %+d)",
        "Created" if created else "Revised", entry.id, user_id, target_day, delta,
    )

    try:
        awarded = evaluate_achievements(db, user_id, mailer=mailer, today=today)
    except StoreUnavailableError:
        # The entry is committed; the next evaluation picks the awards up.
        logger.warning("Achievement evaluation deferred for %s after upsert", user_id)
        awarded = []

    return UpsertResult(entry=entry, delta=delta, created=created, new_achievements=awarded)


# ---------------------------------------------------------------------------
# Public — read side
# ---------------------------------------------------------------------------

def get_recent_entries(db: Session, user_id: str, limit: int = 14) -> list[DailyEntry]:
    return (
        db.query(DailyEntry)
        .filter(DailyEntry.user_id == user_id)
        .order_by(DailyEntry.date.desc())
        .limit(limit)
        .all()
    )


def get_entry_for_day(db: Session, user_id: str, day: Union[date, str]) -> Optional[DailyEntry]:
    return _find_entry(db, user_id, parse_day(day))


def _sum_impact(entries: list[DailyEntry]) -> dict[str, float]:
    totals = {name: 0.0 for name in IMPACT_FIELDS}
    for e in entries:
        for name in IMPACT_FIELDS:
            totals[name] += getattr(e, name) or 0.0
    return totals


def get_impact_comparison(db: Session, user_id: str) -> ImpactComparison:
    """Impact of the 7 most recent entries vs. the 7 before them."""
    entries = get_recent_entries(db, user_id, limit=14)
    return ImpactComparison(
        current=_sum_impact(entries[:7]),
        previous=_sum_impact(entries[7:14]),
    )
