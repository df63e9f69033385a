"""
Entries router.

PUT /entries/{user_id}/{day}                 — create or revise the day's entry
GET /entries/{user_id}                       — most recent entries (date desc)
GET /entries/{user_id}/impact-comparison     — last 7 entries vs previous 7
GET /entries/{user_id}/streak                — current day streak
GET /entries/{user_id}/{day}                 — single day
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ecoscore.core.errors import EntryNotFoundError
from ecoscore.db.base import get_db
from ecoscore.models.daily_entry import DailyEntry
from ecoscore.schemas.common import ERROR_RESPONSES, AchievementOut
from ecoscore.schemas.entries import (
    EntryOut,
    EntryUpsertRequest,
    EntryUpsertResponse,
    ImpactComparisonResponse,
    ImpactVector,
    StreakResponse,
)
from ecoscore.services.entries import (
    get_entry_for_day,
    get_impact_comparison,
    get_recent_entries,
    upsert_entry,
)
from ecoscore.services.ledger import _today
from ecoscore.services.mail import Mailer, get_mailer
from ecoscore.services.streak import get_user_streak

router = APIRouter(prefix="/entries", tags=["entries"])


# ---------------------------------------------------------------------------
# Serialization helper
# ---------------------------------------------------------------------------

def _entry_to_out(e: DailyEntry) -> EntryOut:
    return EntryOut(
        id=e.id,
        user_id=e.user_id,
        date=str(e.date),
        raw_text=e.raw_text,
        impact=ImpactVector(**e.impact),
        points=e.points,
        ai_comment=e.ai_comment,
        actions=e.actions,
        created_at=e.created_at.isoformat() if e.created_at else None,
        last_modified=e.last_modified.isoformat() if e.last_modified else None,
    )


# ---------------------------------------------------------------------------
# Write
# ---------------------------------------------------------------------------

@router.put(
    "/{user_id}/{day}",
    response_model=EntryUpsertResponse,
    summary="Create or revise a user's entry for a day",
    responses={**ERROR_RESPONSES},
)
def put_entry(
    user_id: str,
    day: date,
    payload: EntryUpsertRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """
    At most one entry exists per user and day. Re-submitting the same day
    overwrites it and moves the user's points by the difference only, so the
    call is safe to retry.

    Newly unlocked achievements are returned alongside the entry.
    """
    result = upsert_entry(
        db,
        user_id=user_id,
        day=day,
        text=payload.text,
        impact=payload.impact.model_dump(),
        points=payload.points,
        comment=payload.comment,
        actions=payload.actions,
        mailer=mailer,
    )
    return EntryUpsertResponse(
        entry=_entry_to_out(result.entry),
        created=result.created,
        delta=result.delta,
        new_achievements=[AchievementOut.model_validate(a) for a in result.new_achievements],
    )


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@router.get("/{user_id}", response_model=list[EntryOut], summary="Recent entries")
def list_entries(
    user_id: str,
    limit: int = Query(default=14, ge=1, le=366),
    db: Session = Depends(get_db),
):
    return [_entry_to_out(e) for e in get_recent_entries(db, user_id, limit=limit)]


@router.get(
    "/{user_id}/impact-comparison",
    response_model=ImpactComparisonResponse,
    summary="Impact of the last 7 entries vs the 7 before",
)
def impact_comparison(user_id: str, db: Session = Depends(get_db)):
    cmp = get_impact_comparison(db, user_id)
    return ImpactComparisonResponse(
        current=ImpactVector(**cmp.current),
        previous=ImpactVector(**cmp.previous),
    )


@router.get("/{user_id}/streak", response_model=StreakResponse, summary="Current day streak")
def streak(user_id: str, db: Session = Depends(get_db)):
    today = _today()
    return StreakResponse(user_id=user_id, streak=get_user_streak(db, user_id, today), as_of=today)


@router.get(
    "/{user_id}/{day}",
    response_model=EntryOut,
    summary="Entry for one day",
    responses={404: ERROR_RESPONSES[404]},
)
def get_entry(user_id: str, day: date, db: Session = Depends(get_db)):
    entry = get_entry_for_day(db, user_id, day)
    if entry is None:
        raise EntryNotFoundError(user_id, str(day))
    return _entry_to_out(entry)
