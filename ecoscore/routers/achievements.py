"""
Achievements router.

GET  /achievements                       — the catalog, in evaluation order
GET  /achievements/{user_id}             — catalog with earned/locked flags
POST /achievements/{user_id}/evaluate    — re-run the rule engine now
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecoscore.db.base import get_db
from ecoscore.schemas.achievements import (
    AchievementStatusOut,
    EvaluateResponse,
    UserAchievementsResponse,
)
from ecoscore.schemas.common import ERROR_RESPONSES, AchievementOut
from ecoscore.services.achievements import (
    ACHIEVEMENTS,
    evaluate_achievements,
    get_achievement_status,
)
from ecoscore.services.mail import Mailer, get_mailer
from ecoscore.services.profiles import get_user_profile

router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("", response_model=list[AchievementOut], summary="Achievement catalog")
def list_catalog():
    return [AchievementOut.model_validate(a) for a in ACHIEVEMENTS]


@router.get(
    "/{user_id}",
    response_model=UserAchievementsResponse,
    summary="A user's unlocked and locked achievements",
    responses={404: ERROR_RESPONSES[404]},
)
def user_achievements(user_id: str, db: Session = Depends(get_db)):
    user = get_user_profile(db, user_id)
    items, bonus = get_achievement_status(user)
    return UserAchievementsResponse(
        user_id=user_id,
        total=len(items),
        unlocked=sum(1 for s in items if s.earned),
        total_bonus=bonus,
        items=[
            AchievementStatusOut(
                **AchievementOut.model_validate(s.achievement).model_dump(),
                earned=s.earned,
            )
            for s in items
        ],
    )


@router.post(
    "/{user_id}/evaluate",
    response_model=EvaluateResponse,
    summary="Evaluate achievement rules for a user",
    responses={**ERROR_RESPONSES},
)
def evaluate(
    user_id: str,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """
    Awards every achievement the user newly qualifies for. Calling it again
    without new activity returns an empty list and changes nothing.
    """
    awarded = evaluate_achievements(db, user_id, mailer=mailer)
    return EvaluateResponse(
        user_id=user_id,
        new_achievements=[AchievementOut.model_validate(a) for a in awarded],
    )
