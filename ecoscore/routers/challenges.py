"""
Challenges router.

POST /challenges/{user_id}                              — activate a habit as a challenge
GET  /challenges/{user_id}?completed=                   — list
POST /challenges/{user_id}/{challenge_id}/complete      — complete and credit points
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecoscore.core.enums import enum_value
from ecoscore.db.base import get_db
from ecoscore.models.challenge import Challenge
from ecoscore.schemas.challenges import (
    ChallengeOut,
    CompleteChallengeRequest,
    CompleteChallengeResponse,
    HabitIn,
)
from ecoscore.schemas.common import ERROR_RESPONSES, AchievementOut, ErrorResponse
from ecoscore.services.challenges import (
    Habit,
    activate_habit_as_challenge,
    complete_challenge,
    list_challenges,
)
from ecoscore.services.mail import Mailer, get_mailer

router = APIRouter(prefix="/challenges", tags=["challenges"])


def _challenge_to_out(c: Challenge) -> ChallengeOut:
    return ChallengeOut(
        id=c.id,
        user_id=c.user_id,
        title=c.title,
        description=c.description,
        impact_type=enum_value(c.impact_type),
        target=c.target,
        points_reward=c.points_reward,
        completed=c.completed,
        completed_at=c.completed_at.isoformat() if c.completed_at else None,
    )


@router.post(
    "/{user_id}",
    response_model=ChallengeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Activate a suggested habit as a challenge",
    responses={404: ERROR_RESPONSES[404]},
)
def activate(user_id: str, payload: HabitIn, db: Session = Depends(get_db)):
    """Difficulty sets the target and reward: easy 5/50, medium 15/150, hard 30/300."""
    habit = Habit(
        title=payload.title,
        description=payload.description,
        impact_type=payload.impact_type,
        difficulty=payload.difficulty,
    )
    return _challenge_to_out(activate_habit_as_challenge(db, user_id, habit))


@router.get("/{user_id}", response_model=list[ChallengeOut])
def list_user_challenges(
    user_id: str,
    completed: Optional[bool] = Query(default=None, description="Filter by state. Omit for all."),
    db: Session = Depends(get_db),
):
    return [_challenge_to_out(c) for c in list_challenges(db, user_id, completed=completed)]


@router.post(
    "/{user_id}/{challenge_id}/complete",
    response_model=CompleteChallengeResponse,
    summary="Complete a challenge",
    responses={
        **ERROR_RESPONSES,
        409: {"model": ErrorResponse, "description": "Challenge already completed."},
    },
)
def complete(
    user_id: str,
    challenge_id: int,
    payload: Optional[CompleteChallengeRequest] = None,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    result = complete_challenge(
        db,
        challenge_id=challenge_id,
        user_id=user_id,
        points=payload.points if payload else None,
        mailer=mailer,
    )
    return CompleteChallengeResponse(
        challenge=_challenge_to_out(result.challenge),
        points=result.points,
        new_achievements=[AchievementOut.model_validate(a) for a in result.new_achievements],
    )
