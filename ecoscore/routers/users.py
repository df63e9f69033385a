"""
Users router.

GET   /users/search?q=              — public users by display-name prefix
POST  /users/{user_id}              — ensure a profile exists
GET   /users/{user_id}
PATCH /users/{user_id}
PUT   /users/{user_id}/privacy
GET   /users/{user_id}/friends      — friends' progress
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ecoscore.db.base import get_db
from ecoscore.models.user import UserAggregate
from ecoscore.schemas.common import ERROR_RESPONSES
from ecoscore.schemas.users import (
    EnsureProfileRequest,
    GameStatsOut,
    PrivacyRequest,
    QuizStatsOut,
    UpdateProfileRequest,
    UserProfileOut,
)
from ecoscore.services.ledger import current_weekly_points
from ecoscore.services.profiles import (
    ensure_user_profile,
    get_friends_progress,
    get_user_profile,
    search_users,
    update_privacy,
    update_profile,
)

router = APIRouter(prefix="/users", tags=["users"])


def user_to_profile(u: UserAggregate) -> UserProfileOut:
    return UserProfileOut(
        id=u.id,
        display_name=u.display_name,
        email=u.email,
        total_points=u.total_points,
        weekly_points=current_weekly_points(u),
        badges=u.badges,
        earned_achievement_ids=u.earned_achievement_ids,
        friend_ids=u.friend_ids,
        is_private=u.is_private,
        email_notifications=u.email_notifications,
        quiz_stats=QuizStatsOut(
            answered=u.quiz_answered,
            correct=u.quiz_correct,
            current_streak=u.quiz_current_streak,
            best_streak=u.quiz_best_streak,
        ),
        game_stats=GameStatsOut(played=u.games_played, best_score=u.game_best_score),
    )


@router.get("/search", response_model=list[UserProfileOut], summary="Search public users")
def search(q: str = Query(default="", max_length=128), db: Session = Depends(get_db)):
    return [user_to_profile(u) for u in search_users(db, q)]


@router.post(
    "/{user_id}",
    response_model=UserProfileOut,
    summary="Create the profile if it does not exist yet",
)
def ensure_profile(user_id: str, payload: EnsureProfileRequest, db: Session = Depends(get_db)):
    """Idempotent: an existing profile is returned unchanged."""
    user = ensure_user_profile(db, user_id, display_name=payload.display_name, email=payload.email)
    return user_to_profile(user)


@router.get(
    "/{user_id}",
    response_model=UserProfileOut,
    responses={404: ERROR_RESPONSES[404]},
)
def get_profile(user_id: str, db: Session = Depends(get_db)):
    return user_to_profile(get_user_profile(db, user_id))


@router.patch(
    "/{user_id}",
    response_model=UserProfileOut,
    responses={404: ERROR_RESPONSES[404]},
)
def patch_profile(user_id: str, payload: UpdateProfileRequest, db: Session = Depends(get_db)):
    user = update_profile(
        db,
        user_id,
        display_name=payload.display_name,
        email=payload.email,
        email_notifications=payload.email_notifications,
    )
    return user_to_profile(user)


@router.put(
    "/{user_id}/privacy",
    response_model=UserProfileOut,
    responses={404: ERROR_RESPONSES[404]},
)
def put_privacy(user_id: str, payload: PrivacyRequest, db: Session = Depends(get_db)):
    return user_to_profile(update_privacy(db, user_id, payload.is_private))


@router.get(
    "/{user_id}/friends",
    response_model=list[UserProfileOut],
    summary="Friends' profiles, highest points first",
    responses={404: ERROR_RESPONSES[404]},
)
def friends_progress(user_id: str, db: Session = Depends(get_db)):
    return [user_to_profile(u) for u in get_friends_progress(db, user_id)]
