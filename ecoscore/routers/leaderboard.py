"""
Leaderboard router.

GET /leaderboard/global   — public users by lifetime points
GET /leaderboard/weekly   — public users by points in the current week window
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ecoscore.core.config import settings
from ecoscore.db.base import get_db
from ecoscore.models.user import UserAggregate
from ecoscore.schemas.users import LeaderboardRow
from ecoscore.services.profiles import get_global_leaderboard, get_weekly_leaderboard

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


def _rows(users: list[UserAggregate], weekly: bool) -> list[LeaderboardRow]:
    return [
        LeaderboardRow(
            rank=i,
            user_id=u.id,
            display_name=u.display_name,
            points=u.weekly_points if weekly else u.total_points,
            badges=len(u.badges),
        )
        for i, u in enumerate(users, start=1)
    ]


@router.get("/global", response_model=list[LeaderboardRow])
def global_leaderboard(
    limit: int = Query(default=10, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    db: Session = Depends(get_db),
):
    return _rows(get_global_leaderboard(db, limit=limit), weekly=False)


@router.get("/weekly", response_model=list[LeaderboardRow])
def weekly_leaderboard(
    limit: int = Query(default=10, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    db: Session = Depends(get_db),
):
    return _rows(get_weekly_leaderboard(db, limit=limit), weekly=True)
