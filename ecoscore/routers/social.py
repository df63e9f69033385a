"""
Friends router.

POST /friends/requests                         — send a request
GET  /friends/requests/{user_id}               — pending requests addressed to the user
POST /friends/requests/{request_id}/respond    — accept or decline
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ecoscore.core.enums import enum_value
from ecoscore.db.base import get_db
from ecoscore.models.friend_request import FriendRequest
from ecoscore.schemas.common import ERROR_RESPONSES, ErrorResponse
from ecoscore.schemas.social import FriendRequestIn, FriendRequestOut, FriendRequestResponseIn
from ecoscore.services.mail import Mailer, get_mailer
from ecoscore.services.social import list_pending_requests, respond_to_request, send_friend_request

router = APIRouter(prefix="/friends", tags=["friends"])


def _request_to_out(r: FriendRequest) -> FriendRequestOut:
    return FriendRequestOut(
        id=r.id,
        from_id=r.from_id,
        from_name=r.from_name,
        to_id=r.to_id,
        status=enum_value(r.status),
        created_at=r.created_at.isoformat() if r.created_at else "",
    )


@router.post(
    "/requests",
    response_model=FriendRequestOut,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: ERROR_RESPONSES[404],
        422: {"model": ErrorResponse, "description": "Request to self."},
    },
)
def create_request(
    payload: FriendRequestIn,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    return _request_to_out(send_friend_request(db, payload.from_id, payload.to_id, mailer=mailer))


@router.get("/requests/{user_id}", response_model=list[FriendRequestOut])
def pending_requests(user_id: str, db: Session = Depends(get_db)):
    return [_request_to_out(r) for r in list_pending_requests(db, user_id)]


@router.post(
    "/requests/{request_id}/respond",
    response_model=FriendRequestOut,
    responses={
        404: ERROR_RESPONSES[404],
        409: {"model": ErrorResponse, "description": "Request already handled."},
    },
)
def respond(
    request_id: int,
    payload: FriendRequestResponseIn,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    return _request_to_out(respond_to_request(db, request_id, payload.action, mailer=mailer))
