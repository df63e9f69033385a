"""
Friend requests.

Accepting a request adds each user to the other's friend list inside one
transaction that holds both aggregate rows' locks (taken in id order), then
re-evaluates achievements for both. Emails are best-effort.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ecoscore.core.enums import enum_value
from ecoscore.core.errors import (
    FriendRequestAlreadyHandledError,
    FriendRequestNotFoundError,
    SelfFriendRequestError,
    StoreUnavailableError,
    UserNotFoundError,
)
from ecoscore.models.friend_request import FriendRequest, FriendRequestStatus
from ecoscore.models.user import UserAggregate
from ecoscore.services.achievements import evaluate_achievements
from ecoscore.services.ledger import lock_user, transaction
from ecoscore.services.mail import Mailer, friend_accepted_message, friend_request_message
from ecoscore.services.notifications import send_best_effort

logger = logging.getLogger(__name__)


def send_friend_request(
    db: Session,
    from_id: str,
    to_id: str,
    mailer: Optional[Mailer] = None,
) -> FriendRequest:
    if from_id == to_id:
        raise SelfFriendRequestError(from_id)

    with transaction(db, "friend request"):
        sender = db.get(UserAggregate, from_id)
        if sender is None:
            raise UserNotFoundError(from_id)
        target = db.get(UserAggregate, to_id)
        if target is None:
            raise UserNotFoundError(to_id)
        request = FriendRequest(
            from_id=from_id,
            from_name=sender.display_name,
            to_id=to_id,
            status=FriendRequestStatus.pending,
        )
        db.add(request)
        notify = target.email_notifications and bool(target.email)
        target_email, sender_name = target.email, sender.display_name

    db.refresh(request)
    if notify and mailer is not None:
        subject, body = friend_request_message(sender_name or "Someone")
        send_best_effort(mailer, target_email, subject, body)
    return request


def list_pending_requests(db: Session, user_id: str) -> list[FriendRequest]:
    return (
        db.query(FriendRequest)
        .filter(
            FriendRequest.to_id == user_id,
            FriendRequest.status == FriendRequestStatus.pending,
        )
        .order_by(FriendRequest.created_at.desc(), FriendRequest.id.desc())
        .all()
    )


def respond_to_request(
    db: Session,
    request_id: int,
    action: str,
    mailer: Optional[Mailer] = None,
    today: Optional[date] = None,
) -> FriendRequest:
    """`action` is "accepted" or "declined"."""
    action = enum_value(action)
    accepter_name = requester_email = None
    notify = False

    with transaction(db, "friend request response"):
        request = db.get(FriendRequest, request_id)
        if request is None:
            raise FriendRequestNotFoundError(request_id)
        if enum_value(request.status) != FriendRequestStatus.pending.value:
            raise FriendRequestAlreadyHandledError(request_id, enum_value(request.status))

        request.status = FriendRequestStatus(action)
        if action == FriendRequestStatus.accepted.value:
            first, second = sorted([request.from_id, request.to_id])
            locked = {first: lock_user(db, first), second: lock_user(db, second)}
            accepter, requester = locked[request.to_id], locked[request.from_id]
            if requester.id not in accepter.friend_ids:
                accepter.friend_ids = accepter.friend_ids + [requester.id]
            if accepter.id not in requester.friend_ids:
                requester.friend_ids = requester.friend_ids + [accepter.id]
            notify = requester.email_notifications and bool(requester.email)
            accepter_name, requester_email = accepter.display_name, requester.email
        from_id, to_id = request.from_id, request.to_id

    db.refresh(request)
    logger.info("Friend request %s %s", request_id, action)

    if action == FriendRequestStatus.accepted.value:
        if notify and mailer is not None:
            subject, body = friend_accepted_message(accepter_name or "Your friend")
            send_best_effort(mailer, requester_email, subject, body)
        for uid in (to_id, from_id):
            try:
                evaluate_achievements(db, uid, mailer=mailer, today=today)
            except StoreUnavailableError:
                logger.warning("Achievement evaluation deferred for %s", uid)
    return request
