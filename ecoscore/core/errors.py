"""
Custom exception hierarchy for EcoScore.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class EcoScoreException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# --- not found -------------------------------------------------------------

class NotFoundError(EcoScoreException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(
            message=f"User {user_id} does not exist.",
            details={"user_id": user_id},
        )


class EntryNotFoundError(NotFoundError):
    code = "ENTRY_NOT_FOUND"

    def __init__(self, user_id: str, day: str):
        super().__init__(
            message=f"No entry for user {user_id} on {day}.",
            details={"user_id": user_id, "date": day},
        )


class ChallengeNotFoundError(NotFoundError):
    code = "CHALLENGE_NOT_FOUND"

    def __init__(self, challenge_id: int):
        super().__init__(
            message=f"Challenge {challenge_id} does not exist.",
            details={"challenge_id": challenge_id},
        )


class QuizQuestionNotFoundError(NotFoundError):
    code = "QUIZ_QUESTION_NOT_FOUND"

    def __init__(self, question_id: int):
        super().__init__(
            message=f"Quiz question {question_id} does not exist.",
            details={"question_id": question_id},
        )


class FriendRequestNotFoundError(NotFoundError):
    code = "FRIEND_REQUEST_NOT_FOUND"

    def __init__(self, request_id: int):
        super().__init__(
            message=f"Friend request {request_id} does not exist.",
            details={"request_id": request_id},
        )


# --- conflicts -------------------------------------------------------------

class ChallengeAlreadyCompletedError(EcoScoreException):
    http_status = status.HTTP_409_CONFLICT
    code = "CHALLENGE_ALREADY_COMPLETED"

    def __init__(self, challenge_id: int):
        super().__init__(
            message=f"Challenge {challenge_id} is already completed.",
            details={"challenge_id": challenge_id},
        )


class FriendRequestAlreadyHandledError(EcoScoreException):
    http_status = status.HTTP_409_CONFLICT
    code = "FRIEND_REQUEST_ALREADY_HANDLED"

    def __init__(self, request_id: int, current_status: str):
        super().__init__(
            message=f"Friend request {request_id} is already {current_status}.",
            details={"request_id": request_id, "status": current_status},
        )


# --- bad input -------------------------------------------------------------

class InvalidDateError(EcoScoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_DATE"

    def __init__(self, value: Any):
        super().__init__(
            message=f"{value!r} is not a valid calendar date (expected YYYY-MM-DD).",
            details={"value": str(value)},
        )


class InvalidAnswerError(EcoScoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_ANSWER"

    def __init__(self, question_id: int, answer_index: int, option_count: int):
        super().__init__(
            message=(
                f"Answer {answer_index} is out of range for question {question_id} "
                f"({option_count} options)."
            ),
            details={
                "question_id": question_id,
                "answer_index": answer_index,
                "option_count": option_count,
            },
        )


class InvalidQuizQuestionError(EcoScoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "INVALID_QUIZ_QUESTION"

    def __init__(self, index: int, reason: str):
        super().__init__(
            message=f"Quiz {index}: {reason}",
            details={"index": index},
        )


class SelfFriendRequestError(EcoScoreException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "SELF_FRIEND_REQUEST"

    def __init__(self, user_id: str):
        super().__init__(
            message="Users cannot send a friend request to themselves.",
            details={"user_id": user_id},
        )


# --- store -----------------------------------------------------------------

class StoreUnavailableError(EcoScoreException):
    """The transaction could not commit. Nothing was written; safe to retry."""
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str):
        super().__init__(
            message=f"Could not commit {operation}. No changes were applied; retry the request.",
            details={"operation": operation},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def ecoscore_exception_handler(request: Request, exc: EcoScoreException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
