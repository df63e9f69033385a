"""
Challenges: habits the user has committed to, worth a fixed reward.

Completing a challenge follows the ledger pattern of the entry upsert with a
single positive delta and no revision case.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ecoscore.core.enums import enum_value
from ecoscore.core.errors import (
    ChallengeAlreadyCompletedError,
    ChallengeNotFoundError,
    StoreUnavailableError,
)
from ecoscore.models.challenge import Challenge, Difficulty
from ecoscore.services.achievements import Achievement, evaluate_achievements
from ecoscore.services.ledger import apply_delta, lock_user, transaction
from ecoscore.services.mail import Mailer

logger = logging.getLogger(__name__)

# difficulty → (target, points reward)
DIFFICULTY_TABLE: dict[str, tuple[int, int]] = {
    Difficulty.easy.value: (5, 50),
    Difficulty.medium.value: (15, 150),
    Difficulty.hard.value: (30, 300),
}


@dataclass
class Habit:
    title: str
    description: str
    impact_type: str
    difficulty: str


@dataclass
class CompletionResult:
    challenge: Challenge
    points: int
    new_achievements: list[Achievement] = field(default_factory=list)


def activate_habit_as_challenge(db: Session, user_id: str, habit: Habit) -> Challenge:
    """Turn a suggested habit into an open challenge for the user."""
    target, reward = DIFFICULTY_TABLE[enum_value(habit.difficulty)]
    with transaction(db, "challenge activation"):
        lock_user(db, user_id)
        challenge = Challenge(
            user_id=user_id,
            title=habit.title,
            description=habit.description,
            impact_type=enum_value(habit.impact_type),
            target=target,
            points_reward=reward,
            completed=False,
        )
        db.add(challenge)
    db.refresh(challenge)
    return challenge


def list_challenges(db: Session, user_id: str, completed: Optional[bool] = None) -> list[Challenge]:
    q = db.query(Challenge).filter(Challenge.user_id == user_id)
    if completed is not None:
        q = q.filter(Challenge.completed == completed)
    return q.order_by(Challenge.created_at.desc(), Challenge.id.desc()).all()


def complete_challenge(
    db: Session,
    challenge_id: int,
    user_id: str,
    points: Optional[int] = None,
    mailer: Optional[Mailer] = None,
    today: Optional[date] = None,
) -> CompletionResult:
    """
    Mark the challenge done and credit `points` (defaults to its reward)
    in the same transaction, then re-evaluate achievements.
    """
    with transaction(db, "challenge completion"):
        user = lock_user(db, user_id)
        challenge = (
            db.query(Challenge)
            .filter(Challenge.id == challenge_id, Challenge.user_id == user_id)
            .first()
        )
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        if challenge.completed:
            raise ChallengeAlreadyCompletedError(challenge_id)

        delta = challenge.points_reward if points is None else points
        challenge.completed = True
        challenge.completed_at = datetime.now(tz=timezone.utc)
        apply_delta(user, delta, today)

    db.refresh(challenge)
    logger.info("User %s completed challenge %s (+%d)", user_id, challenge_id, delta)

    try:
        awarded = evaluate_achievements(db, user_id, mailer=mailer, today=today)
    except StoreUnavailableError:
        logger.warning("Achievement evaluation deferred for %s after challenge", user_id)
        awarded = []
    return CompletionResult(challenge=challenge, points=delta, new_achievements=awarded)
