"""
Achievement Rule Engine.

Catalog
-------
ACHIEVEMENTS is an immutable tuple of threshold rules, evaluated in order.
Callers may pass a different catalog; nothing reads a module-level mutable.

Evaluation (evaluate_achievements)
----------------------------------
  1. Lock the user's aggregate row.
  2. Recompute every metric from the store (no cached counters are trusted).
  3. Every rule whose id is not yet in earned_achievement_ids is checked.
     Bonuses of newly met rules are added to the snapshot's total points and
     the remaining rules are re-checked until nothing new qualifies, so a
     second call right after a first one is a no-op.
  4. Nothing new → roll back, no writes.
     Otherwise one commit: ids appended, badge names appended, bonus sum
     applied through the ledger (total + weekly window).
  5. Friend addresses are read before the commit; after it, friends are
     notified (best-effort, failures logged and never raised).

Idempotency
-----------
The "not already earned" gate is checked under the row lock, so an
achievement can never be awarded twice, even by concurrent evaluations.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecoscore.core.errors import StoreUnavailableError
from ecoscore.models.challenge import Challenge
from ecoscore.models.daily_entry import DailyEntry
from ecoscore.models.user import UserAggregate
from ecoscore.services.ledger import apply_delta, lock_user
from ecoscore.services.mail import Mailer
from ecoscore.services.notifications import fan_out, recipient_emails
from ecoscore.services.streak import get_user_streak

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UserMetrics:
    """Everything a rule may look at, computed fresh per evaluation."""
    total_points: int = 0
    streak: int = 0
    entries_logged: int = 0
    co2_saved: float = 0.0
    water_saved: float = 0.0
    energy_saved: float = 0.0
    waste_saved: float = 0.0
    food_saved: float = 0.0
    challenges_completed: int = 0
    quiz_answered: int = 0
    quiz_correct: int = 0
    quiz_current_streak: int = 0
    games_played: int = 0
    game_best_score: int = 0
    friends: int = 0


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    points_bonus: int
    predicate: Callable[[UserMetrics], bool] = field(compare=False, repr=False)

    def is_met(self, metrics: UserMetrics) -> bool:
        return bool(self.predicate(metrics))


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_entry", "First Step", "Log your first eco-action.",
                "sprout", 10, lambda m: m.entries_logged >= 1),
    Achievement("points_100", "Century Saver", "Reach 100 total points.",
                "star", 25, lambda m: m.total_points >= 100),
    Achievement("points_500", "Eco Warrior", "Reach 500 total points.",
                "shield", 50, lambda m: m.total_points >= 500),
    Achievement("points_1000", "Planet Guardian", "Reach 1000 total points.",
                "globe", 100, lambda m: m.total_points >= 1000),
    Achievement("streak_3", "On a Roll", "Log 3 days in a row.",
                "flame", 15, lambda m: m.streak >= 3),
    Achievement("streak_7", "Week Warrior", "Log 7 days in a row.",
                "calendar", 50, lambda m: m.streak >= 7),
    Achievement("streak_30", "Habit Master", "Log 30 days in a row.",
                "crown", 200, lambda m: m.streak >= 30),
    Achievement("co2_50", "Carbon Cutter", "Save 50 kg of CO2 in total.",
                "cloud", 50, lambda m: m.co2_saved >= 50),
    Achievement("water_100", "Water Keeper", "Save 100 litres of water in total.",
                "droplet", 30, lambda m: m.water_saved >= 100),
    Achievement("challenge_1", "Challenger", "Complete your first challenge.",
                "target", 20, lambda m: m.challenges_completed >= 1),
    Achievement("challenge_5", "Challenge Champion", "Complete 5 challenges.",
                "trophy", 75, lambda m: m.challenges_completed >= 5),
    # Proxy kept from the product: a 5-answer correct run counts as a perfect quiz.
    Achievement("quiz_perfect", "Perfect Score", "Answer 5 quiz questions correctly in a row.",
                "brain", 50, lambda m: m.quiz_current_streak >= 5),
    Achievement("quiz_scholar", "Eco Scholar", "Answer 25 quiz questions correctly.",
                "book", 40, lambda m: m.quiz_correct >= 25),
    Achievement("game_player", "Game On", "Finish your first mini-game.",
                "gamepad", 10, lambda m: m.games_played >= 1),
    Achievement("social_3", "Social Butterfly", "Connect with 3 friends.",
                "users", 20, lambda m: m.friends >= 3),
)


def get_achievement(achievement_id: str, catalog: Sequence[Achievement] = ACHIEVEMENTS) -> Optional[Achievement]:
    return next((a for a in catalog if a.id == achievement_id), None)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def collect_metrics(db: Session, user: UserAggregate, today: Optional[date] = None) -> UserMetrics:
    entries_logged, co2, water, energy, waste, food = (
        db.query(
            func.count(DailyEntry.id),
            func.coalesce(func.sum(DailyEntry.co2), 0.0),
            func.coalesce(func.sum(DailyEntry.water), 0.0),
            func.coalesce(func.sum(DailyEntry.energy), 0.0),
            func.coalesce(func.sum(DailyEntry.waste), 0.0),
            func.coalesce(func.sum(DailyEntry.food), 0.0),
        )
        .filter(DailyEntry.user_id == user.id)
        .one()
    )
    challenges_completed = (
        db.query(func.count(Challenge.id))
        .filter(Challenge.user_id == user.id, Challenge.completed == True)  # noqa: E712
        .scalar()
        or 0
    )
    return UserMetrics(
        total_points=user.total_points or 0,
        streak=get_user_streak(db, user.id, today=today),
        entries_logged=entries_logged or 0,
        co2_saved=float(co2),
        water_saved=float(water),
        energy_saved=float(energy),
        waste_saved=float(waste),
        food_saved=float(food),
        challenges_completed=challenges_completed,
        quiz_answered=user.quiz_answered or 0,
        quiz_correct=user.quiz_correct or 0,
        quiz_current_streak=user.quiz_current_streak or 0,
        games_played=user.games_played or 0,
        game_best_score=user.game_best_score or 0,
        friends=len(user.friend_ids),
    )


# ---------------------------------------------------------------------------
# Pure rule evaluation
# ---------------------------------------------------------------------------

def select_new_achievements(
    catalog: Sequence[Achievement],
    earned_ids: Iterable[str],
    metrics: UserMetrics,
) -> list[Achievement]:
    """Rules newly met by `metrics`, in catalog order, bonuses folded in until stable."""
    earned = set(earned_ids)
    snapshot = metrics
    awarded: list[Achievement] = []
    while True:
        fresh = [a for a in catalog if a.id not in earned and a.is_met(snapshot)]
        if not fresh:
            break
        awarded.extend(fresh)
        earned.update(a.id for a in fresh)
        snapshot = replace(
            snapshot,
            total_points=snapshot.total_points + sum(a.points_bonus for a in fresh),
        )
    order = {a.id: i for i, a in enumerate(catalog)}
    return sorted(awarded, key=lambda a: order[a.id])


# ---------------------------------------------------------------------------
# Public — main entry point
# ---------------------------------------------------------------------------

def evaluate_achievements(
    db: Session,
    user_id: str,
    catalog: Sequence[Achievement] = ACHIEVEMENTS,
    mailer: Optional[Mailer] = None,
    today: Optional[date] = None,
) -> list[Achievement]:
    """
    Award every catalog achievement the user newly qualifies for.
    Returns the awarded achievements (empty list = silent no-op).
    """
    try:
        user = lock_user(db, user_id)
        metrics = collect_metrics(db, user, today=today)
        awarded = select_new_achievements(catalog, user.earned_achievement_ids, metrics)

        if not awarded:
            db.rollback()  # release the row lock; nothing was written
            return []

        user.earned_achievement_ids = user.earned_achievement_ids + [a.id for a in awarded]
        user.badges = user.badges + [a.name for a in awarded]
        bonus = sum(a.points_bonus for a in awarded)
        apply_delta(user, bonus, today)
        emails = recipient_emails(db, user) if mailer is not None else []
        user_name = user.display_name
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Achievement evaluation for %s failed: %s", user_id, exc)
        raise StoreUnavailableError("achievement evaluation") from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "User %s earned %s (+%d bonus)", user_id, ", ".join(a.id for a in awarded), bonus,
    )
    try:
        fan_out(user_id, user_name, emails, awarded, mailer)
    except Exception:
        logger.exception("Achievement notifications for %s failed", user_id)
    return awarded


# ---------------------------------------------------------------------------
# Public — read side
# ---------------------------------------------------------------------------

@dataclass
class AchievementStatus:
    achievement: Achievement
    earned: bool


def get_achievement_status(
    user: UserAggregate,
    catalog: Sequence[Achievement] = ACHIEVEMENTS,
) -> tuple[list[AchievementStatus], int]:
    """(catalog with earned flags, total bonus points earned so far)."""
    earned = set(user.earned_achievement_ids)
    items = [AchievementStatus(achievement=a, earned=a.id in earned) for a in catalog]
    bonus = sum(a.points_bonus for a in catalog if a.id in earned)
    return items, bonus
