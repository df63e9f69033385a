"""
Quiz questions and mini-game scores.

Both feed the point ledger and the quiz/game stats on the user aggregate in
one transaction, then re-evaluate achievements.

Scoring: a correct answer is worth 100 + 10 × (current correct-answer run);
a wrong answer is worth nothing and resets the run.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ecoscore.core.errors import (
    InvalidAnswerError,
    InvalidQuizQuestionError,
    QuizQuestionNotFoundError,
    StoreUnavailableError,
)
from ecoscore.models.quiz import QuizQuestion
from ecoscore.services.achievements import Achievement, evaluate_achievements
from ecoscore.services.ledger import apply_delta, lock_user, transaction
from ecoscore.services.mail import Mailer

logger = logging.getLogger(__name__)

BASE_ANSWER_POINTS = 100
STREAK_BONUS_PER_ANSWER = 10


@dataclass
class QuestionIn:
    question: str
    options: list[str]
    correct_answer_index: int
    explanation: Optional[str] = None
    category: Optional[str] = None


@dataclass
class AnswerResult:
    question_id: int
    correct: bool
    correct_answer_index: int
    explanation: Optional[str]
    points: int
    current_streak: int
    new_achievements: list[Achievement] = field(default_factory=list)


@dataclass
class GameResult:
    game_id: str
    score: int
    games_played: int
    best_score: int
    new_achievements: list[Achievement] = field(default_factory=list)


def answer_points(current_streak: int) -> int:
    return BASE_ANSWER_POINTS + STREAK_BONUS_PER_ANSWER * current_streak


# ---------------------------------------------------------------------------
# Question bank
# ---------------------------------------------------------------------------

def _validate(index: int, q: QuestionIn) -> None:
    if not q.question or not q.question.strip():
        raise InvalidQuizQuestionError(index, "missing or empty 'question'")
    if len(q.options) < 2:
        raise InvalidQuizQuestionError(index, "'options' must contain at least 2 items")
    if not 0 <= q.correct_answer_index < len(q.options):
        raise InvalidQuizQuestionError(index, "'correct_answer_index' is outside the options")


def upload_questions(db: Session, questions: list[QuestionIn]) -> list[QuizQuestion]:
    """Validate every question first, then insert all of them or none."""
    for i, q in enumerate(questions):
        _validate(i, q)

    rows = []
    with transaction(db, "quiz upload"):
        for q in questions:
            row = QuizQuestion(
                question=q.question.strip(),
                correct_answer_index=q.correct_answer_index,
                explanation=q.explanation,
                category=q.category,
            )
            row.options = q.options
            db.add(row)
            rows.append(row)
    for row in rows:
        db.refresh(row)
    logger.info("Uploaded %d quiz questions", len(rows))
    return rows


def list_questions(db: Session, limit: int = 5, category: Optional[str] = None) -> list[QuizQuestion]:
    q = db.query(QuizQuestion)
    if category:
        q = q.filter(QuizQuestion.category == category)
    return q.order_by(QuizQuestion.id).limit(limit).all()


# ---------------------------------------------------------------------------
# Answers & games
# ---------------------------------------------------------------------------

def _evaluate_after(db: Session, user_id: str, mailer: Optional[Mailer], today: Optional[date]):
    try:
        return evaluate_achievements(db, user_id, mailer=mailer, today=today)
    except StoreUnavailableError:
        logger.warning("Achievement evaluation deferred for %s", user_id)
        return []


def submit_quiz_answer(
    db: Session,
    user_id: str,
    question_id: int,
    answer_index: int,
    mailer: Optional[Mailer] = None,
    today: Optional[date] = None,
) -> AnswerResult:
    with transaction(db, "quiz answer"):
        question = db.get(QuizQuestion, question_id)
        if question is None:
            raise QuizQuestionNotFoundError(question_id)
        options = question.options
        if not 0 <= answer_index < len(options):
            raise InvalidAnswerError(question_id, answer_index, len(options))

        user = lock_user(db, user_id)
        correct = answer_index == question.correct_answer_index
        user.quiz_answered = (user.quiz_answered or 0) + 1
        if correct:
            points = answer_points(user.quiz_current_streak or 0)
            user.quiz_correct = (user.quiz_correct or 0) + 1
            user.quiz_current_streak = (user.quiz_current_streak or 0) + 1
            user.quiz_best_streak = max(user.quiz_best_streak or 0, user.quiz_current_streak)
            apply_delta(user, points, today)
        else:
            points = 0
            user.quiz_current_streak = 0
        streak = user.quiz_current_streak
        correct_index = question.correct_answer_index
        explanation = question.explanation

    awarded = _evaluate_after(db, user_id, mailer, today)
    return AnswerResult(
        question_id=question_id,
        correct=correct,
        correct_answer_index=correct_index,
        explanation=explanation,
        points=points,
        current_streak=streak,
        new_achievements=awarded,
    )


def record_game_score(
    db: Session,
    user_id: str,
    game_id: str,
    score: int,
    mailer: Optional[Mailer] = None,
    today: Optional[date] = None,
) -> GameResult:
    with transaction(db, "game score"):
        user = lock_user(db, user_id)
        user.games_played = (user.games_played or 0) + 1
        user.game_best_score = max(user.game_best_score or 0, score)
        apply_delta(user, score, today)
        played, best = user.games_played, user.game_best_score

    logger.info("User %s finished %s with %d points", user_id, game_id, score)
    awarded = _evaluate_after(db, user_id, mailer, today)
    return GameResult(
        game_id=game_id,
        score=score,
        games_played=played,
        best_score=best,
        new_achievements=awarded,
    )
