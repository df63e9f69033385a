"""
Quiz router.

POST /quiz/questions    — upload a batch of questions (all or nothing)
GET  /quiz/questions    — questions for a round (answers hidden)
POST /quiz/answers      — answer one question
POST /quiz/games        — record a finished mini-game
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ecoscore.db.base import get_db
from ecoscore.models.quiz import QuizQuestion
from ecoscore.schemas.common import ERROR_RESPONSES, AchievementOut
from ecoscore.schemas.quiz import (
    AnswerRequest,
    AnswerResponse,
    GameScoreRequest,
    GameScoreResponse,
    QuestionIn,
    QuestionOut,
)
from ecoscore.services import quiz as quiz_service
from ecoscore.services.mail import Mailer, get_mailer

router = APIRouter(prefix="/quiz", tags=["quiz"])


def _question_to_out(q: QuizQuestion) -> QuestionOut:
    return QuestionOut(id=q.id, question=q.question, options=q.options, category=q.category)


@router.post(
    "/questions",
    response_model=list[QuestionOut],
    status_code=status.HTTP_201_CREATED,
    summary="Upload quiz questions",
)
def upload(payload: list[QuestionIn], db: Session = Depends(get_db)):
    """Every question needs text, at least 2 options and an in-range correct index."""
    rows = quiz_service.upload_questions(
        db, [quiz_service.QuestionIn(**q.model_dump()) for q in payload]
    )
    return [_question_to_out(q) for q in rows]


@router.get("/questions", response_model=list[QuestionOut])
def questions(
    limit: int = Query(default=5, ge=1, le=50),
    category: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    return [_question_to_out(q) for q in quiz_service.list_questions(db, limit=limit, category=category)]


@router.post(
    "/answers",
    response_model=AnswerResponse,
    summary="Answer a quiz question",
    responses={**ERROR_RESPONSES},
)
def answer(payload: AnswerRequest, db: Session = Depends(get_db), mailer: Mailer = Depends(get_mailer)):
    """Correct answers earn 100 points plus 10 per answer in the current correct run."""
    r = quiz_service.submit_quiz_answer(
        db, payload.user_id, payload.question_id, payload.answer_index, mailer=mailer
    )
    return AnswerResponse(
        question_id=r.question_id,
        correct=r.correct,
        correct_answer_index=r.correct_answer_index,
        explanation=r.explanation,
        points=r.points,
        current_streak=r.current_streak,
        new_achievements=[AchievementOut.model_validate(a) for a in r.new_achievements],
    )


@router.post(
    "/games",
    response_model=GameScoreResponse,
    summary="Record a finished mini-game",
    responses={**ERROR_RESPONSES},
)
def game(payload: GameScoreRequest, db: Session = Depends(get_db), mailer: Mailer = Depends(get_mailer)):
    r = quiz_service.record_game_score(db, payload.user_id, payload.game_id, payload.score, mailer=mailer)
    return GameScoreResponse(
        game_id=r.game_id,
        score=r.score,
        games_played=r.games_played,
        best_score=r.best_score,
        new_achievements=[AchievementOut.model_validate(a) for a in r.new_achievements],
    )
