"""
Quiz / mini-game schemas.

POST /quiz/questions          → list[QuestionIn]  → list[QuestionOut]
POST /quiz/answers            → AnswerRequest     → AnswerResponse
POST /quiz/games              → GameScoreRequest  → GameScoreResponse
"""
from typing import Annotated, Optional
from pydantic import BaseModel, Field

from ecoscore.schemas.common import AchievementOut


class QuestionIn(BaseModel):
    question: str
    options: list[str]
    correct_answer_index: int
    explanation: Optional[str] = None
    category: Optional[str] = None


class QuestionOut(BaseModel):
    """Question as served to players; the answer is not included."""
    id: int
    question: str
    options: list[str]
    category: Optional[str] = None


class AnswerRequest(BaseModel):
    user_id: str
    question_id: int
    answer_index: int


class AnswerResponse(BaseModel):
    question_id: int
    correct: bool
    correct_answer_index: int
    explanation: Optional[str] = None
    points: int
    current_streak: int
    new_achievements: list[AchievementOut] = Field(default_factory=list)


class GameScoreRequest(BaseModel):
    user_id: str
    game_id: Annotated[str, Field(min_length=1, max_length=64, examples=["carbon-sort"])]
    score: int


class GameScoreResponse(BaseModel):
    game_id: str
    score: int
    games_played: int
    best_score: int
    new_achievements: list[AchievementOut] = Field(default_factory=list)
