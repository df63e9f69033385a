from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class EnsureProfileRequest(BaseModel):
    display_name: str = Field(default="", max_length=128)
    email: str = Field(default="", max_length=256)


class UpdateProfileRequest(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=128)
    email: Optional[str] = Field(default=None, max_length=256)
    email_notifications: Optional[bool] = None


class PrivacyRequest(BaseModel):
    is_private: bool


class QuizStatsOut(BaseModel):
    answered: int
    correct: int
    current_streak: int
    best_streak: int


class GameStatsOut(BaseModel):
    played: int
    best_score: int


class UserProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    email: str
    total_points: int
    weekly_points: int = Field(description="Points in the current week window.")
    badges: list[str]
    earned_achievement_ids: list[str]
    friend_ids: list[str]
    is_private: bool
    email_notifications: bool
    quiz_stats: QuizStatsOut
    game_stats: GameStatsOut


class LeaderboardRow(BaseModel):
    rank: int
    user_id: str
    display_name: str
    points: int
    badges: int
