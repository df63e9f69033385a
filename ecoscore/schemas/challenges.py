from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from ecoscore.models.challenge import Difficulty, ImpactType
from ecoscore.schemas.common import AchievementOut


class HabitIn(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    title: str = Field(min_length=1, max_length=256)
    description: str = Field(default="", max_length=2_000)
    impact_type: ImpactType
    difficulty: Difficulty


class ChallengeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    impact_type: str
    target: int
    points_reward: int
    completed: bool
    completed_at: Optional[str] = None


class CompleteChallengeRequest(BaseModel):
    points: Optional[int] = Field(
        default=None,
        description="Points to credit. Defaults to the challenge's reward.",
    )


class CompleteChallengeResponse(BaseModel):
    challenge: ChallengeOut
    points: int
    new_achievements: list[AchievementOut] = Field(default_factory=list)
