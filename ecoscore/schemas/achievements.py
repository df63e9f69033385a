from pydantic import BaseModel, Field

from ecoscore.schemas.common import AchievementOut


class AchievementStatusOut(AchievementOut):
    earned: bool


class UserAchievementsResponse(BaseModel):
    user_id: str
    total: int
    unlocked: int
    total_bonus: int = Field(description="Bonus points earned from achievements so far.")
    items: list[AchievementStatusOut]


class EvaluateResponse(BaseModel):
    user_id: str
    new_achievements: list[AchievementOut]
