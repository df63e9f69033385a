"""
Daily entry schemas.

PUT /entries/{user_id}/{day}   → EntryUpsertRequest → EntryUpsertResponse
GET /entries/{user_id}         → list[EntryOut]
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from ecoscore.schemas.common import AchievementOut


class ImpactVector(BaseModel):
    """Environmental impact as estimated upstream. Values are stored unchecked."""
    co2: float = 0.0
    water: float = 0.0
    energy: float = 0.0
    waste: float = 0.0
    food: float = 0.0


class EntryUpsertRequest(BaseModel):
    text: Annotated[str, Field(
        max_length=10_000,
        description="Free-text journal entry for the day.",
        examples=["Biked to work and skipped meat at lunch"],
    )]
    impact: ImpactVector = Field(default_factory=ImpactVector)
    points: int = Field(description="Points computed upstream from the impact; may be negative.")
    comment: str = Field(default="", description="AI-generated feedback comment.")
    actions: Optional[list[str]] = Field(default=None, description="Discrete actions taken.")


class EntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    date: str
    raw_text: str
    impact: ImpactVector
    points: int
    ai_comment: str
    actions: Optional[list[str]] = None
    created_at: Optional[str] = None
    last_modified: Optional[str] = None


class EntryUpsertResponse(BaseModel):
    entry: EntryOut
    created: bool = Field(description="False when an existing same-day entry was revised.")
    delta: int = Field(description="Net change applied to the user's points.")
    new_achievements: list[AchievementOut] = Field(default_factory=list)


class ImpactComparisonResponse(BaseModel):
    current: ImpactVector = Field(description="Sum over the 7 most recent entries.")
    previous: ImpactVector = Field(description="Sum over the 7 entries before those.")


class StreakResponse(BaseModel):
    user_id: str
    streak: int
    as_of: date
