"""
Shared schema primitives: the error envelope and the achievement summary
embedded in several write responses.
"""
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error envelope returned for all 4xx/5xx responses."""
    model_config = ConfigDict(from_attributes=True)

    code: str = Field(examples=["USER_NOT_FOUND"])
    message: str
    details: Optional[dict[str, Any]] = None


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    404: {"model": ErrorResponse, "description": "Referenced record does not exist."},
    503: {"model": ErrorResponse, "description": "Store unavailable; nothing was written. Retry."},
}


class AchievementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    icon: str
    points_bonus: int
