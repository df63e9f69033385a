from typing import Literal
from pydantic import BaseModel, ConfigDict


class FriendRequestIn(BaseModel):
    from_id: str
    to_id: str


class FriendRequestResponseIn(BaseModel):
    action: Literal["accepted", "declined"]


class FriendRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    from_id: str
    from_name: str
    to_id: str
    status: str
    created_at: str
