"""
UserAggregate — the per-user ledger row.

total_points / weekly_points are only ever changed inside a transaction that
holds this row's lock (see `ecoscore.services.ledger`).

List-valued columns (badges, earned_achievement_ids, friend_ids) are
JSON-encoded Text. Always assign a new list through the properties; never
mutate the decoded list in place.
"""
import json
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Date, func
from sqlalchemy.orm import Mapped, mapped_column

from ecoscore.db.base import Base


def _load(raw: str | None) -> list:
    if not raw:
        return []
    return list(json.loads(raw))


class UserAggregate(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False, default="", index=True)
    email: Mapped[str] = mapped_column(String(256), nullable=False, default="")

    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)
    weekly_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_weekly_reset: Mapped[date | None] = mapped_column(
        Date, nullable=True,
        comment="Monday that starts the week window weekly_points belongs to",
    )

    badges_json: Mapped[str] = mapped_column("badges", Text, nullable=False, default="[]")
    earned_achievements_json: Mapped[str] = mapped_column(
        "earned_achievement_ids", Text, nullable=False, default="[]",
    )
    friends_json: Mapped[str] = mapped_column("friend_ids", Text, nullable=False, default="[]")

    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Quiz / mini-game auxiliary stats
    quiz_answered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quiz_correct: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quiz_current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quiz_best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    game_best_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def badges(self) -> list[str]:
        return _load(self.badges_json)

    @badges.setter
    def badges(self, value: list[str]) -> None:
        self.badges_json = json.dumps(list(value))

    @property
    def earned_achievement_ids(self) -> list[str]:
        return _load(self.earned_achievements_json)

    @earned_achievement_ids.setter
    def earned_achievement_ids(self, value: list[str]) -> None:
        self.earned_achievements_json = json.dumps(list(value))

    @property
    def friend_ids(self) -> list[str]:
        return _load(self.friends_json)

    @friend_ids.setter
    def friend_ids(self, value: list[str]) -> None:
        self.friends_json = json.dumps(list(value))
