import json
from datetime import datetime, date as calendar_date
from sqlalchemy import Integer, String, Text, Float, DateTime, Date, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from ecoscore.db.base import Base

IMPACT_FIELDS = ("co2", "water", "energy", "waste", "food")


class DailyEntry(Base):
    """
    One journal entry per (user_id, date).

    Uniqueness is enforced by query-before-write under the user's row lock,
    not by a constraint. Revisions overwrite the row in place.
    """

    __tablename__ = "daily_entries"
    __table_args__ = (
        Index("ix_daily_entries_user_date", "user_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    date: Mapped[calendar_date] = mapped_column(Date, nullable=False)
    raw_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    co2: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    water: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    energy: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    waste: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    food: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ai_comment: Mapped[str] = mapped_column(Text, nullable=False, default="")
    actions_json: Mapped[str | None] = mapped_column(
        "actions", Text, nullable=True,
        comment="JSON array of discrete action strings",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_modified: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def impact(self) -> dict[str, float]:
        return {f: getattr(self, f) for f in IMPACT_FIELDS}

    @property
    def actions(self) -> list[str] | None:
        if self.actions_json is None:
            return None
        return json.loads(self.actions_json)

    @actions.setter
    def actions(self, value: list[str] | None) -> None:
        self.actions_json = None if value is None else json.dumps(list(value))
