"""Habit tracking data structures."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from .enums import Frequency

PERIOD_KEY_FIELDS = {
    Frequency.DAILY: "daily_key",
    Frequency.WEEKLY: "weekly_key",
    Frequency.MONTHLY: "monthly_key",
}


class Habit(SQLModel, table=True):
    """A user-owned goal tracked per day, ISO week or month."""

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(nullable=False, index=True)
    name: str = Field(nullable=False, max_length=80, index=True)
    description: str = Field(default="", max_length=255)
    frequency: str = Field(default=Frequency.DAILY.value, max_length=16)
    goal_type: str = Field(default="binary", max_length=16)
    target_value: Optional[int] = Field(default=None)
    target_type: str = Field(default="ongoing", max_length=16)
    streak_target: Optional[int] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    start_date: Optional[date] = Field(default=None)
    allowed_gaps: int = Field(default=1, nullable=False)
    is_archived: bool = Field(default=False, nullable=False, index=True)
    is_private: bool = Field(default=False, nullable=False)
    copy_count: int = Field(default=0, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    logs: list["HabitLog"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship(
            "HabitLog", back_populates="habit", cascade="all, delete-orphan"
        ),
    )

    @property
    def effective_target(self) -> int:
        """Target for the active period; binary habits and unset targets mean 1."""
        return 1 if self.target_value is None else self.target_value


class HabitLog(SQLModel, table=True):
    """One +1/-1 progress event, stamped with all three period keys at write time."""

    __tablename__: ClassVar[str] = "habit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    timestamp: datetime = Field(nullable=False)
    daily_key: int = Field(nullable=False, index=True)
    weekly_key: int = Field(nullable=False, index=True)
    monthly_key: int = Field(nullable=False, index=True)
    value: int = Field(nullable=False)
    target: int = Field(default=1, nullable=False)

    habit: "Habit" = Relationship(
        back_populates="logs",
        sa_relationship=relationship("Habit", back_populates="logs"),
    )

    def key_for(self, frequency: Frequency | str) -> int:
        """Return the stored period key matching ``frequency``."""
        return getattr(self, PERIOD_KEY_FIELDS[Frequency.parse(frequency)])

    @classmethod
    def key_column(cls, frequency: Frequency | str):
        """Return the mapped column holding keys for ``frequency`` (for queries)."""
        return getattr(cls, PERIOD_KEY_FIELDS[Frequency.parse(frequency)])
