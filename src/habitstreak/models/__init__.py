"""SQLModel table exports."""

from .enums import Frequency, GoalType, TargetType
from .habit import Habit, HabitLog

__all__ = [
    "Frequency",
    "GoalType",
    "Habit",
    "HabitLog",
    "TargetType",
]
