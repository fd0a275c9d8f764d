"""Repository protocol definitions for domain layer."""

from .habit import HabitRepository
from .habit_log import HabitLogStore, PeriodLogReader

__all__ = [
    "HabitLogStore",
    "HabitRepository",
    "PeriodLogReader",
]
