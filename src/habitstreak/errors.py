"""Exception types raised by the habit engine."""

from __future__ import annotations


class HabitStreakError(Exception):
    """Base class for all engine errors."""


class InvalidFrequency(HabitStreakError, ValueError):
    """A frequency outside daily/weekly/monthly reached the period codec."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid frequency: {value!r}")


class HabitNotFound(HabitStreakError, LookupError):
    """The requested habit does not exist (or is not visible to the caller)."""

    def __init__(self, habit_id: object):
        self.habit_id = habit_id
        super().__init__(f"Habit not found: {habit_id}")


class StoreUnavailable(HabitStreakError, RuntimeError):
    """Transient failure talking to the log store."""


class NegativeProgressError(HabitStreakError, ValueError):
    """An undo was requested while the current period has no progress left."""

    def __init__(self, habit_id: object, progress: int):
        self.habit_id = habit_id
        self.progress = progress
        super().__init__(
            f"Cannot undo progress for habit {habit_id}: current progress is {progress}"
        )


class HabitValidationError(HabitStreakError, ValueError):
    """Habit definition failed validation."""


class HabitPermissionError(HabitStreakError, PermissionError):
    """The caller is not allowed to perform the requested habit operation."""


__all__ = [
    "HabitNotFound",
    "HabitPermissionError",
    "HabitStreakError",
    "HabitValidationError",
    "InvalidFrequency",
    "NegativeProgressError",
    "StoreUnavailable",
]
