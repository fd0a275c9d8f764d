"""Progress, streak and visibility for a single habit."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional

from ..domain.repositories.habit_log import PeriodLogReader
from ..models.enums import Frequency
from ..models.habit import Habit
from .periods import is_last_day_of_period, period_key, previous_period_key, utc_date


@dataclass(frozen=True, slots=True)
class HabitProgress:
    """Evaluated state of a habit at one instant, plus caller-attached permissions."""

    habit_id: int
    user_id: int
    name: str
    description: str
    frequency: str
    goal_type: str
    target_value: Optional[int]
    target_type: str
    streak_target: Optional[int]
    end_date: Optional[date]
    current_value: int
    streak: int
    is_completed: bool
    should_appear_today: bool
    copy_count: int = 0
    is_owned: bool = False
    can_manage_progress: bool = False

    @classmethod
    def from_habit(
        cls,
        habit: Habit,
        *,
        current_value: int,
        streak: int,
        is_completed: bool,
        should_appear_today: bool,
    ) -> "HabitProgress":
        return cls(
            habit_id=habit.id,
            user_id=habit.user_id,
            name=habit.name,
            description=habit.description,
            frequency=habit.frequency,
            goal_type=habit.goal_type,
            target_value=habit.target_value,
            target_type=habit.target_type,
            streak_target=habit.streak_target,
            end_date=habit.end_date,
            current_value=current_value,
            streak=streak,
            is_completed=is_completed,
            should_appear_today=should_appear_today,
            copy_count=habit.copy_count,
        )

    @property
    def state(self) -> tuple[int, int, bool, bool]:
        """The computed part: (progress, streak, completed, should_appear_today)."""
        return (self.current_value, self.streak, self.is_completed, self.should_appear_today)

    def with_permissions(self, *, is_owned: bool, can_manage_progress: bool) -> "HabitProgress":
        return replace(self, is_owned=is_owned, can_manage_progress=can_manage_progress)


def compute_streak(
    period_keys: Iterable[int],
    frequency: Frequency | str,
    now: datetime | date,
    allowed_gaps: int,
) -> int:
    """Count consecutive periods ending at ``now``, tolerating up to ``allowed_gaps`` misses.

    ``period_keys`` must be distinct and sorted newest first. Each key is
    compared against successively older expected periods; every mismatch
    spends one gap, a match resets the budget. The walk stops as soon as
    more than ``allowed_gaps`` consecutive periods are missing.
    """
    freq = Frequency.parse(frequency)
    expected = period_key(freq, now)
    streak = 0
    gaps = 0
    for key in period_keys:
        while key != expected:
            gaps += 1
            if gaps > allowed_gaps:
                return streak
            expected = previous_period_key(freq, expected)
        streak += 1
        gaps = 0
        expected = previous_period_key(freq, expected)
    return streak


def effective_allowed_gaps(habit: Habit, frequency: Frequency) -> int:
    """Gap tolerance only applies to daily streaks."""
    if frequency is Frequency.DAILY:
        return max(0, habit.allowed_gaps or 0)
    return 0


class HabitEvaluator:
    """Answers "what is this habit's state right now" from a period log reader.

    The reader is the log store itself for one-off lookups, or an in-memory
    ``LogIndex`` when many habits are evaluated from one bulk read.
    """

    def __init__(self, reader: PeriodLogReader):
        self.reader = reader

    def current_progress(self, habit: Habit, now: datetime | date) -> int:
        frequency = Frequency.parse(habit.frequency)
        return self.reader.sum_values_for_period(habit.id, frequency, period_key(frequency, now))

    def is_completed(self, habit: Habit, now: datetime | date) -> bool:
        return self.current_progress(habit, now) >= habit.effective_target

    def calculate_streak(
        self,
        habit: Habit,
        now: datetime | date,
        frequency: Frequency | str | None = None,
    ) -> int:
        """Gap-tolerant streak in ``frequency`` periods (defaults to the habit's own)."""
        freq = Frequency.parse(frequency if frequency is not None else habit.frequency)
        keys = self.reader.distinct_period_keys_desc(habit.id, freq)
        if not keys:
            return 0
        return compute_streak(keys, freq, now, effective_allowed_gaps(habit, freq))

    def has_reached_terminal_completion(self, habit: Habit, now: datetime | date) -> bool:
        # streak_target is counted in days whatever the habit frequency.
        if habit.streak_target is not None:
            if self.calculate_streak(habit, now, Frequency.DAILY) >= habit.streak_target:
                return True
        if habit.end_date is not None and utc_date(now) > habit.end_date:
            return True
        return False

    def should_appear_today(self, habit: Habit, now: datetime | date) -> bool:
        """Whether the habit belongs in the "things to do today" list.

        Weekly and monthly habits stay listed for the whole period even once
        the target is met, and drop out on the period's last day.
        """
        if habit.is_archived:
            return False
        if self.has_reached_terminal_completion(habit, now):
            return False
        today = utc_date(now)
        if habit.start_date is not None and habit.start_date > today:
            return False

        frequency = Frequency.parse(habit.frequency)
        if frequency is Frequency.DAILY:
            return True
        return (
            self.current_progress(habit, now) < habit.effective_target
            or not is_last_day_of_period(frequency, today)
        )

    def evaluate(self, habit: Habit, now: datetime | date) -> HabitProgress:
        progress = self.current_progress(habit, now)
        return HabitProgress.from_habit(
            habit,
            current_value=progress,
            streak=self.calculate_streak(habit, now),
            is_completed=progress >= habit.effective_target,
            should_appear_today=self.should_appear_today(habit, now),
        )


__all__ = [
    "HabitEvaluator",
    "HabitProgress",
    "compute_streak",
    "effective_allowed_gaps",
]
