"""Evaluate many habits from one bulk log read.

Callers fetch every log for the habit set once (``bulk_fetch_logs``), and the
batch evaluator groups them by habit id and runs the single-habit rules over
that in-memory index, so the number of store round trips does not grow with
the number of habits.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Mapping, Sequence

from ..logging_config import get_logger
from ..models.enums import Frequency
from ..models.habit import Habit, HabitLog
from .progress import HabitEvaluator, HabitProgress

logger = get_logger(__name__)


class ViewMode(str, Enum):
    """Whether a batch keeps only today's habits or every habit it was given."""

    TODAY = "today"
    ALL = "all"


def group_logs_by_habit(logs: Iterable[HabitLog]) -> dict[int, list[HabitLog]]:
    """Group a flat log list into ``{habit_id: [logs...]}`` in one pass."""

    grouped: dict[int, list[HabitLog]] = defaultdict(list)
    for log in logs:
        grouped[log.habit_id].append(log)
    return dict(grouped)


class LogIndex:
    """In-memory period reader over pre-fetched logs; never touches the store."""

    def __init__(self, logs_by_habit: Mapping[int, Sequence[HabitLog]]):
        self._logs_by_habit = logs_by_habit

    @classmethod
    def from_logs(cls, logs: Iterable[HabitLog]) -> "LogIndex":
        return cls(group_logs_by_habit(logs))

    def logs_for(self, habit_id: int) -> Sequence[HabitLog]:
        return self._logs_by_habit.get(habit_id, ())

    def sum_values_for_period(self, habit_id: int, frequency: Frequency, period_key: int) -> int:
        return sum(
            log.value for log in self.logs_for(habit_id) if log.key_for(frequency) == period_key
        )

    def distinct_period_keys_desc(self, habit_id: int, frequency: Frequency) -> list[int]:
        return sorted({log.key_for(frequency) for log in self.logs_for(habit_id)}, reverse=True)


class BatchEvaluator:
    """Computes progress, streak, completion and visibility for a habit set."""

    def evaluate(
        self,
        habits: Sequence[Habit],
        logs: Iterable[HabitLog],
        now: datetime | date,
        *,
        mode: ViewMode = ViewMode.TODAY,
    ) -> list[HabitProgress]:
        """Evaluate ``habits`` against a flat list of their logs.

        Args:
            habits: Habits to evaluate, in the order results should come back
            logs: Every log for those habits, typically from ``bulk_fetch_logs``
            now: Evaluation instant
            mode: ``TODAY`` drops habits that should not appear today

        Returns:
            One ``HabitProgress`` per retained habit, permissions unset
        """
        return self.evaluate_grouped(habits, group_logs_by_habit(logs), now, mode=mode)

    def evaluate_grouped(
        self,
        habits: Sequence[Habit],
        logs_by_habit: Mapping[int, Sequence[HabitLog]],
        now: datetime | date,
        *,
        mode: ViewMode = ViewMode.TODAY,
    ) -> list[HabitProgress]:
        evaluator = HabitEvaluator(LogIndex(logs_by_habit))
        results = []
        for habit in habits:
            progress = evaluator.evaluate(habit, now)
            if mode is ViewMode.TODAY and not progress.should_appear_today:
                continue
            results.append(progress)

        logger.debug(
            "Batch evaluated habits",
            extra={"habits": len(habits), "retained": len(results), "mode": mode.value},
        )
        return results


__all__ = ["BatchEvaluator", "LogIndex", "ViewMode", "group_logs_by_habit"]
