"""Habit log store protocols."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol

from ...models.enums import Frequency
from ...models.habit import HabitLog


class PeriodLogReader(Protocol):
    """Per-habit period reads used by the evaluators."""

    def sum_values_for_period(
        self, habit_id: int, frequency: Frequency, period_key: int
    ) -> int:  # pragma: no cover - interface
        """Sum of log values whose ``frequency`` key equals ``period_key`` (0 when none)."""
        ...

    def distinct_period_keys_desc(
        self, habit_id: int, frequency: Frequency
    ) -> list[int]:  # pragma: no cover - interface
        """Distinct ``frequency`` keys the habit has logs in, newest first."""
        ...


class HabitLogStore(PeriodLogReader, Protocol):
    """Append-only store for habit logs."""

    def append_log(self, log: HabitLog) -> HabitLog:  # pragma: no cover - interface
        """Persist one new log row."""
        ...

    def bulk_fetch_logs(
        self, habit_ids: Iterable[int]
    ) -> list[HabitLog]:  # pragma: no cover - interface
        """Return every log for the given habits in a single read."""
        ...

    def list_logs_between(
        self, habit_id: int, start: datetime, end: datetime
    ) -> list[HabitLog]:  # pragma: no cover - interface
        """Logs of one habit with ``start <= timestamp <= end``, newest first."""
        ...
