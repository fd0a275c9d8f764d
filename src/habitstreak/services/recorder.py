"""Completion recorder: the only writer of habit logs."""

from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from ..domain.repositories.habit_log import HabitLogStore
from ..errors import NegativeProgressError
from ..logging_config import get_logger
from ..models.enums import Frequency
from ..models.habit import Habit, HabitLog
from .periods import as_utc, period_key, period_keys

logger = get_logger(__name__)


class HabitLockRegistry:
    """One mutex per habit id so writes to the same habit never interleave.

    Locks are held weakly: an entry disappears once no writer references it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[int, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, habit_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(habit_id)
            if lock is None:
                lock = self._locks[habit_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, habit_id: int) -> Iterator[None]:
        with self.lock_for(habit_id):
            yield


class CompletionRecorder:
    """Append one +1 / -1 log per user action.

    With ``strict_undo`` an undo is refused while the current period's
    progress is already zero or below; otherwise the undo is written as is
    and progress can drop below zero.
    """

    def __init__(
        self,
        store: HabitLogStore,
        *,
        strict_undo: bool = False,
        locks: HabitLockRegistry | None = None,
    ):
        self.store = store
        self.strict_undo = strict_undo
        self.locks = locks if locks is not None else HabitLockRegistry()

    def record_completion(self, habit: Habit, now: datetime, decrease: bool = False) -> HabitLog:
        """Append a single log for ``habit`` stamped with the period keys of ``now``.

        Raises:
            NegativeProgressError: ``decrease`` in strict mode with no progress to undo
            StoreUnavailable: the append failed; it is not retried here
        """
        stamped_at = as_utc(now)
        daily_key, weekly_key, monthly_key = period_keys(stamped_at)

        with self.locks.hold(habit.id):
            if decrease and self.strict_undo:
                frequency = Frequency.parse(habit.frequency)
                progress = self.store.sum_values_for_period(
                    habit.id, frequency, period_key(frequency, stamped_at)
                )
                if progress <= 0:
                    raise NegativeProgressError(habit.id, progress)

            log = HabitLog(
                habit_id=habit.id,
                timestamp=stamped_at,
                daily_key=daily_key,
                weekly_key=weekly_key,
                monthly_key=monthly_key,
                value=-1 if decrease else 1,
                target=habit.effective_target,
            )
            saved = self.store.append_log(log)

        logger.info(
            "Recorded habit progress",
            extra={"habit_id": habit.id, "value": saved.value, "daily_key": daily_key},
        )
        return saved


__all__ = ["CompletionRecorder", "HabitLockRegistry"]
