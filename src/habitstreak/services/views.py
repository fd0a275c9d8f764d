"""Habit lists for dashboards and feeds, each built from one bulk log read."""

from __future__ import annotations

import time
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Sequence

from ..domain.repositories.habit import HabitRepository
from ..domain.repositories.habit_log import HabitLogStore
from ..errors import HabitNotFound
from ..logging_config import get_logger
from ..models.enums import Frequency
from ..models.habit import Habit, HabitLog
from .batch import BatchEvaluator, ViewMode
from .periods import as_utc
from .progress import HabitEvaluator, HabitProgress

logger = get_logger(__name__)

RECENT_PERIODS = 7


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def recent_window_start(frequency: Frequency | str, now: datetime) -> datetime:
    """Start of the "recent logs" window: 7 days, 7 weeks or 7 months back."""

    freq = Frequency.parse(frequency)
    if freq is Frequency.DAILY:
        return now - timedelta(days=RECENT_PERIODS)
    if freq is Frequency.WEEKLY:
        return now - timedelta(weeks=RECENT_PERIODS)
    year, month0 = divmod(now.year * 12 + now.month - 1 - RECENT_PERIODS, 12)
    # Clamp the day for shorter months (e.g. Mar 31 -> Feb 28).
    day = min(now.day, monthrange(year, month0 + 1)[1])
    return now.replace(year=year, month=month0 + 1, day=day)


@dataclass
class HabitDetail:
    """One habit's evaluated state plus its recent log history."""

    progress: HabitProgress
    recent_logs: list[HabitLog] = field(default_factory=list)


class HabitViews:
    """Assembles habit lists: one habit query, one log query, then pure evaluation.

    Relationship data (friends, check requests) is supplied by the caller;
    this class only decides which habits to load and which flags to attach.
    """

    def __init__(
        self,
        habits: HabitRepository,
        logs: HabitLogStore,
        batch: BatchEvaluator | None = None,
        *,
        public_page_size: int = 20,
    ):
        self.habits = habits
        self.logs = logs
        self.batch = batch or BatchEvaluator()
        self.public_page_size = public_page_size

    def _evaluate(
        self, view: str, habits: Sequence[Habit], now: datetime, mode: ViewMode
    ) -> list[HabitProgress]:
        if not habits:
            logger.info("%s: no habits found", view)
            return []

        started = time.perf_counter()
        logs = self.logs.bulk_fetch_logs(h.id for h in habits)
        logger.info(
            "%s: fetched %d habit logs in %dms", view, len(logs), _elapsed_ms(started)
        )

        started = time.perf_counter()
        results = self.batch.evaluate(habits, logs, now, mode=mode)
        logger.info(
            "%s: processed %d habits (%d kept) in %dms",
            view,
            len(habits),
            len(results),
            _elapsed_ms(started),
        )
        return results

    def all_habits(
        self, user_id: int, *, archived: bool = False, now: datetime | None = None
    ) -> list[HabitProgress]:
        """Every active (or every archived) habit the user owns, unfiltered."""
        now = now or datetime.now(timezone.utc)
        started = time.perf_counter()
        try:
            habits = self.habits.list_for_owner(user_id=user_id, archived=archived)
            results = self._evaluate("all_habits", habits, now, ViewMode.ALL)
        except Exception:
            logger.exception("all_habits failed after %dms for user %s", _elapsed_ms(started), user_id)
            raise
        return [
            r.with_permissions(is_owned=r.user_id == user_id, can_manage_progress=r.user_id == user_id)
            for r in results
        ]

    def today_to_manage(
        self,
        user_id: int,
        check_request_habit_ids: Iterable[int] = (),
        *,
        now: datetime | None = None,
    ) -> list[HabitProgress]:
        """Today's own habits followed by habits the user was asked to check."""
        now = now or datetime.now(timezone.utc)
        started = time.perf_counter()
        try:
            own = self.habits.list_for_owner(user_id=user_id, archived=False)
            own_ids = {h.id for h in own}
            requested = [
                h
                for h in self.habits.list_by_ids(check_request_habit_ids)
                if h.id not in own_ids
            ]
            results = self._evaluate("today_to_manage", own + requested, now, ViewMode.TODAY)
        except Exception:
            logger.exception(
                "today_to_manage failed after %dms for user %s", _elapsed_ms(started), user_id
            )
            raise

        flagged = [
            r.with_permissions(is_owned=r.habit_id in own_ids, can_manage_progress=True)
            for r in results
        ]
        logger.info(
            "today_to_manage completed in %dms for user %s, returned %d habits",
            _elapsed_ms(started),
            user_id,
            len(flagged),
        )
        return flagged

    def friends_today(
        self, user_id: int, friend_user_ids: Iterable[int], *, now: datetime | None = None
    ) -> list[HabitProgress]:
        """Today's habits of connected users; read-only for the viewer."""
        now = now or datetime.now(timezone.utc)
        friend_ids = {uid for uid in friend_user_ids if uid != user_id}
        started = time.perf_counter()
        try:
            habits = self.habits.list_for_owners(friend_ids)
            results = self._evaluate("friends_today", habits, now, ViewMode.TODAY)
        except Exception:
            logger.exception(
                "friends_today failed after %dms for user %s", _elapsed_ms(started), user_id
            )
            raise
        return [r.with_permissions(is_owned=False, can_manage_progress=False) for r in results]

    def public_today(
        self,
        user_id: int,
        excluded_user_ids: Iterable[int] = (),
        *,
        page: int = 1,
        page_size: int | None = None,
        now: datetime | None = None,
    ) -> list[HabitProgress]:
        """A page of other users' public habits for discovery, newest first."""
        now = now or datetime.now(timezone.utc)
        size = max(1, page_size or self.public_page_size)
        excluded = set(excluded_user_ids) | {user_id}
        started = time.perf_counter()
        try:
            habits = self.habits.list_public(
                exclude_user_ids=excluded, offset=(max(1, page) - 1) * size, limit=size
            )
            results = self._evaluate("public_today", habits, now, ViewMode.TODAY)
        except Exception:
            logger.exception(
                "public_today failed after %dms for user %s", _elapsed_ms(started), user_id
            )
            raise
        return [r.with_permissions(is_owned=False, can_manage_progress=False) for r in results]

    def habit_detail(
        self, viewer_id: int, habit_id: int, *, now: datetime | None = None
    ) -> HabitDetail:
        """Single habit evaluated against the store, with its recent logs."""
        now = as_utc(now or datetime.now(timezone.utc))
        habit = self.habits.get_by_id(habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)

        progress = HabitEvaluator(self.logs).evaluate(habit, now)
        owned = habit.user_id == viewer_id
        recent = self.logs.list_logs_between(
            habit_id, recent_window_start(habit.frequency, now), now
        )
        return HabitDetail(
            progress=progress.with_permissions(is_owned=owned, can_manage_progress=owned),
            recent_logs=recent,
        )


__all__ = ["HabitDetail", "HabitViews", "recent_window_start"]
