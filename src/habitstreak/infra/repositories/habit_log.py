"""SQLModel implementation of the habit log store."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, Iterable, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from ...errors import StoreUnavailable
from ...logging_config import get_logger
from ...models.enums import Frequency
from ...models.habit import HabitLog
from ...services.periods import as_utc
from ..database import SessionFactory

logger = get_logger(__name__)

T = TypeVar("T")


def _restore_utc(log: HabitLog) -> HabitLog:
    # SQLite hands DATETIME values back without tzinfo; they were written as UTC.
    log.timestamp = as_utc(log.timestamp)
    return log


class SQLModelHabitLogRepository:
    """Append-only habit log store backed by SQLModel.

    Reads are retried on ``OperationalError`` up to ``read_attempts`` times,
    sleeping ``retry_delay`` seconds before the first retry and doubling after.
    Appends are attempted exactly once: a retried append after an ambiguous
    failure could record the same event twice.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        read_attempts: int = 3,
        retry_delay: float = 0.1,
    ):
        """Initialize with a session factory."""
        self.session_factory = session_factory
        self.read_attempts = max(1, read_attempts)
        self.retry_delay = max(0.0, retry_delay)

    def _read(self, operation: str, query: Callable[[Session], T]) -> T:
        for attempt in range(1, self.read_attempts + 1):
            try:
                with self.session_factory() as session:
                    return query(session)
            except OperationalError as exc:
                if attempt >= self.read_attempts:
                    logger.error(
                        "Log store read failed",
                        extra={"operation": operation, "attempts": attempt},
                    )
                    raise StoreUnavailable(
                        f"{operation} failed after {attempt} attempt(s)"
                    ) from exc
                logger.warning(
                    "Retrying log store read",
                    extra={"operation": operation, "attempt": attempt, "error": str(exc)},
                )
                time.sleep(self.retry_delay * 2 ** (attempt - 1))
        raise AssertionError("unreachable")  # pragma: no cover

    def append_log(self, log: HabitLog) -> HabitLog:
        """Persist one new log row."""
        log.timestamp = as_utc(log.timestamp)
        try:
            with self.session_factory() as session:
                session.add(log)
                session.commit()
                session.refresh(log)
                session.expunge(log)
                return _restore_utc(log)
        except OperationalError as exc:
            raise StoreUnavailable(f"append_log failed for habit {log.habit_id}") from exc

    def sum_values_for_period(self, habit_id: int, frequency: Frequency, period_key: int) -> int:
        """Sum log values for one habit in one period (0 when none match)."""
        column = HabitLog.key_column(frequency)

        def query(session: Session) -> int:
            statement = (
                select(func.coalesce(func.sum(HabitLog.value), 0))
                .where(HabitLog.habit_id == habit_id)
                .where(column == period_key)
            )
            return int(session.exec(statement).one())

        return self._read("sum_values_for_period", query)

    def distinct_period_keys_desc(self, habit_id: int, frequency: Frequency) -> list[int]:
        """Distinct period keys the habit has logs in, newest first."""
        column = HabitLog.key_column(frequency)

        def query(session: Session) -> list[int]:
            statement = (
                select(column)
                .where(HabitLog.habit_id == habit_id)
                .distinct()
                .order_by(column.desc())
            )
            return [int(key) for key in session.exec(statement).all()]

        return self._read("distinct_period_keys_desc", query)

    def bulk_fetch_logs(self, habit_ids: Iterable[int]) -> list[HabitLog]:
        """Return every log belonging to ``habit_ids`` in one query."""
        ids = sorted({habit_id for habit_id in habit_ids if habit_id is not None})
        if not ids:
            return []

        def query(session: Session) -> list[HabitLog]:
            statement = (
                select(HabitLog)
                .where(HabitLog.habit_id.in_(ids))  # type: ignore[union-attr]
                .order_by(HabitLog.habit_id, HabitLog.timestamp, HabitLog.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return [_restore_utc(log) for log in rows]

        return self._read("bulk_fetch_logs", query)

    def list_logs_between(self, habit_id: int, start: datetime, end: datetime) -> list[HabitLog]:
        """Logs of one habit recorded within ``[start, end]``, newest first."""
        lower, upper = as_utc(start), as_utc(end)

        def query(session: Session) -> list[HabitLog]:
            statement = (
                select(HabitLog)
                .where(HabitLog.habit_id == habit_id)
                .where(HabitLog.timestamp >= lower)
                .where(HabitLog.timestamp <= upper)
                .order_by(HabitLog.timestamp.desc(), HabitLog.id.desc())  # type: ignore[union-attr]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return [_restore_utc(log) for log in rows]

        return self._read("list_logs_between", query)
