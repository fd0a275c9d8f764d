"""Pytest configuration and shared fixtures for habitstreak tests.

Provides an isolated SQLite database per test, the SQLModel repositories
wired to it, and factories for habits and log rows so tests can describe a
completion history without going through the recorder.
"""

from __future__ import annotations

import tempfile
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine

from habitstreak.config import BaseConfig
from habitstreak.infra.database import apply_sqlite_pragmas, create_session_factory
from habitstreak.infra.repositories import SQLModelHabitLogRepository, SQLModelHabitRepository
from habitstreak.models import Habit, HabitLog
from habitstreak.services.periods import as_utc, period_keys
from habitstreak.services.progress import HabitEvaluator
from habitstreak.services.recorder import CompletionRecorder

# Wednesday of ISO week 24; the week ends on Sunday 2024-06-16.
NOW = datetime(2024, 6, 12, 15, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def days_ago(n: int, *, base: datetime = NOW) -> datetime:
    return base - timedelta(days=n)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    apply_sqlite_pragmas(engine, BaseConfig.SQLITE_PRAGMAS)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Session for arranging test data directly."""
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching what the repositories expect."""
    return create_session_factory(db_engine)


@pytest.fixture
def habit_repo(session_factory) -> SQLModelHabitRepository:
    return SQLModelHabitRepository(session_factory)


@pytest.fixture
def log_repo(session_factory) -> SQLModelHabitLogRepository:
    return SQLModelHabitLogRepository(session_factory, read_attempts=1)


@pytest.fixture
def evaluator(log_repo) -> HabitEvaluator:
    return HabitEvaluator(log_repo)


@pytest.fixture
def recorder(log_repo) -> CompletionRecorder:
    return CompletionRecorder(log_repo)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def habit_factory(db_session):
    """Factory for creating test habits.

    Returns:
        Callable: Function that creates and persists Habit instances
    """

    def _create_habit(
        name: str = "Test Habit",
        frequency: str = "daily",
        goal_type: str = "binary",
        target_value: int | None = None,
        target_type: str = "ongoing",
        streak_target: int | None = None,
        end_date: date | None = None,
        start_date: date | None = None,
        allowed_gaps: int = 0,
        is_archived: bool = False,
        is_private: bool = False,
        user_id: int = 1,
        created_at: datetime | None = None,
    ) -> Habit:
        """Create a test habit; gap tolerance defaults to 0 so streaks are strict."""
        habit = Habit(
            user_id=user_id,
            name=name,
            frequency=frequency,
            goal_type=goal_type,
            target_value=target_value,
            target_type=target_type,
            streak_target=streak_target,
            end_date=end_date,
            start_date=start_date,
            allowed_gaps=allowed_gaps,
            is_archived=is_archived,
            is_private=is_private,
        )
        if created_at is not None:
            habit.created_at = created_at
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        db_session.expunge(habit)
        return habit

    return _create_habit


@pytest.fixture
def log_factory(db_session):
    """Factory for inserting log rows stamped the same way the recorder does."""

    def _create_log(habit: Habit, when: datetime, value: int = 1) -> HabitLog:
        daily_key, weekly_key, monthly_key = period_keys(when)
        log = HabitLog(
            habit_id=habit.id,
            timestamp=as_utc(when),
            daily_key=daily_key,
            weekly_key=weekly_key,
            monthly_key=monthly_key,
            value=value,
            target=habit.effective_target,
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        db_session.expunge(log)
        log.timestamp = as_utc(log.timestamp)
        return log

    return _create_log
