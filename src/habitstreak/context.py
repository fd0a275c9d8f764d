"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import SQLModelHabitLogRepository, SQLModelHabitRepository
from .services.batch import BatchEvaluator
from .services.habits import HabitService
from .services.progress import HabitEvaluator
from .services.recorder import CompletionRecorder
from .services.views import HabitViews


@dataclass
class AppContext:
    """Wired-up repositories and services sharing one engine."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory

    habit_repo: SQLModelHabitRepository
    log_repo: SQLModelHabitLogRepository

    evaluator: HabitEvaluator
    batch: BatchEvaluator
    recorder: CompletionRecorder
    habits: HabitService
    views: HabitViews


def create_app_context(config: Optional[BaseConfig] = None) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    habit_repo = SQLModelHabitRepository(session_factory)
    log_repo = SQLModelHabitLogRepository(
        session_factory, read_attempts=config.STORE_READ_ATTEMPTS
    )
    batch = BatchEvaluator()
    recorder = CompletionRecorder(log_repo, strict_undo=config.STRICT_UNDO)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        habit_repo=habit_repo,
        log_repo=log_repo,
        evaluator=HabitEvaluator(log_repo),
        batch=batch,
        recorder=recorder,
        habits=HabitService(habit_repo, log_repo, recorder),
        views=HabitViews(
            habit_repo, log_repo, batch, public_page_size=config.PUBLIC_PAGE_SIZE
        ),
    )
