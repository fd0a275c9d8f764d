"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import update
from sqlmodel import select

from ...errors import HabitNotFound
from ...models.habit import Habit
from ..database import SessionFactory


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID regardless of owner."""
        with self.session_factory() as session:
            obj = session.get(Habit, habit_id)
            if obj:
                session.expunge(obj)
            return obj

    def get_owned(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit only if ``user_id`` owns it."""
        with self.session_factory() as session:
            obj = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_for_owner(self, *, user_id: int, archived: bool = False) -> list[Habit]:
        """List a user's habits filtered by archive state."""
        with self.session_factory() as session:
            statement = (
                select(Habit)
                .where(Habit.user_id == user_id)
                .where(Habit.is_archived == archived)
                .order_by(Habit.name, Habit.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_by_ids(self, habit_ids: Iterable[int], *, include_archived: bool = False) -> list[Habit]:
        """List habits by id, ordered by id."""
        ids = sorted(set(habit_ids))
        if not ids:
            return []
        with self.session_factory() as session:
            statement = select(Habit).where(Habit.id.in_(ids))  # type: ignore[union-attr]
            if not include_archived:
                statement = statement.where(Habit.is_archived == False)  # noqa: E712
            rows = list(session.exec(statement.order_by(Habit.id)).all())  # type: ignore[arg-type]
            session.expunge_all()
            return rows

    def list_for_owners(self, user_ids: Iterable[int]) -> list[Habit]:
        """List non-archived habits belonging to any of ``user_ids``."""
        ids = sorted(set(user_ids))
        if not ids:
            return []
        with self.session_factory() as session:
            statement = (
                select(Habit)
                .where(Habit.user_id.in_(ids))  # type: ignore[union-attr]
                .where(Habit.is_archived == False)  # noqa: E712
                .order_by(Habit.user_id, Habit.name, Habit.id)  # type: ignore[arg-type]
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_public(
        self, *, exclude_user_ids: Iterable[int], offset: int, limit: int
    ) -> list[Habit]:
        """Page through non-private, non-archived habits, newest first."""
        excluded = sorted(set(exclude_user_ids))
        with self.session_factory() as session:
            statement = (
                select(Habit)
                .where(Habit.is_archived == False)  # noqa: E712
                .where(Habit.is_private == False)  # noqa: E712
            )
            if excluded:
                statement = statement.where(Habit.user_id.not_in(excluded))  # type: ignore[union-attr]
            statement = (
                statement.order_by(Habit.created_at.desc(), Habit.id.desc())  # type: ignore[union-attr]
                .offset(max(0, offset))
                .limit(max(0, limit))
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        with self.session_factory() as session:
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def create_copy(self, copy: Habit, *, source_id: int) -> Habit:
        """Insert ``copy`` and bump the source habit's ``copy_count`` in one transaction."""
        with self.session_factory() as session:
            session.add(copy)
            # Atomic increment; never read-modify-write.
            bumped = session.connection().execute(
                update(Habit)
                .where(Habit.id == source_id)  # type: ignore[arg-type]
                .values(copy_count=Habit.copy_count + 1)
            )
            if bumped.rowcount != 1:
                raise HabitNotFound(source_id)
            session.commit()
            session.refresh(copy)
            session.expunge(copy)
            return copy

    def update(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        with self.session_factory() as session:
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete an owned habit; its logs go with it."""
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
            ).first()
            if habit is None:
                return False
            session.delete(habit)
            session.commit()
            return True
