"""Habit repository protocol."""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from ...models.habit import Habit


class HabitRepository(Protocol):
    """Repository for managing habit definitions."""

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID regardless of owner."""
        ...

    def get_owned(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit only if ``user_id`` owns it."""
        ...

    def list_for_owner(self, *, user_id: int, archived: bool = False) -> list[Habit]:
        """List a user's habits filtered by archive state."""
        ...

    def list_by_ids(self, habit_ids: Iterable[int], *, include_archived: bool = False) -> list[Habit]:
        """List habits by id."""
        ...

    def list_for_owners(self, user_ids: Iterable[int]) -> list[Habit]:
        """List non-archived habits belonging to any of ``user_ids``."""
        ...

    def list_public(
        self, *, exclude_user_ids: Iterable[int], offset: int, limit: int
    ) -> list[Habit]:
        """Page through non-private, non-archived habits newest first."""
        ...

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        ...

    def create_copy(self, copy: Habit, *, source_id: int) -> Habit:
        """Create ``copy`` and increment the source's ``copy_count`` atomically.

        Raises ``HabitNotFound`` (and keeps nothing) when the source is gone.
        """
        ...

    def update(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        ...

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete an owned habit and its logs."""
        ...
