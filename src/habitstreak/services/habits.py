"""Habit lifecycle: create, edit, archive, copy and record progress."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from ..domain.repositories.habit import HabitRepository
from ..domain.repositories.habit_log import HabitLogStore
from ..errors import HabitNotFound, HabitPermissionError, HabitValidationError
from ..logging_config import get_logger
from ..models.enums import Frequency, GoalType, TargetType, parse_choice
from ..models.habit import Habit, HabitLog
from .periods import utc_date
from .recorder import CompletionRecorder

logger = get_logger(__name__)


@dataclass
class HabitDraft:
    """User-supplied habit definition, validated before it reaches the store."""

    name: str
    frequency: str = Frequency.DAILY.value
    goal_type: str = GoalType.BINARY.value
    target_value: Optional[int] = None
    target_type: str = TargetType.ONGOING.value
    streak_target: Optional[int] = None
    end_date: Optional[date] = None
    start_date: Optional[date] = None
    allowed_gaps: int = 1
    description: str = ""
    is_private: bool = False


def validate_draft(draft: HabitDraft) -> HabitDraft:
    """Return a normalized copy of ``draft`` or raise ``HabitValidationError``.

    Raises ``InvalidFrequency`` for an unknown frequency.
    """

    name = (draft.name or "").strip()
    if not name:
        raise HabitValidationError("Habit name is required.")
    if len(name) > 80:
        raise HabitValidationError("Habit name must be at most 80 characters.")

    frequency = Frequency.parse(draft.frequency)
    goal_type = parse_choice(GoalType, draft.goal_type, "goal type")
    target_type = parse_choice(TargetType, draft.target_type, "target type")

    if goal_type is GoalType.NUMERIC and (draft.target_value is None or draft.target_value < 1):
        raise HabitValidationError("Numeric habits need a target value of at least 1.")
    if goal_type is GoalType.BINARY and draft.target_value not in (None, 1):
        raise HabitValidationError("Binary habits have a fixed target of 1.")
    if draft.streak_target is not None and draft.streak_target < 1:
        raise HabitValidationError("Streak target must be at least 1.")
    if target_type is TargetType.STREAK and draft.streak_target is None:
        raise HabitValidationError("Streak habits need a streak target.")
    if target_type is TargetType.END_DATE and draft.end_date is None:
        raise HabitValidationError("End-date habits need an end date.")
    if draft.allowed_gaps is None or draft.allowed_gaps < 0:
        raise HabitValidationError("Allowed gaps cannot be negative.")
    if draft.start_date and draft.end_date and draft.end_date < draft.start_date:
        raise HabitValidationError("End date cannot be before the start date.")

    return HabitDraft(
        name=name,
        frequency=frequency.value,
        goal_type=goal_type.value,
        target_value=draft.target_value,
        target_type=target_type.value,
        streak_target=draft.streak_target,
        end_date=draft.end_date,
        start_date=draft.start_date,
        allowed_gaps=draft.allowed_gaps,
        description=(draft.description or "").strip(),
        is_private=draft.is_private,
    )


class HabitService:
    """Owner-facing habit operations on top of the habit and log stores."""

    def __init__(
        self,
        habits: HabitRepository,
        logs: HabitLogStore,
        recorder: CompletionRecorder,
    ):
        self.habits = habits
        self.logs = logs
        self.recorder = recorder

    def create_habit(self, user_id: int, draft: HabitDraft, *, now: datetime | None = None) -> Habit:
        """Create a habit; the start date defaults to today."""
        clean = validate_draft(draft)
        today = utc_date(now or datetime.now(timezone.utc))
        habit = Habit(
            user_id=user_id,
            name=clean.name,
            description=clean.description,
            frequency=clean.frequency,
            goal_type=clean.goal_type,
            target_value=clean.target_value,
            target_type=clean.target_type,
            streak_target=clean.streak_target,
            end_date=clean.end_date,
            start_date=clean.start_date or today,
            allowed_gaps=clean.allowed_gaps,
            is_private=clean.is_private,
        )
        created = self.habits.create(habit)
        logger.info("Created habit", extra={"habit_id": created.id, "user_id": user_id})
        return created

    def update_habit(self, user_id: int, habit_id: int, draft: HabitDraft) -> Habit:
        """Replace an owned habit's definition. Archived habits are read-only."""
        habit = self._require_owned(user_id, habit_id)
        if habit.is_archived:
            raise HabitPermissionError("Archived habits cannot be edited.")

        clean = validate_draft(draft)
        habit.name = clean.name
        habit.description = clean.description
        habit.frequency = clean.frequency
        habit.goal_type = clean.goal_type
        habit.target_value = clean.target_value
        habit.target_type = clean.target_type
        habit.streak_target = clean.streak_target
        habit.end_date = clean.end_date
        habit.allowed_gaps = clean.allowed_gaps
        habit.is_private = clean.is_private
        if clean.start_date is not None:
            habit.start_date = clean.start_date
        return self.habits.update(habit)

    def archive_habit(self, user_id: int, habit_id: int) -> bool:
        """Archive an owned habit; False when missing or already archived."""
        habit = self.habits.get_owned(habit_id, user_id=user_id)
        if habit is None or habit.is_archived:
            return False
        habit.is_archived = True
        self.habits.update(habit)
        logger.info("Archived habit", extra={"habit_id": habit_id, "user_id": user_id})
        return True

    def delete_habit(self, user_id: int, habit_id: int) -> bool:
        """Delete an owned habit together with its logs."""
        deleted = self.habits.delete(habit_id, user_id=user_id)
        if deleted:
            logger.info("Deleted habit", extra={"habit_id": habit_id, "user_id": user_id})
        return deleted

    def copy_habit(self, user_id: int, habit_id: int, *, now: datetime | None = None) -> Habit:
        """Copy another user's public habit and bump the original's copy counter."""
        original = self.habits.get_by_id(habit_id)
        if original is None:
            raise HabitNotFound(habit_id)
        if original.user_id == user_id:
            raise HabitPermissionError("Cannot copy your own habit.")
        if original.is_private:
            raise HabitPermissionError("Cannot copy a private habit.")

        today = utc_date(now or datetime.now(timezone.utc))
        copy = Habit(
            user_id=user_id,
            name=original.name,
            description=original.description,
            frequency=original.frequency,
            goal_type=original.goal_type,
            target_value=original.target_value,
            target_type=original.target_type,
            streak_target=original.streak_target,
            allowed_gaps=original.allowed_gaps,
            start_date=today,
        )
        created = self.habits.create_copy(copy, source_id=original.id)
        logger.info(
            "Copied habit",
            extra={"habit_id": habit_id, "copy_id": created.id, "user_id": user_id},
        )
        return created

    def update_progress(
        self, habit_id: int, decrease: bool = False, *, now: datetime | None = None
    ) -> HabitLog:
        """Record one completion (or undo) for ``habit_id``.

        Access control (owner or approved checker) belongs to the caller.
        """
        habit = self.habits.get_by_id(habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)
        return self.recorder.record_completion(
            habit, now or datetime.now(timezone.utc), decrease=decrease
        )

    def get_logs(
        self, user_id: int, habit_id: int, start: datetime, end: datetime
    ) -> list[HabitLog]:
        """Logs of an owned habit between ``start`` and ``end``, newest first."""
        self._require_owned(user_id, habit_id)
        return self.logs.list_logs_between(habit_id, start, end)

    def _require_owned(self, user_id: int, habit_id: int) -> Habit:
        habit = self.habits.get_owned(habit_id, user_id=user_id)
        if habit is None:
            raise HabitNotFound(habit_id)
        return habit


__all__ = ["HabitDraft", "HabitService", "validate_draft"]
