"""Closed value sets used by habit definitions."""

from __future__ import annotations

from enum import Enum

from ..errors import HabitValidationError, InvalidFrequency


class Frequency(str, Enum):
    """Calendar period a habit is tracked over."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: "Frequency | str | None") -> "Frequency":
        """Normalize a stored or user-supplied frequency.

        Raises:
            InvalidFrequency: for empty or unrecognized values
        """
        if isinstance(value, cls):
            return value
        if value is None or not str(value).strip():
            raise InvalidFrequency(value)
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidFrequency(value) from None


class GoalType(str, Enum):
    BINARY = "binary"
    NUMERIC = "numeric"


class TargetType(str, Enum):
    ONGOING = "ongoing"
    STREAK = "streak"
    END_DATE = "endDate"


def parse_choice(enum_cls: type[Enum], value: object, field: str) -> Enum:
    """Coerce ``value`` into ``enum_cls`` or raise a validation error naming ``field``."""

    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise HabitValidationError(f"Invalid {field} {value!r}; expected one of: {allowed}") from None
