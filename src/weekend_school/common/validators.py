from __future__ import annotations

from typing import Any

from ..core.constants import MAX_NOTE_LENGTH
from ..core.enums import AttendanceStatus, WeekDay
from ..core.exceptions import ValidationError


def require_non_empty(value: str | None, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_positive_int(value: Any, field_name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}")
    if number <= 0:
        raise ValidationError(f"Invalid {field_name}")
    return number


def require_status(value: Any, *, allowed: set[AttendanceStatus] | None = None) -> AttendanceStatus:
    try:
        status = AttendanceStatus(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError("Invalid attendance status")
    if allowed is not None and status not in allowed:
        choices = ", ".join(sorted(s.value for s in allowed))
        raise ValidationError(f"Status must be one of: {choices}")
    return status


def require_weekday(value: Any) -> WeekDay:
    try:
        return WeekDay(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError("Day must be SATURDAY or SUNDAY")


def optional_note(value: Any) -> str | None:
    note = str(value or "").strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(f"Note must be at most {MAX_NOTE_LENGTH} characters")
    return note or None
