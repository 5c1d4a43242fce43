"""Decide a scan's status from the student's weekend assignment.

Pure functions over already-fetched data; no repository access here.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..catalog.model import ClassSession
from ..core.enums import AttendanceStatus
from ..core.exceptions import InvalidStateError
from ..students.model import Student


@dataclass(frozen=True)
class Classification:
    status: AttendanceStatus
    expected_session_id: int | None = None


def classify(student: Student, target: ClassSession) -> Classification:
    """PRESENT in the assigned slot for the target's day, WRONG_SESSION in any other.

    A student without an assignment for that day cannot be recorded.
    """

    assigned = student.assigned_session_id(target.day)
    if assigned is None:
        raise InvalidStateError(
            f"{student.display_name} is not enrolled in a {target.day.value.title()} session"
        )

    if assigned == target.session_id:
        return Classification(status=AttendanceStatus.PRESENT, expected_session_id=assigned)
    return Classification(status=AttendanceStatus.WRONG_SESSION, expected_session_id=assigned)


def describe(status: AttendanceStatus, *, expected: ClassSession | None = None, created: bool = True) -> str:
    """Short UI message for an outcome."""

    if not created:
        return f"Already marked ({status.value.replace('_', ' ').lower()})"
    if status == AttendanceStatus.PRESENT:
        return "Marked present"
    if status == AttendanceStatus.ABSENT:
        return "Marked absent"
    if expected is not None:
        return f"Wrong session: expected {expected.describe()}"
    return "Wrong session"
