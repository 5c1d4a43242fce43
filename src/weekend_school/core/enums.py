from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account kind used for authorization."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class TeacherRole(str, Enum):
    HEAD = "HEAD"
    ADDITIONAL = "ADDITIONAL"


class WeekDay(str, Enum):
    """Days on which weekend sessions run."""

    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"


class AttendanceStatus(str, Enum):
    """Attendance status persisted in the ledger."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    WRONG_SESSION = "WRONG_SESSION"
