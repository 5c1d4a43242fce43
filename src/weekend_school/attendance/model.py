from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..catalog.model import ClassSession
from ..core.enums import AttendanceStatus
from ..students.model import Student


@dataclass(frozen=True)
class AttendanceRecord:
    """One ledger entry. Unique per (student_id, session_id, attendance_date)."""

    attendance_id: int
    student_id: int
    session_id: int
    attendance_date: date
    status: AttendanceStatus
    scan_time: datetime | None = None
    marked_by: int | None = None
    note: str | None = None

    @property
    def key(self) -> tuple[int, int, date]:
        return (self.student_id, self.session_id, self.attendance_date)


@dataclass(frozen=True)
class MarkOutcome:
    """Result of a scan or manual mark, existing or newly written."""

    record: AttendanceRecord
    student: Student
    session: ClassSession
    created: bool
    label: str

    @property
    def status(self) -> AttendanceStatus:
        return self.record.status


@dataclass(frozen=True)
class FinalizeResult:
    marked_absent: int
    student_ids: list[int]


@dataclass(frozen=True)
class SessionRoster:
    session: ClassSession
    attendance_date: date
    records: list[AttendanceRecord]
    students: list[Student]
    stats: dict
