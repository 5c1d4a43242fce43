from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> AttendanceRecord | None:
        raise NotImplementedError

    def get_for_key(self, *, student_id: int, session_id: int, attendance_date: date) -> AttendanceRecord | None:
        raise NotImplementedError

    def create(
        self,
        *,
        student_id: int,
        session_id: int,
        attendance_date: date,
        status: AttendanceStatus,
        scan_time: datetime | None = None,
        marked_by: int | None = None,
        note: str | None = None,
    ) -> AttendanceRecord:
        """Insert a new record.

        Raises DuplicateRecordError when (student, session, date) already exists;
        the storage unique key is the only arbiter between concurrent writers.
        """

        raise NotImplementedError

    def update_status(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        marked_by: int | None,
        note: str | None = None,
    ) -> bool:
        """Correction-only update of an existing record."""

        raise NotImplementedError

    def list_for_session_date(self, *, session_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        session_ids: Sequence[int] | None = None,
        student_id: int | None = None,
    ) -> Sequence[AttendanceRecord]:
        """Records with start_date <= date <= end_date, newest first."""

        raise NotImplementedError
