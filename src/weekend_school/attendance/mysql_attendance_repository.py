from __future__ import annotations

from datetime import date, datetime
from typing import Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AttendanceRecord
from .repository import AttendanceRepository

_SELECT = """
    SELECT attendance_id, student_id, session_id, attendance_date, status, scan_time, marked_by, note
    FROM attendances
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        student_id=int(r["student_id"]),
        session_id=int(r["session_id"]),
        attendance_date=r["attendance_date"],
        status=AttendanceStatus(r["status"]),
        scan_time=r.get("scan_time"),
        marked_by=int(r["marked_by"]) if r.get("marked_by") is not None else None,
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> AttendanceRecord | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_key(self, *, student_id: int, session_id: int, attendance_date: date) -> AttendanceRecord | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE student_id=%s AND session_id=%s AND attendance_date=%s",
                (int(student_id), int(session_id), attendance_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

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
        # A duplicate key surfaces from db_cursor as DuplicateRecordError.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendances(student_id, session_id, attendance_date, status, scan_time, marked_by, note)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(student_id), int(session_id), attendance_date, status.value, scan_time, marked_by, note),
            )
            attendance_id = int(cur.lastrowid)

        return AttendanceRecord(
            attendance_id=attendance_id,
            student_id=int(student_id),
            session_id=int(session_id),
            attendance_date=attendance_date,
            status=status,
            scan_time=scan_time,
            marked_by=marked_by,
            note=note,
        )

    def update_status(
        self,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        marked_by: int | None,
        note: str | None = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendances
                SET status=%s, marked_by=%s, note=%s
                WHERE attendance_id=%s
                """,
                (status.value, marked_by, note, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_for_session_date(self, *, session_id: int, attendance_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE session_id=%s AND attendance_date=%s ORDER BY scan_time ASC, attendance_id ASC",
                (int(session_id), attendance_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_range(
        self,
        *,
        start_date: date,
        end_date: date,
        session_ids: Sequence[int] | None = None,
        student_id: int | None = None,
    ) -> Sequence[AttendanceRecord]:
        if session_ids is not None and not session_ids:
            return []

        clauses = ["attendance_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]

        if session_ids is not None:
            clauses.append(f"session_id IN ({in_clause(session_ids)})")
            params.extend(int(s) for s in session_ids)
        if student_id is not None:
            clauses.append("student_id=%s")
            params.append(int(student_id))

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {where} ORDER BY attendance_date DESC, session_id ASC, attendance_id ASC",
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]
