from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Student
from .repository import StudentRepository

_SELECT = """
    SELECT st.student_id, st.qr_uuid, st.student_number, st.surname, st.first_name, st.last_name,
           st.email, st.class_id, c.course_id, c.class_name,
           st.saturday_session_id, st.sunday_session_id
    FROM students st
    JOIN classes c ON c.class_id = st.class_id
"""


def _to_student(r: dict) -> Student:
    sat = r.get("saturday_session_id")
    sun = r.get("sunday_session_id")
    return Student(
        student_id=int(r["student_id"]),
        qr_uuid=r["qr_uuid"],
        student_number=r["student_number"],
        surname=r["surname"],
        first_name=r["first_name"],
        last_name=r.get("last_name"),
        email=r["email"],
        class_id=int(r["class_id"]),
        course_id=int(r["course_id"]),
        class_name=r["class_name"],
        saturday_session_id=int(sat) if sat is not None else None,
        sunday_session_id=int(sun) if sun is not None else None,
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Student | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE st.student_id=%s AND st.is_deleted=0", (int(student_id),))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def find_for_login(self, *, student_number: str, email: str) -> Student | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE st.student_number=%s AND LOWER(st.email)=%s AND st.is_deleted=0",
                (student_number, email.lower()),
            )
            r = fetchone(cur)
            return _to_student(r) if r else None

    def list_for_session(self, session_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + """
                WHERE st.is_deleted=0 AND (st.saturday_session_id=%s OR st.sunday_session_id=%s)
                ORDER BY st.surname ASC, st.first_name ASC
                """,
                (int(session_id), int(session_id)),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def list_for_course(self, course_id: int, *, class_id: int | None = None) -> Sequence[Student]:
        clauses = ["st.is_deleted=0", "c.course_id=%s"]
        params: list[object] = [int(course_id)]
        if class_id is not None:
            clauses.append("st.class_id=%s")
            params.append(int(class_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {' AND '.join(clauses)} ORDER BY c.class_name ASC, st.surname ASC, st.first_name ASC",
                tuple(params),
            )
            return [_to_student(r) for r in fetchall(cur)]

    def search(self, *, course_id: int | None, query: str, limit: int) -> Sequence[Student]:
        like = f"%{query.strip()}%"
        clauses = [
            "st.is_deleted=0",
            "(st.student_number LIKE %s OR st.first_name LIKE %s OR st.surname LIKE %s"
            " OR st.last_name LIKE %s OR st.email LIKE %s)",
        ]
        params: list[object] = [like, like, like, like, like]
        if course_id is not None:
            clauses.append("c.course_id=%s")
            params.append(int(course_id))
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE {' AND '.join(clauses)} ORDER BY st.surname ASC, st.first_name ASC LIMIT %s",
                tuple(params),
            )
            return [_to_student(r) for r in fetchall(cur)]
