from __future__ import annotations

from typing import Sequence

from ..core.enums import WeekDay
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ClassSession, Course, SchoolClass
from .repository import CatalogRepository

_SESSION_SELECT = """
    SELECT s.session_id, s.class_id, c.course_id, c.class_name, s.day, s.start_time, s.end_time, s.capacity
    FROM sessions s
    JOIN classes c ON c.class_id = s.class_id
"""


def _to_session(r: dict) -> ClassSession:
    return ClassSession(
        session_id=int(r["session_id"]),
        class_id=int(r["class_id"]),
        course_id=int(r["course_id"]),
        class_name=r["class_name"],
        day=WeekDay(r["day"]),
        start_time=str(r["start_time"])[:5],
        end_time=str(r["end_time"])[:5],
        capacity=int(r["capacity"]),
    )


def _to_class(r: dict) -> SchoolClass:
    return SchoolClass(
        class_id=int(r["class_id"]),
        course_id=int(r["course_id"]),
        class_name=r["class_name"],
        capacity=int(r["capacity"]),
    )


class MySQLCatalogRepository(CatalogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_course(self, course_id: int) -> Course | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT course_id, course_name FROM courses WHERE course_id=%s", (int(course_id),))
            r = fetchone(cur)
            if not r:
                return None
            return Course(course_id=int(r["course_id"]), course_name=r["course_name"])

    def list_courses(self) -> Sequence[Course]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT course_id, course_name FROM courses ORDER BY course_name ASC")
            return [Course(course_id=int(r["course_id"]), course_name=r["course_name"]) for r in fetchall(cur)]

    def get_class(self, class_id: int) -> SchoolClass | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT class_id, course_id, class_name, capacity FROM classes WHERE class_id=%s",
                (int(class_id),),
            )
            r = fetchone(cur)
            return _to_class(r) if r else None

    def list_classes(self, course_id: int) -> Sequence[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT class_id, course_id, class_name, capacity
                FROM classes
                WHERE course_id=%s
                ORDER BY class_name ASC
                """,
                (int(course_id),),
            )
            return [_to_class(r) for r in fetchall(cur)]

    def get_session(self, session_id: int) -> ClassSession | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SESSION_SELECT + " WHERE s.session_id=%s", (int(session_id),))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def list_sessions(
        self,
        *,
        course_id: int | None = None,
        class_id: int | None = None,
        day: WeekDay | None = None,
    ) -> Sequence[ClassSession]:
        clauses: list[str] = []
        params: list[object] = []

        if course_id is not None:
            clauses.append("c.course_id=%s")
            params.append(int(course_id))
        if class_id is not None:
            clauses.append("s.class_id=%s")
            params.append(int(class_id))
        if day is not None:
            clauses.append("s.day=%s")
            params.append(day.value)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                {_SESSION_SELECT}
                {where}
                ORDER BY c.class_name ASC, s.day ASC, s.start_time ASC
                """,
                tuple(params),
            )
            return [_to_session(r) for r in fetchall(cur)]
