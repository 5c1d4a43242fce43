from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql usable regardless of the configured DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal splitter: ';' ends a statement unless it sits inside quotes.
    buf: list[str] = []
    quote = ""
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
        elif ch == "\\":
            escape = True
        elif quote:
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied from %s", schema_path)


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def ensure_demo_data(db_config: dict) -> None:
    """Upsert a small demo school: one course, two classes, weekend sessions, students.

    Safe to run repeatedly; rows are looked up by their natural keys first.
    """

    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor(dictionary=True)

        def scalar(sql: str, params: tuple) -> int | None:
            cur.execute(sql, params)
            row = cur.fetchone()
            return int(next(iter(row.values()))) if row else None

        def upsert_admin(full_name: str, email: str, password: str) -> None:
            if scalar("SELECT admin_id FROM admins WHERE email=%s", (email,)) is None:
                cur.execute(
                    "INSERT INTO admins(full_name, email, password_hash) VALUES(%s,%s,%s)",
                    (full_name, email, generate_password_hash(password)),
                )

        def upsert_course(name: str) -> int:
            course_id = scalar("SELECT course_id FROM courses WHERE course_name=%s", (name,))
            if course_id is None:
                cur.execute("INSERT INTO courses(course_name) VALUES(%s)", (name,))
                course_id = int(cur.lastrowid)
            return course_id

        def upsert_teacher(full_name: str, email: str, password: str, course_id: int, role: str) -> None:
            password_hash = generate_password_hash(password)
            if scalar("SELECT teacher_id FROM teachers WHERE email=%s", (email,)) is None:
                cur.execute(
                    """
                    INSERT INTO teachers(full_name, email, password_hash, course_id, teacher_role)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (full_name, email, password_hash, course_id, role),
                )
            else:
                cur.execute(
                    """
                    UPDATE teachers SET full_name=%s, password_hash=%s, course_id=%s, teacher_role=%s, is_active=1
                    WHERE email=%s
                    """,
                    (full_name, password_hash, course_id, role, email),
                )

        def upsert_class(course_id: int, name: str, capacity: int) -> int:
            class_id = scalar(
                "SELECT class_id FROM classes WHERE course_id=%s AND class_name=%s", (course_id, name)
            )
            if class_id is None:
                cur.execute(
                    "INSERT INTO classes(course_id, class_name, capacity) VALUES(%s,%s,%s)",
                    (course_id, name, capacity),
                )
                class_id = int(cur.lastrowid)
            return class_id

        def upsert_session(class_id: int, day: str, start: str, end: str, capacity: int) -> int:
            session_id = scalar(
                "SELECT session_id FROM sessions WHERE class_id=%s AND day=%s AND start_time=%s",
                (class_id, day, start),
            )
            if session_id is None:
                cur.execute(
                    """
                    INSERT INTO sessions(class_id, day, start_time, end_time, capacity)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (class_id, day, start, end, capacity),
                )
                session_id = int(cur.lastrowid)
            return session_id

        def upsert_student(number: str, surname: str, first: str, email: str, class_id: int, sat: int, sun: int) -> None:
            if scalar("SELECT student_id FROM students WHERE student_number=%s", (number,)) is None:
                cur.execute(
                    """
                    INSERT INTO students(qr_uuid, student_number, surname, first_name, email,
                                         class_id, saturday_session_id, sunday_session_id)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (str(uuid.uuid4()), number, surname, first, email, class_id, sat, sun),
                )

        upsert_admin("Admin Demo", "admin@school.test", "admin123")
        course_id = upsert_course("Weekend Quran School")
        upsert_teacher("Head Teacher", "head@school.test", "teacher123", course_id, "HEAD")
        upsert_teacher("Assistant Teacher", "assistant@school.test", "teacher123", course_id, "ADDITIONAL")

        for class_name, prefix in (("Class A", "A"), ("Class B", "B")):
            class_id = upsert_class(course_id, class_name, 40)
            sat_early = upsert_session(class_id, "SATURDAY", "09:00", "11:00", 20)
            sat_late = upsert_session(class_id, "SATURDAY", "11:30", "13:30", 20)
            sun_early = upsert_session(class_id, "SUNDAY", "09:00", "11:00", 20)
            sun_late = upsert_session(class_id, "SUNDAY", "11:30", "13:30", 20)
            for i in range(1, 7):
                sat = sat_early if i % 2 else sat_late
                sun = sun_early if i % 2 else sun_late
                upsert_student(
                    f"{prefix}{i:03d}",
                    f"Student{prefix}",
                    f"Demo{i}",
                    f"student.{prefix.lower()}{i}@school.test",
                    class_id,
                    sat,
                    sun,
                )

        conn.commit()
    finally:
        conn.close()
    logger.info("demo data ready")
