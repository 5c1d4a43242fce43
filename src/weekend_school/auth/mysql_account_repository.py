from __future__ import annotations


from ..core.enums import TeacherRole
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import AdminAccount, TeacherAccount
from .repository import AccountRepository


class MySQLAccountRepository(AccountRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_admin_by_email(self, email: str) -> AdminAccount | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT admin_id, full_name, email, password_hash FROM admins WHERE LOWER(email)=%s",
                (email.lower(),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return AdminAccount(
                admin_id=int(r["admin_id"]),
                full_name=r["full_name"],
                email=r["email"],
                password_hash=r["password_hash"],
            )

    def get_teacher_by_email(self, email: str) -> TeacherAccount | None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT teacher_id, full_name, email, password_hash, course_id, teacher_role, is_active
                FROM teachers
                WHERE LOWER(email)=%s
                """,
                (email.lower(),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return TeacherAccount(
                teacher_id=int(r["teacher_id"]),
                full_name=r["full_name"],
                email=r["email"],
                password_hash=r["password_hash"],
                course_id=int(r["course_id"]) if r.get("course_id") is not None else None,
                teacher_role=TeacherRole(r["teacher_role"]),
                is_active=bool(r.get("is_active", True)),
            )
