from __future__ import annotations

import logging

from werkzeug.security import check_password_hash

from ..common.validators import require_non_empty
from ..core.exceptions import AuthenticationError
from ..students.repository import StudentRepository
from .policy import Actor, AdminActor, StudentActor, TeacherActor
from .repository import AccountRepository

logger = logging.getLogger(__name__)


def _password_ok(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except ValueError:
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


class AuthService:
    """Use case: authenticate staff and students (login)."""

    def __init__(self, accounts: AccountRepository, students: StudentRepository):
        self._accounts = accounts
        self._students = students

    def authenticate_staff(self, email: str, password: str) -> Actor:
        email = require_non_empty(email, "Email").lower()
        password = password or ""

        admin = self._accounts.get_admin_by_email(email)
        if admin and _password_ok(admin.password_hash, password):
            logger.info("admin %s logged in", admin.admin_id)
            return AdminActor(admin_id=admin.admin_id, full_name=admin.full_name, email=admin.email)

        teacher = self._accounts.get_teacher_by_email(email)
        if teacher and teacher.is_active and _password_ok(teacher.password_hash, password):
            logger.info("teacher %s logged in", teacher.teacher_id)
            return TeacherActor(
                teacher_id=teacher.teacher_id,
                full_name=teacher.full_name,
                email=teacher.email,
                teacher_role=teacher.teacher_role,
                course_id=teacher.course_id,
            )

        logger.warning("failed staff login for %s", email)
        raise AuthenticationError("Invalid email or password")

    def authenticate_student(self, student_number: str, email: str) -> StudentActor:
        number = require_non_empty(student_number, "Student number").upper()
        email = require_non_empty(email, "Email").lower()

        student = self._students.find_for_login(student_number=number, email=email)
        if not student:
            logger.warning("failed student login for %s", number)
            raise AuthenticationError("Invalid student number or email")

        return StudentActor(
            student_id=student.student_id,
            full_name=student.display_name,
            student_number=student.student_number,
            class_id=student.class_id,
            course_id=student.course_id,
        )
