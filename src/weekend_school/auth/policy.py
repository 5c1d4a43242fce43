"""Who may do what.

Every endpoint rebuilds the caller as an explicit `Actor` value from the login
session and passes it to services, which ask `authorize` and `require_course`.
Role checks live here only.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Union

from ..core.enums import Role, TeacherRole
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError


class Permission(str, Enum):
    SCAN_ATTENDANCE = "scan_attendance"
    MARK_ATTENDANCE = "mark_attendance"
    CORRECT_ATTENDANCE = "correct_attendance"
    FINALIZE_ABSENCES = "finalize_absences"
    VIEW_COURSE_REPORTS = "view_course_reports"
    SEARCH_STUDENTS = "search_students"
    VIEW_ALL_COURSES = "view_all_courses"
    VIEW_OWN_ATTENDANCE = "view_own_attendance"
    GENERATE_QR = "generate_qr"


@dataclass(frozen=True)
class AdminActor:
    admin_id: int
    full_name: str
    email: str

    role = Role.ADMIN


@dataclass(frozen=True)
class TeacherActor:
    teacher_id: int
    full_name: str
    email: str
    teacher_role: TeacherRole
    course_id: int | None

    role = Role.TEACHER


@dataclass(frozen=True)
class StudentActor:
    student_id: int
    full_name: str
    student_number: str
    class_id: int
    course_id: int

    role = Role.STUDENT


Actor = Union[AdminActor, TeacherActor, StudentActor]


def _is_teacher(actor: Actor) -> bool:
    return isinstance(actor, TeacherActor)


def _is_head_teacher(actor: Actor) -> bool:
    return isinstance(actor, TeacherActor) and actor.teacher_role == TeacherRole.HEAD


def _is_admin(actor: Actor) -> bool:
    return isinstance(actor, AdminActor)


def _is_student(actor: Actor) -> bool:
    return isinstance(actor, StudentActor)


_RULES: dict[Permission, tuple[Callable[[Actor], bool], str]] = {
    Permission.SCAN_ATTENDANCE: (_is_teacher, "Teacher access required"),
    Permission.MARK_ATTENDANCE: (_is_teacher, "Teacher access required"),
    Permission.CORRECT_ATTENDANCE: (_is_teacher, "Teacher access required"),
    Permission.FINALIZE_ABSENCES: (_is_head_teacher, "Head Teacher access required"),
    Permission.VIEW_COURSE_REPORTS: (_is_teacher, "Teacher access required"),
    Permission.SEARCH_STUDENTS: (_is_teacher, "Teacher access required"),
    Permission.VIEW_ALL_COURSES: (_is_admin, "Admin access required"),
    Permission.VIEW_OWN_ATTENDANCE: (_is_student, "Student access required"),
    Permission.GENERATE_QR: (_is_student, "Student access required"),
}


def authorize(actor: Actor | None, permission: Permission) -> Actor:
    """Single gate for role checks. Returns the actor so calls can be chained."""

    if actor is None:
        raise AuthenticationError("Unauthorized")

    check, message = _RULES[permission]
    if not check(actor):
        raise AuthorizationError(f"Forbidden - {message}")
    return actor


def course_of(actor: Actor) -> int:
    """Course a teacher or student is scoped to."""

    if isinstance(actor, AdminActor):
        raise ValidationError("Admins are not scoped to a course")
    if actor.course_id is None:
        raise ValidationError("No course assigned to teacher")
    return int(actor.course_id)


def require_course(actor: Actor, course_id: int) -> None:
    """Tenant check: admins see every course, everyone else only their own."""

    if isinstance(actor, AdminActor):
        return
    if actor.course_id is None or int(actor.course_id) != int(course_id):
        raise AuthorizationError("Forbidden - resource belongs to another course")


def actor_to_session(actor: Actor) -> dict[str, Any]:
    data = asdict(actor)
    data["role"] = actor.role.value
    if isinstance(actor, TeacherActor):
        data["teacher_role"] = actor.teacher_role.value
    return data


def actor_from_session(data: Mapping[str, Any]) -> Actor | None:
    """Rebuild the actor stored at login; None when nobody is logged in."""

    role = data.get("role")
    try:
        if role == Role.ADMIN.value:
            return AdminActor(
                admin_id=int(data["admin_id"]),
                full_name=str(data.get("full_name") or ""),
                email=str(data.get("email") or ""),
            )
        if role == Role.TEACHER.value:
            course_id = data.get("course_id")
            return TeacherActor(
                teacher_id=int(data["teacher_id"]),
                full_name=str(data.get("full_name") or ""),
                email=str(data.get("email") or ""),
                teacher_role=TeacherRole(data["teacher_role"]),
                course_id=int(course_id) if course_id is not None else None,
            )
        if role == Role.STUDENT.value:
            return StudentActor(
                student_id=int(data["student_id"]),
                full_name=str(data.get("full_name") or ""),
                student_number=str(data.get("student_number") or ""),
                class_id=int(data["class_id"]),
                course_id=int(data["course_id"]),
            )
    except (KeyError, TypeError, ValueError):
        return None
    return None


def marked_by(actor: Actor) -> int | None:
    return actor.teacher_id if isinstance(actor, TeacherActor) else None
