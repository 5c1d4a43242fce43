from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import TeacherRole


@dataclass(frozen=True)
class AdminAccount:
    admin_id: int
    full_name: str
    email: str
    password_hash: str


@dataclass(frozen=True)
class TeacherAccount:
    teacher_id: int
    full_name: str
    email: str
    password_hash: str
    course_id: int | None
    teacher_role: TeacherRole
    is_active: bool = True
