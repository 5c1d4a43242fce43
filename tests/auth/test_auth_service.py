from __future__ import annotations

import pytest

from weekend_school.auth.policy import AdminActor, StudentActor, TeacherActor
from weekend_school.core.enums import TeacherRole
from weekend_school.core.exceptions import AuthenticationError, ValidationError


def test_staff_login_resolves_admin_and_teachers(school):
    auth = school.container.auth_service

    assert isinstance(auth.authenticate_staff("admin@school.test", "admin123"), AdminActor)

    head = auth.authenticate_staff("HEAD@school.test", "teacher123")
    assert isinstance(head, TeacherActor)
    assert head.teacher_role == TeacherRole.HEAD
    assert head.course_id == 1


def test_staff_login_rejects_bad_password_and_inactive_teacher(school):
    auth = school.container.auth_service

    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        auth.authenticate_staff("head@school.test", "wrong")
    with pytest.raises(AuthenticationError):
        auth.authenticate_staff("retired@school.test", "teacher123")
    with pytest.raises(ValidationError):
        auth.authenticate_staff("", "teacher123")


def test_student_login_with_number_and_email(school):
    actor = school.container.auth_service.authenticate_student(" a001 ", "Ali@School.test")

    assert isinstance(actor, StudentActor)
    assert actor.student_id == 101
    assert actor.course_id == 1


def test_deleted_student_cannot_log_in(school):
    school.students.deleted.add(101)
    with pytest.raises(AuthenticationError):
        school.container.auth_service.authenticate_student("A001", "ali@school.test")
