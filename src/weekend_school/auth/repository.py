from __future__ import annotations

from typing import Protocol

from .model import AdminAccount, TeacherAccount


class AccountRepository(Protocol):
    """Staff accounts (admins and teachers) used for login."""

    def get_admin_by_email(self, email: str) -> AdminAccount | None:
        raise NotImplementedError

    def get_teacher_by_email(self, email: str) -> TeacherAccount | None:
        raise NotImplementedError
