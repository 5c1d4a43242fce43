from __future__ import annotations

from typing import Protocol, Sequence

from .model import Student


class StudentRepository(Protocol):
    """Lookups over non-deleted students.

    Soft-deleted students are invisible through this interface.
    """

    def get_by_id(self, student_id: int) -> Student | None:
        raise NotImplementedError

    def find_for_login(self, *, student_number: str, email: str) -> Student | None:
        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[Student]:
        """Students whose Saturday or Sunday assignment is this session."""

        raise NotImplementedError

    def list_for_course(self, course_id: int, *, class_id: int | None = None) -> Sequence[Student]:
        raise NotImplementedError

    def search(self, *, course_id: int | None, query: str, limit: int) -> Sequence[Student]:
        raise NotImplementedError
