from __future__ import annotations

from typing import Protocol, Sequence

from ..core.enums import WeekDay
from .model import ClassSession, Course, SchoolClass


class CatalogRepository(Protocol):
    """Read-only lookups over courses, classes and their weekend sessions."""

    def get_course(self, course_id: int) -> Course | None:
        raise NotImplementedError

    def list_courses(self) -> Sequence[Course]:
        raise NotImplementedError

    def get_class(self, class_id: int) -> SchoolClass | None:
        raise NotImplementedError

    def list_classes(self, course_id: int) -> Sequence[SchoolClass]:
        raise NotImplementedError

    def get_session(self, session_id: int) -> ClassSession | None:
        raise NotImplementedError

    def list_sessions(
        self,
        *,
        course_id: int | None = None,
        class_id: int | None = None,
        day: WeekDay | None = None,
    ) -> Sequence[ClassSession]:
        """Sessions ordered by class name, day, start time."""

        raise NotImplementedError
