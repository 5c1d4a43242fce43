from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import WeekDay


@dataclass(frozen=True)
class Student:
    """A registered student with their weekend session assignment.

    `saturday_session_id` / `sunday_session_id` always point at sessions of
    `class_id` running on that day (enforced when assignments are made).
    """

    student_id: int
    qr_uuid: str
    student_number: str
    surname: str
    first_name: str
    last_name: str | None
    email: str
    class_id: int
    course_id: int
    class_name: str
    saturday_session_id: int | None
    sunday_session_id: int | None

    @property
    def display_name(self) -> str:
        parts = [self.surname, self.first_name, self.last_name or ""]
        return " ".join(p for p in parts if p).strip()

    def assigned_session_id(self, day: WeekDay) -> int | None:
        if day == WeekDay.SATURDAY:
            return self.saturday_session_id
        return self.sunday_session_id

    def is_assigned_to(self, session_id: int) -> bool:
        return session_id in (self.saturday_session_id, self.sunday_session_id)
