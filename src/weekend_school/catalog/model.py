from __future__ import annotations

from dataclasses import dataclass
from datetime import time

from ..common.datetime_utils import parse_hhmm
from ..core.enums import WeekDay


@dataclass(frozen=True)
class Course:
    course_id: int
    course_name: str


@dataclass(frozen=True)
class SchoolClass:
    class_id: int
    course_id: int
    class_name: str
    capacity: int


@dataclass(frozen=True)
class ClassSession:
    """A weekly Saturday or Sunday slot of a class.

    Times are stored as 'HH:MM' strings, the way the schedule is entered.
    """

    session_id: int
    class_id: int
    course_id: int
    class_name: str
    day: WeekDay
    start_time: str
    end_time: str
    capacity: int

    @property
    def ends_at(self) -> time:
        return parse_hhmm(self.end_time)

    @property
    def time_range(self) -> str:
        return f"{self.start_time}-{self.end_time}"

    def describe(self) -> str:
        return f"{self.class_name} {self.day.value.title()} {self.time_range}"
