from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Mapping, Sequence

from ..auth.policy import Actor, Permission, authorize, course_of, require_course
from ..catalog.model import ClassSession, SchoolClass
from ..catalog.repository import CatalogRepository
from ..common.datetime_utils import months_before, now_local
from ..common.validators import require_non_empty
from ..core.constants import (
    DEFAULT_SEARCH_LIMIT,
    DEFAULT_STUDENT_HISTORY_LIMIT,
    DEFAULT_STUDENT_HISTORY_MONTHS,
    RECENT_SESSIONS_LIMIT,
)
from ..core.enums import AttendanceStatus, WeekDay
from ..core.exceptions import NotFoundError, ValidationError
from ..students.model import Student
from ..students.repository import StudentRepository
from ..attendance.repository import AttendanceRepository
from .sweep import SessionDayTally, sweep, total

EXPORT_FIELDS = [
    "date",
    "day",
    "class_name",
    "session_time",
    "student_number",
    "student_name",
    "status",
    "scan_time",
    "source",
]


@dataclass(frozen=True)
class ReportScope:
    course_id: int
    sessions: list[ClassSession]
    students: dict[int, Student]
    tallies: list[SessionDayTally]


def student_to_dict(s: Student) -> dict:
    return {
        "id": s.student_id,
        "studentNumber": s.student_number,
        "name": s.display_name,
        "email": s.email,
        "classId": s.class_id,
        "className": s.class_name,
        "saturdaySessionId": s.saturday_session_id,
        "sundaySessionId": s.sunday_session_id,
    }


def session_to_dict(s: ClassSession) -> dict:
    return {
        "id": s.session_id,
        "classId": s.class_id,
        "className": s.class_name,
        "day": s.day.value,
        "startTime": s.start_time,
        "endTime": s.end_time,
        "capacity": s.capacity,
    }


def tally_to_dict(t: SessionDayTally) -> dict:
    return {
        "sessionId": t.session.session_id,
        "classId": t.session.class_id,
        "className": t.session.class_name,
        "day": t.session.day.value,
        "timeRange": t.session.time_range,
        "date": t.attendance_date.isoformat(),
        "held": t.held,
        "expectedCount": t.expected,
        **t.counts.to_dict(),
    }


def _date_range(start: date, end: date) -> dict:
    return {"startDate": start.isoformat(), "endDate": end.isoformat()}


def _row(
    t: SessionDayTally,
    student: Student,
    status: AttendanceStatus,
    *,
    scan_time: datetime | None = None,
    attendance_id: int | None = None,
    source: str = "recorded",
) -> dict:
    return {
        "attendance_id": attendance_id,
        "session_id": t.session.session_id,
        "student_id": student.student_id,
        "date": t.attendance_date.isoformat(),
        "day": t.session.day.value,
        "class_name": t.session.class_name,
        "session_time": t.session.time_range,
        "student_number": student.student_number,
        "student_name": student.display_name,
        "status": status.value,
        "scan_time": scan_time.isoformat(sep=" ", timespec="seconds") if scan_time else "",
        "source": source,
    }


def rows_from(tallies: Iterable[SessionDayTally], students: Mapping[int, Student]) -> list[dict]:
    """Flatten tallies into one row per student and session-date.

    Explicit records come first, then inferred absences for held session-dates.
    """

    rows: list[dict] = []
    for t in tallies:
        for r in t.records:
            student = students.get(r.student_id)
            if student is None:
                continue
            rows.append(_row(t, student, r.status, scan_time=r.scan_time, attendance_id=r.attendance_id))
        for student_id in t.missing_student_ids:
            student = students.get(student_id)
            if student is None:
                continue
            rows.append(_row(t, student, AttendanceStatus.ABSENT, source="inferred"))
    return rows


class ReportService:
    """Read-only attendance reports for teachers, admins and students.

    Absences are inferred at read time from session assignments; nothing here
    writes to the ledger.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        catalog: CatalogRepository,
        students: StudentRepository,
    ):
        self._attendance = attendance
        self._catalog = catalog
        self._students = students

    def _scope(
        self,
        course_id: int,
        *,
        start: date,
        end: date,
        now: datetime,
        class_id: int | None = None,
        session_id: int | None = None,
        day: WeekDay | None = None,
    ) -> ReportScope:
        sessions = list(self._catalog.list_sessions(course_id=course_id, class_id=class_id, day=day))
        if session_id is not None:
            sessions = [s for s in sessions if s.session_id == int(session_id)]

        # Soft-deleted students are not returned here, so their records drop out too.
        students = {s.student_id: s for s in self._students.list_for_course(course_id)}

        roster: dict[int, list[int]] = {s.session_id: [] for s in sessions}
        for student in students.values():
            for assigned in (student.saturday_session_id, student.sunday_session_id):
                if assigned in roster:
                    roster[assigned].append(student.student_id)

        records = [
            r
            for r in self._attendance.list_range(
                start_date=start,
                end_date=end,
                session_ids=[s.session_id for s in sessions],
            )
            if r.student_id in students
        ]
        tallies = sweep(sessions, roster, records, start=start, end=end, now=now)
        return ReportScope(course_id=course_id, sessions=sessions, students=students, tallies=tallies)

    def _get_student(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    # ----- course level -----

    def _overview(self, course_id: int, scope: ReportScope, *, start: date, end: date) -> dict:
        course = self._catalog.get_course(course_id)
        if not course:
            raise NotFoundError("Course not found")

        summary = total(scope.tallies).to_dict()
        summary.update(
            {
                "totalStudents": len(scope.students),
                "totalClasses": len(self._catalog.list_classes(course_id)),
                "totalSessions": len(scope.sessions),
            }
        )
        return {
            "course": {"id": course.course_id, "name": course.course_name},
            "dateRange": _date_range(start, end),
            "summary": summary,
            "recentSessions": [tally_to_dict(t) for t in scope.tallies[:RECENT_SESSIONS_LIMIT]],
        }

    def _classes(self, scope: ReportScope, classes: Sequence[SchoolClass]) -> list[dict]:
        out: list[dict] = []
        for klass in classes:
            sessions = [s for s in scope.sessions if s.class_id == klass.class_id]
            if not sessions:
                continue
            tallies = [t for t in scope.tallies if t.session.class_id == klass.class_id]

            per_session = []
            for s in sessions:
                own = [t for t in tallies if t.session.session_id == s.session_id]
                per_session.append(
                    {
                        "sessionId": s.session_id,
                        "day": s.day.value,
                        "timeRange": s.time_range,
                        "studentCount": sum(1 for st in scope.students.values() if st.is_assigned_to(s.session_id)),
                        **total(own).to_dict(),
                    }
                )

            out.append(
                {
                    "classId": klass.class_id,
                    "className": klass.class_name,
                    "capacity": klass.capacity,
                    "studentCount": sum(1 for st in scope.students.values() if st.class_id == klass.class_id),
                    **total(tallies).to_dict(),
                    "sessions": per_session,
                }
            )
        return out

    def course_overview(
        self, actor: Actor, *, start: date, end: date, now: datetime | None = None
    ) -> dict:
        authorize(actor, Permission.VIEW_COURSE_REPORTS)
        course_id = course_of(actor)
        scope = self._scope(course_id, start=start, end=end, now=now or now_local())
        return self._overview(course_id, scope, start=start, end=end)

    def class_breakdown(
        self,
        actor: Actor,
        *,
        start: date,
        end: date,
        session_id: int | None = None,
        now: datetime | None = None,
    ) -> list[dict]:
        authorize(actor, Permission.VIEW_COURSE_REPORTS)
        course_id = course_of(actor)
        if session_id is not None:
            session = self._catalog.get_session(int(session_id))
            if not session:
                raise NotFoundError("Session not found")
            require_course(actor, session.course_id)

        scope = self._scope(course_id, start=start, end=end, now=now or now_local(), session_id=session_id)
        return self._classes(scope, self._catalog.list_classes(course_id))

    def session_history(
        self,
        actor: Actor,
        *,
        start: date,
        end: date,
        class_id: int | None = None,
        day: WeekDay | None = None,
        now: datetime | None = None,
    ) -> list[dict]:
        authorize(actor, Permission.VIEW_COURSE_REPORTS)
        course_id = course_of(actor)
        if class_id is not None:
            klass = self._catalog.get_class(int(class_id))
            if not klass:
                raise NotFoundError("Class not found")
            require_course(actor, klass.course_id)

        scope = self._scope(course_id, start=start, end=end, now=now or now_local(), class_id=class_id, day=day)
        return [tally_to_dict(t) for t in scope.tallies]

    def export_rows(
        self,
        actor: Actor,
        *,
        start: date,
        end: date,
        class_id: int | None = None,
        session_id: int | None = None,
        status: AttendanceStatus | None = None,
        now: datetime | None = None,
    ) -> list[dict]:
        authorize(actor, Permission.VIEW_COURSE_REPORTS)
        course_id = course_of(actor)
        if class_id is not None:
            klass = self._catalog.get_class(int(class_id))
            if not klass:
                raise NotFoundError("Class not found")
            require_course(actor, klass.course_id)

        scope = self._scope(
            course_id,
            start=start,
            end=end,
            now=now or now_local(),
            class_id=class_id,
            session_id=session_id,
        )
        rows = rows_from(scope.tallies, scope.students)
        if status is not None:
            rows = [r for r in rows if r["status"] == status.value]
        return rows

    def search_students(self, actor: Actor, query: str, *, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict]:
        authorize(actor, Permission.SEARCH_STUDENTS)
        q = require_non_empty(query, "Search query")
        if len(q) < 2:
            raise ValidationError("Search query must be at least 2 characters")
        found = self._students.search(course_id=course_of(actor), query=q, limit=limit)
        return [student_to_dict(s) for s in found]

    # ----- student level -----

    def _student_history(
        self,
        student: Student,
        *,
        start: date,
        end: date,
        now: datetime,
        limit: int | None = None,
    ) -> dict:
        records = list(self._attendance.list_range(start_date=start, end_date=end, student_id=student.student_id))

        assigned = [sid for sid in (student.saturday_session_id, student.sunday_session_id) if sid is not None]
        session_ids = set(assigned) | {r.session_id for r in records}
        sessions = [s for s in (self._catalog.get_session(sid) for sid in sorted(session_ids)) if s is not None]

        tallies = sweep(
            sessions,
            {sid: [student.student_id] for sid in assigned},
            records,
            start=start,
            end=end,
            now=now,
        )
        rows = rows_from(tallies, {student.student_id: student})
        if limit is not None:
            rows = rows[:limit]

        return {
            "student": student_to_dict(student),
            "dateRange": _date_range(start, end),
            "stats": total(tallies).to_dict(),
            "records": rows,
        }

    def student_history(
        self,
        actor: Actor,
        student_id: int,
        *,
        start: date,
        end: date,
        now: datetime | None = None,
    ) -> dict:
        authorize(actor, Permission.VIEW_COURSE_REPORTS)
        student = self._get_student(student_id)
        require_course(actor, student.course_id)
        return self._student_history(student, start=start, end=end, now=now or now_local())

    def own_history(self, actor: Actor, *, limit: int | None = None, now: datetime | None = None) -> dict:
        """A student's own record over the last few months."""

        authorize(actor, Permission.VIEW_OWN_ATTENDANCE)
        now = now or now_local()
        today = now.date()
        student = self._get_student(actor.student_id)
        return self._student_history(
            student,
            start=months_before(today, DEFAULT_STUDENT_HISTORY_MONTHS),
            end=today,
            now=now,
            limit=limit or DEFAULT_STUDENT_HISTORY_LIMIT,
        )

    # ----- admin -----

    def all_courses(self, actor: Actor, *, start: date, end: date, now: datetime | None = None) -> list[dict]:
        authorize(actor, Permission.VIEW_ALL_COURSES)
        now = now or now_local()
        out = []
        for course in self._catalog.list_courses():
            scope = self._scope(course.course_id, start=start, end=end, now=now)
            out.append(self._overview(course.course_id, scope, start=start, end=end))
        return out

    def admin_course(
        self, actor: Actor, course_id: int, *, start: date, end: date, now: datetime | None = None
    ) -> dict:
        authorize(actor, Permission.VIEW_ALL_COURSES)
        course_id = int(course_id)
        scope = self._scope(course_id, start=start, end=end, now=now or now_local())
        overview = self._overview(course_id, scope, start=start, end=end)
        overview["classes"] = self._classes(scope, self._catalog.list_classes(course_id))
        return overview

    def admin_student_history(
        self,
        actor: Actor,
        student_id: int,
        *,
        start: date,
        end: date,
        now: datetime | None = None,
    ) -> dict:
        authorize(actor, Permission.VIEW_ALL_COURSES)
        student = self._get_student(student_id)
        return self._student_history(student, start=start, end=end, now=now or now_local())
