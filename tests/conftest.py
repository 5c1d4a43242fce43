from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date

import pytest
from werkzeug.security import generate_password_hash

from weekend_school.attendance.model import AttendanceRecord
from weekend_school.auth.model import AdminAccount, TeacherAccount
from weekend_school.auth.policy import AdminActor, StudentActor, TeacherActor
from weekend_school.catalog.model import ClassSession, Course, SchoolClass
from weekend_school.container import Container, wire
from weekend_school.core.enums import TeacherRole, WeekDay
from weekend_school.core.exceptions import DuplicateRecordError
from weekend_school.students.model import Student


class InMemoryCatalog:
    def __init__(self, courses, classes, sessions):
        self.courses = {c.course_id: c for c in courses}
        self.classes = {c.class_id: c for c in classes}
        self.sessions = {s.session_id: s for s in sessions}

    def get_course(self, course_id):
        return self.courses.get(int(course_id))

    def list_courses(self):
        return sorted(self.courses.values(), key=lambda c: c.course_name)

    def get_class(self, class_id):
        return self.classes.get(int(class_id))

    def list_classes(self, course_id):
        return sorted((c for c in self.classes.values() if c.course_id == course_id), key=lambda c: c.class_name)

    def get_session(self, session_id):
        return self.sessions.get(int(session_id))

    def list_sessions(self, *, course_id=None, class_id=None, day=None):
        items = [
            s
            for s in self.sessions.values()
            if (course_id is None or s.course_id == course_id)
            and (class_id is None or s.class_id == class_id)
            and (day is None or s.day == day)
        ]
        return sorted(items, key=lambda s: (s.class_name, s.day.value, s.start_time))


class InMemoryStudents:
    def __init__(self, students):
        self.by_id = {s.student_id: s for s in students}
        self.deleted: set[int] = set()

    def _visible(self):
        return [s for s in self.by_id.values() if s.student_id not in self.deleted]

    def get_by_id(self, student_id):
        s = self.by_id.get(int(student_id))
        return s if s and s.student_id not in self.deleted else None

    def find_for_login(self, *, student_number, email):
        for s in self._visible():
            if s.student_number == student_number and s.email == email:
                return s
        return None

    def list_for_session(self, session_id):
        return [s for s in self._visible() if s.is_assigned_to(session_id)]

    def list_for_course(self, course_id, *, class_id=None):
        return [
            s for s in self._visible() if s.course_id == course_id and (class_id is None or s.class_id == class_id)
        ]

    def search(self, *, course_id, query, limit):
        q = query.lower()
        hits = [
            s
            for s in self._visible()
            if (course_id is None or s.course_id == course_id)
            and (q in s.display_name.lower() or q in s.student_number.lower() or q in s.email.lower())
        ]
        return hits[:limit]


class InMemoryAttendance:
    """Ledger fake with the same unique key as the attendances table."""

    def __init__(self):
        self._lock = threading.Lock()
        self._by_id: dict[int, AttendanceRecord] = {}
        self._by_key: dict[tuple[int, int, date], int] = {}
        self._next_id = 1
        self.create_calls = 0

    def get_by_id(self, attendance_id):
        return self._by_id.get(int(attendance_id))

    def get_for_key(self, *, student_id, session_id, attendance_date):
        with self._lock:
            attendance_id = self._by_key.get((student_id, session_id, attendance_date))
            return self._by_id.get(attendance_id) if attendance_id else None

    def create(self, *, student_id, session_id, attendance_date, status, scan_time=None, marked_by=None, note=None):
        with self._lock:
            self.create_calls += 1
            key = (student_id, session_id, attendance_date)
            if key in self._by_key:
                raise DuplicateRecordError("Duplicate entry for attendance")
            record = AttendanceRecord(
                attendance_id=self._next_id,
                student_id=student_id,
                session_id=session_id,
                attendance_date=attendance_date,
                status=status,
                scan_time=scan_time,
                marked_by=marked_by,
                note=note,
            )
            self._next_id += 1
            self._by_id[record.attendance_id] = record
            self._by_key[key] = record.attendance_id
            return record

    def update_status(self, *, attendance_id, status, marked_by, note=None):
        with self._lock:
            record = self._by_id.get(int(attendance_id))
            if not record:
                return False
            self._by_id[record.attendance_id] = replace(record, status=status, marked_by=marked_by, note=note)
            return True

    def list_for_session_date(self, *, session_id, attendance_date):
        return [r for r in self.all() if r.session_id == session_id and r.attendance_date == attendance_date]

    def list_range(self, *, start_date, end_date, session_ids=None, student_id=None):
        items = [
            r
            for r in self.all()
            if start_date <= r.attendance_date <= end_date
            and (session_ids is None or r.session_id in session_ids)
            and (student_id is None or r.student_id == student_id)
        ]
        return sorted(items, key=lambda r: r.attendance_date, reverse=True)

    def all(self) -> list[AttendanceRecord]:
        with self._lock:
            return list(self._by_id.values())

    def seed(self, *, student_id, session_id, attendance_date, status) -> AttendanceRecord:
        return self.create(
            student_id=student_id, session_id=session_id, attendance_date=attendance_date, status=status
        )


class InMemoryAccounts:
    def __init__(self, admins, teachers):
        self.admins = {a.email: a for a in admins}
        self.teachers = {t.email: t for t in teachers}

    def get_admin_by_email(self, email):
        return self.admins.get(email)

    def get_teacher_by_email(self, email):
        return self.teachers.get(email)


def _session(session_id, klass: SchoolClass, day: WeekDay, start: str, end: str) -> ClassSession:
    return ClassSession(
        session_id=session_id,
        class_id=klass.class_id,
        course_id=klass.course_id,
        class_name=klass.class_name,
        day=day,
        start_time=start,
        end_time=end,
        capacity=klass.capacity,
    )


def _student(student_id, number, first, klass: SchoolClass, sat: int | None, sun: int | None) -> Student:
    return Student(
        student_id=student_id,
        qr_uuid=f"uuid-{student_id}",
        student_number=number,
        surname="Test",
        first_name=first,
        last_name=None,
        email=f"{first.lower()}@school.test",
        class_id=klass.class_id,
        course_id=klass.course_id,
        class_name=klass.class_name,
        saturday_session_id=sat,
        sunday_session_id=sun,
    )


@dataclass
class School:
    catalog: InMemoryCatalog
    students: InMemoryStudents
    attendance: InMemoryAttendance
    accounts: InMemoryAccounts
    container: Container

    head: TeacherActor
    assistant: TeacherActor
    other_head: TeacherActor
    admin: AdminActor

    def student_actor(self, student_id: int) -> StudentActor:
        s = self.students.by_id[student_id]
        return StudentActor(
            student_id=s.student_id,
            full_name=s.display_name,
            student_number=s.student_number,
            class_id=s.class_id,
            course_id=s.course_id,
        )

    def session(self, session_id: int) -> ClassSession:
        return self.catalog.sessions[session_id]

    def student(self, student_id: int) -> Student:
        return self.students.by_id[student_id]


def build_school() -> School:
    """Two courses.

    Course 1, Class A: sessions 11 (Sat 09:00-11:00), 12 (Sat 11:30-13:30),
    13 (Sun 09:00-11:00), 14 (Sun 11:30-13:30). Class B: session 21 (Sat 09:00-11:00).
    Course 2, Class C: session 31 (Sat 09:00-11:00).

    Students 101 (A, Sat 11 / Sun 13), 102 (A, Sat 12 only), 103 (A, Sun 14 only),
    201 (B, Sat 21), 301 (C, Sat 31).
    """

    courses = [Course(1, "Weekend Quran School"), Course(2, "Arabic Language")]
    class_a = SchoolClass(class_id=1, course_id=1, class_name="Class A", capacity=20)
    class_b = SchoolClass(class_id=2, course_id=1, class_name="Class B", capacity=20)
    class_c = SchoolClass(class_id=3, course_id=2, class_name="Class C", capacity=15)

    sessions = [
        _session(11, class_a, WeekDay.SATURDAY, "09:00", "11:00"),
        _session(12, class_a, WeekDay.SATURDAY, "11:30", "13:30"),
        _session(13, class_a, WeekDay.SUNDAY, "09:00", "11:00"),
        _session(14, class_a, WeekDay.SUNDAY, "11:30", "13:30"),
        _session(21, class_b, WeekDay.SATURDAY, "09:00", "11:00"),
        _session(31, class_c, WeekDay.SATURDAY, "09:00", "11:00"),
    ]
    students = [
        _student(101, "A001", "Ali", class_a, 11, 13),
        _student(102, "A002", "Bilal", class_a, 12, None),
        _student(103, "A003", "Chen", class_a, None, 14),
        _student(201, "B001", "Dana", class_b, 21, None),
        _student(301, "C001", "Eve", class_c, 31, None),
    ]

    accounts = InMemoryAccounts(
        admins=[AdminAccount(1, "Site Admin", "admin@school.test", generate_password_hash("admin123"))],
        teachers=[
            TeacherAccount(1, "Head Teacher", "head@school.test", generate_password_hash("teacher123"), 1, TeacherRole.HEAD),
            TeacherAccount(2, "Assistant", "assistant@school.test", generate_password_hash("teacher123"), 1, TeacherRole.ADDITIONAL),
            TeacherAccount(3, "Other Head", "other@school.test", generate_password_hash("teacher123"), 2, TeacherRole.HEAD),
            TeacherAccount(
                4, "Retired", "retired@school.test", generate_password_hash("teacher123"), 1, TeacherRole.HEAD, is_active=False
            ),
        ],
    )

    catalog = InMemoryCatalog(courses, [class_a, class_b, class_c], sessions)
    student_repo = InMemoryStudents(students)
    attendance = InMemoryAttendance()
    container = wire(
        accounts_repo=accounts,
        catalog_repo=catalog,
        students_repo=student_repo,
        attendance_repo=attendance,
    )

    return School(
        catalog=catalog,
        students=student_repo,
        attendance=attendance,
        accounts=accounts,
        container=container,
        head=TeacherActor(1, "Head Teacher", "head@school.test", TeacherRole.HEAD, 1),
        assistant=TeacherActor(2, "Assistant", "assistant@school.test", TeacherRole.ADDITIONAL, 1),
        other_head=TeacherActor(3, "Other Head", "other@school.test", TeacherRole.HEAD, 2),
        admin=AdminActor(1, "Site Admin", "admin@school.test"),
    )


@pytest.fixture
def school() -> School:
    return build_school()
