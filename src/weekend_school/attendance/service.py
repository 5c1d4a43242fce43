from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Sequence, Union

from ..auth.policy import Actor, Permission, authorize, marked_by, require_course
from ..catalog.model import ClassSession
from ..catalog.repository import CatalogRepository
from ..common.datetime_utils import now_local, weekday_of
from ..common.validators import optional_note
from ..core.enums import AttendanceStatus
from ..core.exceptions import (
    DuplicateRecordError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ..reports.sweep import session_has_ended, sweep, total
from ..students.model import Student
from ..students.repository import StudentRepository
from .classifier import classify, describe
from .model import AttendanceRecord, FinalizeResult, MarkOutcome, SessionRoster
from .qr import build_payload, parse_payload
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

MANUAL_STATUSES = {AttendanceStatus.PRESENT, AttendanceStatus.ABSENT}


@dataclass(frozen=True)
class ScanMark:
    """A QR scan at the door: the date is always today."""

    payload: str
    session_id: int


@dataclass(frozen=True)
class ManualMark:
    """A teacher marking a student by hand, optionally for a past date."""

    student_id: int
    session_id: int
    status: AttendanceStatus
    attendance_date: date | None = None


MarkRequest = Union[ScanMark, ManualMark]


@dataclass(frozen=True)
class _Target:
    student: Student
    session: ClassSession
    attendance_date: date


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        catalog: CatalogRepository,
        students: StudentRepository,
    ):
        self._attendance = attendance
        self._catalog = catalog
        self._students = students

    # ----- lookups -----

    def _get_session(self, session_id: int) -> ClassSession:
        session = self._catalog.get_session(int(session_id))
        if not session:
            raise NotFoundError("Session not found")
        return session

    def _get_student(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise NotFoundError("Student not found")
        return student

    def _student_from_payload(self, raw: str) -> Student:
        payload = parse_payload(raw)
        student = self._get_student(payload.student_id)
        if not payload.matches(student):
            raise InvalidStateError("QR code is not valid for this student")
        return student

    # ----- write path -----

    def _resolve(self, actor: Actor, request: MarkRequest, now: datetime) -> _Target:
        if isinstance(request, ScanMark):
            authorize(actor, Permission.SCAN_ATTENDANCE)
            session = self._get_session(request.session_id)
            student = self._student_from_payload(request.payload)
            day = now.date()
        elif isinstance(request, ManualMark):
            authorize(actor, Permission.MARK_ATTENDANCE)
            if request.status not in MANUAL_STATUSES:
                raise ValidationError("Manual marks must be PRESENT or ABSENT")
            session = self._get_session(request.session_id)
            student = self._get_student(request.student_id)
            day = request.attendance_date or now.date()
            if day > now.date():
                raise ValidationError("Cannot mark attendance for a future date")
            if student.class_id != session.class_id:
                raise InvalidStateError(f"{student.display_name} is not in {session.class_name}")
        else:
            raise TypeError(f"Unsupported mark request: {type(request).__name__}")

        require_course(actor, session.course_id)
        require_course(actor, student.course_id)

        if weekday_of(day) != session.day:
            raise InvalidStateError(
                f"{session.class_name} runs on {session.day.value.title()}; {day.isoformat()} is not a match"
            )
        return _Target(student=student, session=session, attendance_date=day)

    def _insert_once(
        self,
        target: _Target,
        *,
        status: AttendanceStatus,
        scan_time: datetime | None,
        marked_by_id: int | None,
        note: str | None = None,
    ) -> tuple[AttendanceRecord, bool]:
        """Insert guarded by the ledger's unique key; a lost race returns the winner."""

        key = dict(
            student_id=target.student.student_id,
            session_id=target.session.session_id,
            attendance_date=target.attendance_date,
        )
        try:
            record = self._attendance.create(
                **key, status=status, scan_time=scan_time, marked_by=marked_by_id, note=note
            )
            return record, True
        except DuplicateRecordError:
            logger.warning(
                "lost insert race for student=%s session=%s date=%s; returning existing record",
                key["student_id"],
                key["session_id"],
                key["attendance_date"],
            )
            winner = self._attendance.get_for_key(**key)
            if winner is None:
                raise StorageError("Attendance record could not be read back")
            return winner, False

    def _write(self, actor: Actor, request: MarkRequest, target: _Target, now: datetime) -> MarkOutcome:
        existing = self._attendance.get_for_key(
            student_id=target.student.student_id,
            session_id=target.session.session_id,
            attendance_date=target.attendance_date,
        )
        if existing:
            logger.debug("attendance %s already recorded", existing.attendance_id)
            return MarkOutcome(
                record=existing,
                student=target.student,
                session=target.session,
                created=False,
                label=describe(existing.status, created=False),
            )

        expected: ClassSession | None = None
        if isinstance(request, ScanMark):
            decision = classify(target.student, target.session)
            status = decision.status
            if status == AttendanceStatus.WRONG_SESSION and decision.expected_session_id is not None:
                expected = self._catalog.get_session(decision.expected_session_id)
            record, created = self._insert_once(target, status=status, scan_time=now, marked_by_id=None)
        else:
            record, created = self._insert_once(
                target, status=request.status, scan_time=None, marked_by_id=marked_by(actor)
            )

        if created:
            logger.info(
                "attendance %s: student=%s session=%s date=%s status=%s",
                record.attendance_id,
                record.student_id,
                record.session_id,
                record.attendance_date,
                record.status.value,
            )

        return MarkOutcome(
            record=record,
            student=target.student,
            session=target.session,
            created=created,
            label=describe(record.status, expected=expected, created=created),
        )

    def mark(self, actor: Actor, request: MarkRequest, *, now: datetime | None = None) -> MarkOutcome:
        """Record a scan or manual mark once per (student, session, date).

        Repeated calls return the first record unchanged; manual marks never
        overwrite (see `correct`).
        """

        now = now or now_local()
        target = self._resolve(actor, request, now)
        return self._write(actor, request, target, now)

    def bulk_mark(
        self,
        actor: Actor,
        *,
        session_id: int,
        entries: Sequence[tuple[int, AttendanceStatus]],
        attendance_date: date | None = None,
        now: datetime | None = None,
    ) -> list[MarkOutcome]:
        if not entries:
            raise ValidationError("At least one attendance record required")

        now = now or now_local()
        requests = [
            ManualMark(student_id=int(sid), session_id=int(session_id), status=status, attendance_date=attendance_date)
            for sid, status in entries
        ]
        # Validate every entry before writing any of them.
        targets = [self._resolve(actor, req, now) for req in requests]
        return [self._write(actor, req, target, now) for req, target in zip(requests, targets)]

    def correct(
        self,
        actor: Actor,
        *,
        attendance_id: int,
        status: AttendanceStatus,
        note: str | None = None,
    ) -> MarkOutcome:
        """Explicit correction of an existing record; the only path that changes a status."""

        authorize(actor, Permission.CORRECT_ATTENDANCE)
        if status not in MANUAL_STATUSES:
            raise ValidationError("Corrections must be PRESENT or ABSENT")
        note = optional_note(note)

        record = self._attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFoundError("Attendance record not found")

        session = self._get_session(record.session_id)
        require_course(actor, session.course_id)
        student = self._get_student(record.student_id)

        note = note or record.note
        if not self._attendance.update_status(
            attendance_id=record.attendance_id,
            status=status,
            marked_by=marked_by(actor),
            note=note,
        ):
            raise NotFoundError("Attendance record not found")

        logger.info(
            "attendance %s corrected %s -> %s by teacher %s",
            record.attendance_id,
            record.status.value,
            status.value,
            marked_by(actor),
        )
        updated = AttendanceRecord(
            attendance_id=record.attendance_id,
            student_id=record.student_id,
            session_id=record.session_id,
            attendance_date=record.attendance_date,
            status=status,
            scan_time=record.scan_time,
            marked_by=marked_by(actor),
            note=note,
        )
        return MarkOutcome(
            record=updated,
            student=student,
            session=session,
            created=False,
            label=f"Corrected to {status.value.lower()}",
        )

    def finalize_absences(
        self,
        actor: Actor,
        *,
        class_id: int,
        attendance_date: date | None = None,
        now: datetime | None = None,
    ) -> FinalizeResult:
        """Write ABSENT for assigned students with no record in the class's ended sessions."""

        authorize(actor, Permission.FINALIZE_ABSENCES)
        now = now or now_local()

        klass = self._catalog.get_class(int(class_id))
        if not klass:
            raise NotFoundError("Class not found")
        require_course(actor, klass.course_id)

        day = attendance_date or now.date()
        if day > now.date():
            raise ValidationError("Cannot finalize attendance for a future date")
        weekday = weekday_of(day)
        if weekday is None:
            raise InvalidStateError(f"No sessions run on {day.isoformat()}")

        marked: list[int] = []
        for session in self._catalog.list_sessions(class_id=klass.class_id, day=weekday):
            if not session_has_ended(session, day, now):
                logger.info("session %s on %s has not ended; skipped", session.session_id, day)
                continue

            seen = {
                r.student_id
                for r in self._attendance.list_for_session_date(session_id=session.session_id, attendance_date=day)
            }
            for student in self._students.list_for_session(session.session_id):
                if student.student_id in seen:
                    continue
                try:
                    self._attendance.create(
                        student_id=student.student_id,
                        session_id=session.session_id,
                        attendance_date=day,
                        status=AttendanceStatus.ABSENT,
                        marked_by=marked_by(actor),
                    )
                except DuplicateRecordError:
                    # Scanned in between; the scan wins.
                    continue
                marked.append(student.student_id)

        logger.info("class %s on %s: marked %d absent", klass.class_id, day, len(marked))
        return FinalizeResult(marked_absent=len(marked), student_ids=marked)

    # ----- reads -----

    def session_roster(
        self,
        actor: Actor,
        *,
        session_id: int,
        attendance_date: date | None = None,
        now: datetime | None = None,
    ) -> SessionRoster:
        authorize(actor, Permission.VIEW_COURSE_REPORTS)
        now = now or now_local()
        session = self._get_session(session_id)
        require_course(actor, session.course_id)

        day = attendance_date or now.date()
        records = list(self._attendance.list_for_session_date(session_id=session.session_id, attendance_date=day))
        students = list(self._students.list_for_session(session.session_id))

        tallies = sweep(
            [session],
            {session.session_id: [s.student_id for s in students]},
            records,
            start=day,
            end=day,
            now=now,
        )
        stats = total(tallies).to_dict()
        stats.update(
            {
                "totalStudents": len(students),
                "capacity": session.capacity,
                "sessionEnded": session_has_ended(session, day, now),
            }
        )
        return SessionRoster(session=session, attendance_date=day, records=records, students=students, stats=stats)

    def student_qr(self, actor: Actor, *, now: datetime | None = None) -> tuple[Student, str]:
        """The logged-in student's QR payload."""

        authorize(actor, Permission.GENERATE_QR)
        student = self._get_student(actor.student_id)
        return student, build_payload(student, now=now or now_local())
