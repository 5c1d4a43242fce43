from __future__ import annotations

from datetime import date, datetime

import pytest

from weekend_school.attendance.qr import build_payload, parse_payload
from weekend_school.attendance.service import ManualMark, ScanMark
from weekend_school.core.enums import AttendanceStatus
from weekend_school.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

SATURDAY = date(2026, 10, 17)
SUNDAY = date(2026, 10, 18)
SAT_MORNING = datetime(2026, 10, 17, 9, 5)
SAT_NOON = datetime(2026, 10, 17, 12, 0)
SAT_EVENING = datetime(2026, 10, 17, 18, 0)
MONDAY = datetime(2026, 10, 19, 9, 0)


def _scan(school, student_id: int, session_id: int) -> ScanMark:
    payload = build_payload(school.student(student_id), now=SAT_MORNING)
    return ScanMark(payload=payload, session_id=session_id)


# ----- scans -----


def test_scan_in_assigned_session_marks_present(school):
    svc = school.container.attendance_service

    outcome = svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)

    assert outcome.created is True
    assert outcome.status == AttendanceStatus.PRESENT
    assert outcome.label == "Marked present"
    assert outcome.record.attendance_date == SATURDAY
    assert outcome.record.scan_time == SAT_MORNING
    assert outcome.record.marked_by is None


def test_repeat_scan_returns_first_record(school):
    svc = school.container.attendance_service

    first = svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)
    second = svc.mark(school.assistant, _scan(school, 101, 11), now=datetime(2026, 10, 17, 9, 40))

    assert second.created is False
    assert second.record == first.record
    assert second.label == "Already marked (present)"
    assert school.attendance.create_calls == 1


def test_scan_in_other_slot_is_wrong_session(school):
    outcome = school.container.attendance_service.mark(school.head, _scan(school, 102, 11), now=SAT_MORNING)

    assert outcome.status == AttendanceStatus.WRONG_SESSION
    assert outcome.label == "Wrong session: expected Class A Saturday 11:30-13:30"
    assert outcome.record.session_id == 11


def test_scan_without_assignment_for_the_day(school):
    with pytest.raises(InvalidStateError):
        school.container.attendance_service.mark(school.head, _scan(school, 103, 11), now=SAT_MORNING)
    assert school.attendance.all() == []


def test_scan_on_a_weekday_is_rejected(school):
    with pytest.raises(InvalidStateError, match="runs on Saturday"):
        school.container.attendance_service.mark(school.head, _scan(school, 101, 11), now=MONDAY)


def test_scan_unknown_session(school):
    with pytest.raises(NotFoundError, match="Session not found"):
        school.container.attendance_service.mark(school.head, _scan(school, 101, 999), now=SAT_MORNING)


def test_scan_unknown_or_deleted_student(school):
    svc = school.container.attendance_service

    with pytest.raises(NotFoundError, match="Student not found"):
        svc.mark(school.head, ScanMark('{"uuid": "x", "student_id": 999}', 11), now=SAT_MORNING)

    school.students.deleted.add(101)
    with pytest.raises(NotFoundError):
        svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)


def test_scan_with_forged_uuid(school):
    with pytest.raises(InvalidStateError, match="not valid for this student"):
        school.container.attendance_service.mark(
            school.head, ScanMark('{"uuid": "uuid-102", "student_id": 101}', 11), now=SAT_MORNING
        )


def test_scan_is_course_scoped(school):
    svc = school.container.attendance_service

    # session from another course
    with pytest.raises(AuthorizationError):
        svc.mark(school.head, _scan(school, 101, 31), now=SAT_MORNING)

    # student from another course
    with pytest.raises(AuthorizationError):
        svc.mark(school.head, _scan(school, 301, 11), now=SAT_MORNING)

    assert school.attendance.all() == []


def test_scan_requires_a_teacher(school):
    svc = school.container.attendance_service

    with pytest.raises(AuthenticationError):
        svc.mark(None, _scan(school, 101, 11), now=SAT_MORNING)
    with pytest.raises(AuthorizationError):
        svc.mark(school.student_actor(101), _scan(school, 101, 11), now=SAT_MORNING)
    with pytest.raises(AuthorizationError):
        svc.mark(school.admin, _scan(school, 101, 11), now=SAT_MORNING)


# ----- manual marks -----


def test_manual_mark_for_past_date(school):
    outcome = school.container.attendance_service.mark(
        school.assistant,
        ManualMark(student_id=102, session_id=12, status=AttendanceStatus.ABSENT, attendance_date=SATURDAY),
        now=MONDAY,
    )

    assert outcome.created is True
    assert outcome.label == "Marked absent"
    assert outcome.record.marked_by == 2
    assert outcome.record.scan_time is None


def test_manual_mark_never_overwrites(school):
    svc = school.container.attendance_service
    svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)

    outcome = svc.mark(
        school.head,
        ManualMark(student_id=101, session_id=11, status=AttendanceStatus.ABSENT),
        now=SAT_NOON,
    )

    assert outcome.created is False
    assert outcome.status == AttendanceStatus.PRESENT
    assert school.attendance.all()[0].status == AttendanceStatus.PRESENT


def test_manual_mark_rejects_wrong_session_status(school):
    with pytest.raises(ValidationError):
        school.container.attendance_service.mark(
            school.head,
            ManualMark(student_id=101, session_id=11, status=AttendanceStatus.WRONG_SESSION),
            now=SAT_MORNING,
        )


def test_manual_mark_rejects_future_date(school):
    with pytest.raises(ValidationError, match="future"):
        school.container.attendance_service.mark(
            school.head,
            ManualMark(student_id=101, session_id=11, status=AttendanceStatus.PRESENT, attendance_date=date(2026, 10, 24)),
            now=SAT_MORNING,
        )


def test_manual_mark_for_student_of_another_class(school):
    with pytest.raises(InvalidStateError, match="is not in Class A"):
        school.container.attendance_service.mark(
            school.head,
            ManualMark(student_id=201, session_id=11, status=AttendanceStatus.PRESENT),
            now=SAT_MORNING,
        )


def test_manual_mark_date_must_match_session_day(school):
    with pytest.raises(InvalidStateError):
        school.container.attendance_service.mark(
            school.head,
            ManualMark(student_id=101, session_id=11, status=AttendanceStatus.PRESENT, attendance_date=SUNDAY),
            now=MONDAY,
        )


def test_bulk_mark(school):
    svc = school.container.attendance_service
    svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)

    outcomes = svc.bulk_mark(
        school.head,
        session_id=11,
        entries=[(101, AttendanceStatus.ABSENT), (102, AttendanceStatus.ABSENT)],
        now=SAT_NOON,
    )

    assert [o.created for o in outcomes] == [False, True]
    assert outcomes[0].status == AttendanceStatus.PRESENT
    assert outcomes[1].status == AttendanceStatus.ABSENT


def test_bulk_mark_validates_all_entries_first(school):
    svc = school.container.attendance_service

    with pytest.raises(InvalidStateError):
        svc.bulk_mark(
            school.head,
            session_id=11,
            entries=[(101, AttendanceStatus.PRESENT), (201, AttendanceStatus.PRESENT)],
            now=SAT_MORNING,
        )
    assert school.attendance.all() == []

    with pytest.raises(ValidationError):
        svc.bulk_mark(school.head, session_id=11, entries=[], now=SAT_MORNING)


# ----- corrections -----


def test_correct_changes_status(school):
    svc = school.container.attendance_service
    first = svc.mark(school.head, _scan(school, 102, 11), now=SAT_MORNING)

    outcome = svc.correct(
        school.assistant,
        attendance_id=first.record.attendance_id,
        status=AttendanceStatus.PRESENT,
        note="came to the early slot with a sibling",
    )

    assert outcome.status == AttendanceStatus.PRESENT
    assert outcome.label == "Corrected to present"
    stored = school.attendance.get_by_id(first.record.attendance_id)
    assert stored.status == AttendanceStatus.PRESENT
    assert stored.marked_by == 2
    assert stored.note == "came to the early slot with a sibling"
    assert stored.scan_time == SAT_MORNING


def test_correct_is_course_scoped_and_validated(school):
    svc = school.container.attendance_service
    first = svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)

    with pytest.raises(AuthorizationError):
        svc.correct(school.other_head, attendance_id=first.record.attendance_id, status=AttendanceStatus.ABSENT)
    with pytest.raises(ValidationError):
        svc.correct(school.head, attendance_id=first.record.attendance_id, status=AttendanceStatus.WRONG_SESSION)
    with pytest.raises(NotFoundError):
        svc.correct(school.head, attendance_id=999, status=AttendanceStatus.ABSENT)


def test_correct_rejects_overlong_note(school):
    svc = school.container.attendance_service
    first = svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)

    with pytest.raises(ValidationError, match="at most 255"):
        svc.correct(
            school.head,
            attendance_id=first.record.attendance_id,
            status=AttendanceStatus.ABSENT,
            note="x" * 1000,
        )

    stored = school.attendance.get_by_id(first.record.attendance_id)
    assert stored.status == AttendanceStatus.PRESENT
    assert stored.note is None

    outcome = svc.correct(
        school.head,
        attendance_id=first.record.attendance_id,
        status=AttendanceStatus.ABSENT,
        note="y" * 255,
    )
    assert outcome.record.note == "y" * 255


# ----- finalize absences -----


def test_finalize_marks_only_ended_sessions(school):
    svc = school.container.attendance_service

    # 09:00-11:00 has ended, 11:30-13:30 has not
    result = svc.finalize_absences(school.head, class_id=1, now=SAT_NOON)

    assert result.marked_absent == 1
    assert result.student_ids == [101]
    record = school.attendance.get_for_key(student_id=101, session_id=11, attendance_date=SATURDAY)
    assert record.status == AttendanceStatus.ABSENT
    assert record.marked_by == 1


def test_finalize_skips_recorded_students_and_is_repeatable(school):
    svc = school.container.attendance_service
    svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)

    result = svc.finalize_absences(school.head, class_id=1, now=SAT_EVENING)
    assert result.student_ids == [102]

    again = svc.finalize_absences(school.head, class_id=1, now=SAT_EVENING)
    assert again.marked_absent == 0
    assert school.attendance.get_for_key(student_id=101, session_id=11, attendance_date=SATURDAY).status == (
        AttendanceStatus.PRESENT
    )


def test_finalize_requires_head_teacher_of_the_course(school):
    svc = school.container.attendance_service

    with pytest.raises(AuthorizationError, match="Head Teacher"):
        svc.finalize_absences(school.assistant, class_id=1, now=SAT_EVENING)
    with pytest.raises(AuthorizationError):
        svc.finalize_absences(school.other_head, class_id=1, now=SAT_EVENING)
    with pytest.raises(NotFoundError):
        svc.finalize_absences(school.head, class_id=999, now=SAT_EVENING)


def test_finalize_rejects_future_and_weekday_dates(school):
    svc = school.container.attendance_service

    with pytest.raises(ValidationError):
        svc.finalize_absences(school.head, class_id=1, attendance_date=SUNDAY, now=SAT_EVENING)
    with pytest.raises(InvalidStateError):
        svc.finalize_absences(school.head, class_id=1, now=MONDAY)


# ----- roster and student QR -----


def test_session_roster_stats_during_session(school):
    svc = school.container.attendance_service
    svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)
    svc.mark(school.head, _scan(school, 102, 11), now=SAT_MORNING)

    roster = svc.session_roster(school.head, session_id=11, now=datetime(2026, 10, 17, 10, 0))

    assert [s.student_id for s in roster.students] == [101]
    assert len(roster.records) == 2
    assert roster.stats["presentCount"] == 1
    assert roster.stats["wrongSessionCount"] == 1
    assert roster.stats["absentCount"] == 0
    assert roster.stats["attendanceRate"] == 100
    assert roster.stats["totalStudents"] == 1
    assert roster.stats["sessionEnded"] is False


def test_session_roster_infers_absence_after_session(school):
    roster = school.container.attendance_service.session_roster(school.head, session_id=12, now=SAT_EVENING)

    assert roster.records == []
    assert roster.stats["absentCount"] == 1
    assert roster.stats["inferredAbsentCount"] == 1
    assert roster.stats["attendanceRate"] == 0
    assert roster.stats["sessionEnded"] is True
    assert school.attendance.all() == []


def test_student_qr_binds_to_the_student(school):
    svc = school.container.attendance_service

    student, payload = svc.student_qr(school.student_actor(101), now=SAT_MORNING)

    assert student.student_id == 101
    assert parse_payload(payload).matches(school.student(101))
    with pytest.raises(AuthorizationError):
        svc.student_qr(school.head)


def test_weekend_scenario(school):
    svc = school.container.attendance_service

    first = svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)
    repeat = svc.mark(school.head, _scan(school, 101, 11), now=SAT_MORNING)
    other_slot = svc.mark(school.head, _scan(school, 101, 12), now=datetime(2026, 10, 17, 11, 40))
    manual = svc.mark(
        school.head,
        ManualMark(student_id=101, session_id=11, status=AttendanceStatus.ABSENT),
        now=SAT_NOON,
    )

    assert first.status == AttendanceStatus.PRESENT
    assert repeat.record == first.record
    assert other_slot.created is True
    assert other_slot.status == AttendanceStatus.WRONG_SESSION
    assert other_slot.record.attendance_id != first.record.attendance_id
    assert manual.created is False
    assert manual.record == first.record
    assert len(school.attendance.all()) == 2
