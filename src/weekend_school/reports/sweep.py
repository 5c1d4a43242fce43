"""Read-time absence inference.

A session-date is *held* once its date has passed, or it is today and the
session end time has passed. For a held session-date, every student assigned to
the session who has no ledger record for it counts as absent. Nothing here
writes to the ledger.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Mapping, Sequence

from ..attendance.model import AttendanceRecord
from ..catalog.model import ClassSession
from ..common.datetime_utils import iter_weekdays
from ..core.enums import AttendanceStatus


def attendance_rate(present: int, absent: int) -> int:
    """round(present / (present + absent) * 100), halves rounded up; 0 when empty."""

    total = present + absent
    if total <= 0:
        return 0
    return (200 * present + total) // (2 * total)


@dataclass(frozen=True)
class AttendanceCounts:
    present: int = 0
    absent: int = 0
    wrong_session: int = 0
    inferred_absent: int = 0

    @property
    def total_absent(self) -> int:
        return self.absent + self.inferred_absent

    @property
    def recorded(self) -> int:
        return self.present + self.absent + self.wrong_session

    @property
    def rate(self) -> int:
        return attendance_rate(self.present, self.total_absent)

    def __add__(self, other: "AttendanceCounts") -> "AttendanceCounts":
        return AttendanceCounts(
            present=self.present + other.present,
            absent=self.absent + other.absent,
            wrong_session=self.wrong_session + other.wrong_session,
            inferred_absent=self.inferred_absent + other.inferred_absent,
        )

    @classmethod
    def of(cls, statuses: Iterable[AttendanceStatus], *, inferred_absent: int = 0) -> "AttendanceCounts":
        tally = {s: 0 for s in AttendanceStatus}
        for s in statuses:
            tally[s] += 1
        return cls(
            present=tally[AttendanceStatus.PRESENT],
            absent=tally[AttendanceStatus.ABSENT],
            wrong_session=tally[AttendanceStatus.WRONG_SESSION],
            inferred_absent=inferred_absent,
        )

    def to_dict(self) -> dict:
        return {
            "presentCount": self.present,
            "absentCount": self.total_absent,
            "recordedAbsentCount": self.absent,
            "inferredAbsentCount": self.inferred_absent,
            "wrongSessionCount": self.wrong_session,
            "totalRecords": self.recorded,
            "attendanceRate": self.rate,
        }


def session_has_ended(session: ClassSession, day: date, now: datetime) -> bool:
    today = now.date()
    if day != today:
        return day < today
    return now.time() >= session.ends_at


def held_dates(session: ClassSession, start: date, end: date, *, now: datetime) -> list[date]:
    """Dates in [start, end] on which the session has already taken place."""

    last = min(end, now.date())
    return [d for d in iter_weekdays(start, last, session.day) if session_has_ended(session, d, now)]


@dataclass(frozen=True)
class SessionDayTally:
    session: ClassSession
    attendance_date: date
    counts: AttendanceCounts
    expected: int
    held: bool
    missing_student_ids: tuple[int, ...] = field(default_factory=tuple)
    records: tuple[AttendanceRecord, ...] = field(default_factory=tuple)


def sweep(
    sessions: Sequence[ClassSession],
    roster: Mapping[int, Iterable[int]],
    records: Iterable[AttendanceRecord],
    *,
    start: date,
    end: date,
    now: datetime,
) -> list[SessionDayTally]:
    """Tally every session-date in range that was held or has explicit records.

    `roster` maps session_id to the students currently assigned to it. Records for
    sessions not in `sessions` or dates outside the range are ignored.
    """

    by_id = {s.session_id: s for s in sessions}
    assigned = {sid: frozenset(ids) for sid, ids in roster.items()}

    by_key: dict[tuple[int, date], list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        if r.session_id in by_id and start <= r.attendance_date <= end:
            by_key[(r.session_id, r.attendance_date)].append(r)

    keys = set(by_key)
    for s in sessions:
        keys.update((s.session_id, d) for d in held_dates(s, start, end, now=now))

    out: list[SessionDayTally] = []
    for session_id, day in keys:
        session = by_id[session_id]
        recs = by_key.get((session_id, day), [])
        expected = assigned.get(session_id, frozenset())
        held = session_has_ended(session, day, now)

        missing: tuple[int, ...] = ()
        if held:
            seen = {r.student_id for r in recs}
            missing = tuple(sorted(expected - seen))

        out.append(
            SessionDayTally(
                session=session,
                attendance_date=day,
                counts=AttendanceCounts.of((r.status for r in recs), inferred_absent=len(missing)),
                expected=len(expected),
                held=held,
                missing_student_ids=missing,
                records=tuple(recs),
            )
        )

    out.sort(key=lambda t: (-t.attendance_date.toordinal(), t.session.class_name, t.session.start_time))
    return out


def total(tallies: Iterable[SessionDayTally]) -> AttendanceCounts:
    counts = AttendanceCounts()
    for t in tallies:
        counts = counts + t.counts
    return counts
