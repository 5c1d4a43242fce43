from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..common.http import current_actor, json_body, ok, optional_date
from ..common.validators import require_non_empty, require_positive_int, require_status
from ..container import Container
from ..core.exceptions import ValidationError
from ..reports.service import session_to_dict, student_to_dict
from .model import AttendanceRecord, MarkOutcome
from .qr import decode_image, render_png
from .service import MANUAL_STATUSES, ManualMark, ScanMark


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "id": r.attendance_id,
        "studentId": r.student_id,
        "sessionId": r.session_id,
        "date": r.attendance_date.isoformat(),
        "status": r.status.value,
        "scanTime": r.scan_time.isoformat() if r.scan_time else None,
        "markedBy": r.marked_by,
        "note": r.note,
    }


def outcome_to_dict(o: MarkOutcome) -> dict:
    return {
        "attendance": record_to_dict(o.record),
        "student": student_to_dict(o.student),
        "session": session_to_dict(o.session),
        "created": o.created,
        "status": o.status.value,
        "message": o.label,
    }


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _outcome_response(outcome: MarkOutcome):
        return ok(outcome_to_dict(outcome), 201 if outcome.created else 200)

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="api_scan")
    def scan():
        data = json_body()
        request_ = ScanMark(
            payload=require_non_empty(data.get("qrData"), "QR data"),
            session_id=require_positive_int(data.get("sessionId"), "session id"),
        )
        return _outcome_response(service.mark(current_actor(), request_))

    @app.route("/api/attendance/scan/image", methods=["POST"], endpoint="api_scan_image")
    def scan_image():
        upload = request.files.get("image")
        if upload is None or not upload.filename:
            raise ValidationError("Image file is required")
        session_id = require_positive_int(request.form.get("sessionId"), "session id")
        request_ = ScanMark(payload=decode_image(upload.stream), session_id=session_id)
        return _outcome_response(service.mark(current_actor(), request_))

    @app.route("/api/attendance/scan/manual", methods=["POST"], endpoint="api_scan_manual")
    def scan_manual():
        data = json_body()
        request_ = ManualMark(
            student_id=require_positive_int(data.get("studentId"), "student id"),
            session_id=require_positive_int(data.get("sessionId"), "session id"),
            status=require_status(data.get("status"), allowed=MANUAL_STATUSES),
            attendance_date=optional_date(data.get("date")),
        )
        return _outcome_response(service.mark(current_actor(), request_))

    @app.route("/api/attendance/scan/bulk", methods=["POST"], endpoint="api_scan_bulk")
    def scan_bulk():
        data = json_body()
        items = data.get("attendanceRecords")
        if not isinstance(items, list) or not items:
            raise ValidationError("At least one attendance record required")

        entries = []
        for item in items:
            if not isinstance(item, dict):
                raise ValidationError("Invalid attendance record")
            entries.append(
                (
                    require_positive_int(item.get("studentId"), "student id"),
                    require_status(item.get("status"), allowed=MANUAL_STATUSES),
                )
            )

        outcomes = service.bulk_mark(
            current_actor(),
            session_id=require_positive_int(data.get("sessionId"), "session id"),
            entries=entries,
            attendance_date=optional_date(data.get("date")),
        )
        return ok(
            {
                "created": sum(1 for o in outcomes if o.created),
                "unchanged": sum(1 for o in outcomes if not o.created),
                "results": [outcome_to_dict(o) for o in outcomes],
            }
        )

    @app.route("/api/attendance/records/<int:attendance_id>/correct", methods=["POST"], endpoint="api_correct")
    def correct(attendance_id: int):
        data = json_body()
        outcome = service.correct(
            current_actor(),
            attendance_id=attendance_id,
            status=require_status(data.get("status"), allowed=MANUAL_STATUSES),
            note=data.get("note"),
        )
        return _outcome_response(outcome)

    @app.route("/api/attendance/auto-mark-absent", methods=["POST"], endpoint="api_auto_mark_absent")
    def auto_mark_absent():
        data = json_body()
        result = service.finalize_absences(
            current_actor(),
            class_id=require_positive_int(data.get("classId"), "class id"),
            attendance_date=optional_date(data.get("date")),
        )
        return ok(
            {
                "markedAbsent": result.marked_absent,
                "studentIds": result.student_ids,
                "message": f"Marked {result.marked_absent} students as absent",
            }
        )

    @app.route("/api/attendance/scan/session/<int:session_id>", methods=["GET"], endpoint="api_session_roster")
    def session_roster(session_id: int):
        roster = service.session_roster(
            current_actor(),
            session_id=session_id,
            attendance_date=optional_date(request.args.get("date")),
        )
        by_student = {r.student_id: r for r in roster.records}
        return ok(
            {
                "session": session_to_dict(roster.session),
                "date": roster.attendance_date.isoformat(),
                "students": [
                    {
                        **student_to_dict(s),
                        "attendance": record_to_dict(by_student[s.student_id]) if s.student_id in by_student else None,
                    }
                    for s in roster.students
                ],
                "attendance": [record_to_dict(r) for r in roster.records],
                "stats": roster.stats,
            }
        )

    @app.route("/api/student/qr", methods=["GET"], endpoint="api_student_qr")
    def student_qr():
        student, payload = service.student_qr(current_actor())
        return ok({"qrData": payload, "student": student_to_dict(student)})

    @app.route("/api/student/qr/image", methods=["GET"], endpoint="api_student_qr_image")
    def student_qr_image():
        student, payload = service.student_qr(current_actor())
        png = render_png(payload, box_size=int(app.config.get("QR_BOX_SIZE", 10)))
        return send_file(
            io.BytesIO(png),
            mimetype="image/png",
            download_name=f"qr_{student.student_number}.png",
        )
