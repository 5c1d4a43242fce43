from __future__ import annotations

import csv
import io

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.http import current_actor, date_range_args, ok, optional_int
from ..common.validators import require_status, require_weekday
from ..container import Container
from ..core.exceptions import ValidationError
from .service import EXPORT_FIELDS


def register(app: Flask, container: Container) -> None:
    reports = container.report_service

    def _write_export_csv(*, rows: list[dict], filename: str):
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=EXPORT_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

        csv_bytes = out.getvalue().encode("utf-8-sig")
        return app.response_class(
            csv_bytes,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    # ----- teacher -----

    @app.route("/api/teacher/attendance/overview", methods=["GET"], endpoint="api_teacher_overview")
    def teacher_overview():
        start, end = date_range_args(today=now_local().date())
        return ok(reports.course_overview(current_actor(), start=start, end=end))

    @app.route("/api/teacher/attendance/classes", methods=["GET"], endpoint="api_teacher_classes")
    def teacher_classes():
        start, end = date_range_args(today=now_local().date())
        data = reports.class_breakdown(
            current_actor(),
            start=start,
            end=end,
            session_id=optional_int(request.args.get("sessionId"), "session id"),
        )
        return ok(data)

    @app.route("/api/teacher/attendance/sessions", methods=["GET"], endpoint="api_teacher_sessions")
    def teacher_sessions():
        start, end = date_range_args(today=now_local().date())
        day = request.args.get("day")
        data = reports.session_history(
            current_actor(),
            start=start,
            end=end,
            class_id=optional_int(request.args.get("classId"), "class id"),
            day=require_weekday(day) if day else None,
        )
        return ok(data)

    @app.route("/api/teacher/attendance/students/search", methods=["GET"], endpoint="api_teacher_student_search")
    def teacher_student_search():
        return ok(reports.search_students(current_actor(), request.args.get("q", "")))

    @app.route("/api/teacher/attendance/students/<int:student_id>", methods=["GET"], endpoint="api_teacher_student")
    def teacher_student(student_id: int):
        start, end = date_range_args(today=now_local().date())
        return ok(reports.student_history(current_actor(), student_id, start=start, end=end))

    @app.route("/api/teacher/attendance/export", methods=["GET"], endpoint="api_teacher_export")
    def teacher_export():
        fmt = (request.args.get("format") or "csv").lower()
        if fmt not in {"csv", "json"}:
            raise ValidationError("Format must be csv or json")

        start, end = date_range_args(today=now_local().date(), required=True)
        status = request.args.get("status")
        rows = reports.export_rows(
            current_actor(),
            start=start,
            end=end,
            class_id=optional_int(request.args.get("classId"), "class id"),
            session_id=optional_int(request.args.get("sessionId"), "session id"),
            status=require_status(status) if status else None,
        )

        if fmt == "json":
            return ok({"dateRange": {"startDate": start.isoformat(), "endDate": end.isoformat()}, "rows": rows})
        return _write_export_csv(rows=rows, filename=f"attendance_{start.isoformat()}_{end.isoformat()}.csv")

    # ----- student -----

    @app.route("/api/student/attendance", methods=["GET"], endpoint="api_student_attendance")
    def student_attendance():
        limit = optional_int(request.args.get("limit"), "limit")
        return ok(reports.own_history(current_actor(), limit=limit))

    # ----- admin -----

    @app.route("/api/admin/attendance/courses", methods=["GET"], endpoint="api_admin_courses")
    def admin_courses():
        start, end = date_range_args(today=now_local().date())
        return ok(reports.all_courses(current_actor(), start=start, end=end))

    @app.route("/api/admin/attendance/courses/<int:course_id>", methods=["GET"], endpoint="api_admin_course")
    def admin_course(course_id: int):
        start, end = date_range_args(today=now_local().date())
        return ok(reports.admin_course(current_actor(), course_id, start=start, end=end))

    @app.route("/api/admin/attendance/students/<int:student_id>", methods=["GET"], endpoint="api_admin_student")
    def admin_student(student_id: int):
        start, end = date_range_args(today=now_local().date())
        return ok(reports.admin_student_history(current_actor(), student_id, start=start, end=end))
