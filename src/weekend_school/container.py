from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .auth.mysql_account_repository import MySQLAccountRepository
from .auth.repository import AccountRepository
from .auth.service import AuthService
from .catalog.mysql_catalog_repository import MySQLCatalogRepository
from .catalog.repository import CatalogRepository
from .database.connection import DBConfig, DatabaseConnection
from .reports.service import ReportService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection | None

    accounts_repo: AccountRepository
    catalog_repo: CatalogRepository
    students_repo: StudentRepository
    attendance_repo: AttendanceRepository

    auth_service: AuthService
    attendance_service: AttendanceService
    report_service: ReportService


def wire(
    *,
    accounts_repo: AccountRepository,
    catalog_repo: CatalogRepository,
    students_repo: StudentRepository,
    attendance_repo: AttendanceRepository,
    conn: DatabaseConnection | None = None,
) -> Container:
    """Build the services over any set of repositories."""

    return Container(
        conn=conn,
        accounts_repo=accounts_repo,
        catalog_repo=catalog_repo,
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        auth_service=AuthService(accounts_repo, students_repo),
        attendance_service=AttendanceService(attendance_repo, catalog_repo, students_repo),
        report_service=ReportService(attendance_repo, catalog_repo, students_repo),
    )


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return wire(
        conn=conn,
        accounts_repo=MySQLAccountRepository(conn),
        catalog_repo=MySQLCatalogRepository(conn),
        students_repo=MySQLStudentRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
    )
