from __future__ import annotations

from datetime import date, timedelta
from typing import Sequence

from ..core.enums import PreferredChannel
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AttendanceStats, GuardianContact, SubjectInfo
from .source import AttendanceSource

_SUBJECT_COLUMNS = """
    s.id AS subject_id, s.name, s.roll_number,
    c.id AS class_id, c.name AS class_name, c.section, c.teacher_id
"""


def _to_subject(r: dict) -> SubjectInfo:
    return SubjectInfo(
        subject_id=int(r["subject_id"]),
        name=str(r["name"]),
        roll_number=r.get("roll_number"),
        class_id=int(r["class_id"]),
        class_name=str(r["class_name"]),
        section=r.get("section"),
        owner_id=int(r["teacher_id"]),
    )


class MySQLAttendanceSource(AttendanceSource):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_absent(self, owner_id: int, on_date: date) -> Sequence[SubjectInfo]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT DISTINCT {_SUBJECT_COLUMNS}
                FROM attendance a
                JOIN students s ON s.id = a.student_id
                JOIN classes c ON c.id = a.class_id
                WHERE c.teacher_id=%s AND a.date=%s AND a.status='absent'
                ORDER BY c.name ASC, s.name ASC
                """,
                (int(owner_id), on_date),
            )
            return [_to_subject(r) for r in fetchall(cur)]

    def list_subjects(self, owner_id: int) -> Sequence[SubjectInfo]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SUBJECT_COLUMNS}
                FROM students s
                JOIN classes c ON c.id = s.class_id
                WHERE c.teacher_id=%s
                ORDER BY c.name ASC, s.name ASC
                """,
                (int(owner_id),),
            )
            return [_to_subject(r) for r in fetchall(cur)]

    def attendance_stats(self, subject_id: int, window_days: int, as_of: date) -> AttendanceStats:
        start = as_of - timedelta(days=int(window_days))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status, COUNT(*) AS total
                FROM attendance
                WHERE student_id=%s AND date BETWEEN %s AND %s
                GROUP BY status
                """,
                (int(subject_id), start, as_of),
            )
            counts = {str(r["status"]): int(r["total"]) for r in fetchall(cur)}
        return AttendanceStats(
            present=counts.get("present", 0),
            absent=counts.get("absent", 0),
            late=counts.get("late", 0),
            excused=counts.get("excused", 0),
        )

    def contacts_for(self, subject_id: int) -> Sequence[GuardianContact]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, name, email, phone, preferred_channel
                FROM guardians
                WHERE student_id=%s
                ORDER BY id ASC
                """,
                (int(subject_id),),
            )
            return [
                GuardianContact(
                    guardian_id=int(r["id"]),
                    name=r.get("name"),
                    email=r.get("email"),
                    phone=r.get("phone"),
                    preferred_channel=PreferredChannel(r.get("preferred_channel") or "email"),
                )
                for r in fetchall(cur)
            ]
