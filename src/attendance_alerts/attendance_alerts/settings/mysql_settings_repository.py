from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import TriggerKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import NotificationSettings
from .repository import SettingsRepository

_ALERT_COLUMN = {
    TriggerKind.ABSENCE: "absence_alerts",
    TriggerKind.LOW_ATTENDANCE: "low_attendance_alerts",
    TriggerKind.WEEKLY_REPORT: "weekly_reports",
    TriggerKind.MONTHLY_REPORT: "monthly_reports",
}


class MySQLSettingsRepository(SettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_owner(self, owner_id: int) -> Optional[NotificationSettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT owner_id, email_enabled, sms_enabled, absence_alerts, low_attendance_alerts,
                       weekly_reports, monthly_reports, low_attendance_threshold, schedule_day, schedule_time
                FROM notification_settings
                WHERE owner_id=%s
                """,
                (int(owner_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return NotificationSettings(
                owner_id=int(r["owner_id"]),
                email_enabled=bool(r["email_enabled"]),
                sms_enabled=bool(r["sms_enabled"]),
                absence_alerts=bool(r["absence_alerts"]),
                low_attendance_alerts=bool(r["low_attendance_alerts"]),
                weekly_reports=bool(r["weekly_reports"]),
                monthly_reports=bool(r["monthly_reports"]),
                low_attendance_threshold=int(r["low_attendance_threshold"]),
                schedule_day=str(r["schedule_day"]),
                schedule_time=str(r["schedule_time"])[:5],
            )

    def save(self, settings: NotificationSettings) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notification_settings(
                    owner_id, email_enabled, sms_enabled, absence_alerts, low_attendance_alerts,
                    weekly_reports, monthly_reports, low_attendance_threshold, schedule_day, schedule_time
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    email_enabled=VALUES(email_enabled),
                    sms_enabled=VALUES(sms_enabled),
                    absence_alerts=VALUES(absence_alerts),
                    low_attendance_alerts=VALUES(low_attendance_alerts),
                    weekly_reports=VALUES(weekly_reports),
                    monthly_reports=VALUES(monthly_reports),
                    low_attendance_threshold=VALUES(low_attendance_threshold),
                    schedule_day=VALUES(schedule_day),
                    schedule_time=VALUES(schedule_time)
                """,
                (
                    int(settings.owner_id),
                    int(settings.email_enabled),
                    int(settings.sms_enabled),
                    int(settings.absence_alerts),
                    int(settings.low_attendance_alerts),
                    int(settings.weekly_reports),
                    int(settings.monthly_reports),
                    int(settings.low_attendance_threshold),
                    settings.schedule_day,
                    settings.schedule_time,
                ),
            )

    def list_owner_ids_with(self, kind: TriggerKind) -> Sequence[int]:
        column = _ALERT_COLUMN.get(kind)
        where = f"{column}=1 AND " if column else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT owner_id
                FROM notification_settings
                WHERE {where}(email_enabled=1 OR sms_enabled=1)
                ORDER BY owner_id ASC
                """
            )
            return [int(r["owner_id"]) for r in fetchall(cur)]
