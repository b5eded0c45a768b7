from __future__ import annotations

from typing import Sequence

from ..core.enums import AlertSeverity
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import OwnerAlert
from .repository import AlertRepository


class MySQLAlertRepository(AlertRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, alert: OwnerAlert) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO owner_alerts(owner_id, severity, title, message, is_read, created_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(alert.owner_id),
                    alert.severity.value,
                    alert.title[:190],
                    alert.message[:1000],
                    int(alert.is_read),
                    alert.created_at,
                ),
            )
            return int(cur.lastrowid)

    def list_unread(self, *, owner_id: int, limit: int) -> Sequence[OwnerAlert]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, owner_id, severity, title, message, is_read, created_at
                FROM owner_alerts
                WHERE owner_id=%s AND is_read=0
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (int(owner_id), int(limit)),
            )
            return [
                OwnerAlert(
                    alert_id=int(r["id"]),
                    owner_id=int(r["owner_id"]),
                    severity=AlertSeverity(r["severity"]),
                    title=r["title"],
                    message=r["message"],
                    created_at=r["created_at"],
                    is_read=bool(r["is_read"]),
                )
                for r in fetchall(cur)
            ]

    def mark_read(self, *, owner_id: int, alert_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE owner_alerts SET is_read=1 WHERE id=%s AND owner_id=%s",
                (int(alert_id), int(owner_id)),
            )
            return cur.rowcount > 0

    def mark_all_read(self, *, owner_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE owner_alerts SET is_read=1 WHERE owner_id=%s AND is_read=0", (int(owner_id),))
            return int(cur.rowcount)

    def counts(self, *, owner_id: int) -> dict[str, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS total, COALESCE(SUM(is_read=0), 0) AS unread
                FROM owner_alerts
                WHERE owner_id=%s
                """,
                (int(owner_id),),
            )
            r = fetchone(cur) or {}
            return {"total": int(r.get("total") or 0), "unread": int(r.get("unread") or 0)}
