from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import Channel, DeliveryStatus, FailureKind, TriggerKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import DeliveryRecord
from .repository import DeliveryLogRepository

_COLUMNS = (
    "id, type, owner_id, recipient_contact, subject_id, channel, status, "
    "provider_ref, error, failure_kind, sent_at, event_date"
)


def _to_record(r: dict) -> DeliveryRecord:
    return DeliveryRecord(
        record_id=int(r["id"]),
        notification_type=TriggerKind(r["type"]),
        owner_id=int(r["owner_id"]) if r.get("owner_id") is not None else None,
        recipient_contact=r["recipient_contact"],
        subject_id=int(r["subject_id"]) if r.get("subject_id") is not None else None,
        channel=Channel(r["channel"]),
        status=DeliveryStatus(r["status"]),
        sent_at=r["sent_at"],
        provider_ref=r.get("provider_ref"),
        error=r.get("error"),
        failure_kind=FailureKind(r["failure_kind"]) if r.get("failure_kind") else None,
        event_date=r.get("event_date"),
    )


class MySQLDeliveryLogRepository(DeliveryLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, record: DeliveryRecord) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notification_log(
                    type, owner_id, recipient_contact, subject_id, channel, status,
                    provider_ref, error, failure_kind, sent_at, event_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record.notification_type.value,
                    record.owner_id,
                    record.recipient_contact,
                    record.subject_id,
                    record.channel.value,
                    record.status.value,
                    record.provider_ref,
                    record.error[:500] if record.error else None,
                    record.failure_kind.value if record.failure_kind else None,
                    record.sent_at,
                    record.event_date,
                ),
            )
            return int(cur.lastrowid)

    def latest_sent(
        self,
        *,
        notification_type: TriggerKind,
        channel: Channel,
        subject_id: Optional[int] = None,
        recipient_contact: Optional[str] = None,
        event_date: Optional[date] = None,
    ) -> Optional[DeliveryRecord]:
        clauses, keys = [], []
        if subject_id is not None:
            clauses.append("subject_id=%s")
            keys.append(int(subject_id))
        if recipient_contact:
            clauses.append("recipient_contact=%s")
            keys.append(recipient_contact)
        if not clauses:
            return None
        if event_date is not None:
            clauses.append("event_date=%s")
            keys.append(event_date)
        key_clause = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM notification_log
                WHERE type=%s AND channel=%s AND status=%s AND {key_clause}
                ORDER BY sent_at DESC, id DESC
                LIMIT 1
                """,
                (notification_type.value, channel.value, DeliveryStatus.SENT.value, *keys),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def latest_for_contact(self, *, recipient_contact: str, channel: Channel) -> Optional[DeliveryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM notification_log
                WHERE recipient_contact=%s AND channel=%s AND status IN (%s, %s)
                ORDER BY sent_at DESC, id DESC
                LIMIT 1
                """,
                (recipient_contact, channel.value, DeliveryStatus.SENT.value, DeliveryStatus.FAILED.value),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def recent_for_owner(self, *, owner_id: int, limit: int) -> Sequence[DeliveryRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM notification_log
                WHERE owner_id=%s
                ORDER BY sent_at DESC, id DESC
                LIMIT %s
                """,
                (int(owner_id), int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_by_status(self, *, owner_id: int, since: datetime) -> dict[DeliveryStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status, COUNT(*) AS total
                FROM notification_log
                WHERE owner_id=%s AND sent_at >= %s
                GROUP BY status
                """,
                (int(owner_id), since),
            )
            counts = {status: 0 for status in DeliveryStatus}
            for r in fetchall(cur):
                counts[DeliveryStatus(r["status"])] = int(r["total"])
            return counts
