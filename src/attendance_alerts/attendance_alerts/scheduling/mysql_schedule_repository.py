from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import RecurrenceKind, TriggerKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ScheduleEntry
from .repository import ScheduleRepository

_COLUMNS = (
    "id, owner_id, trigger_kind, recurrence_kind, anchor_day, anchor_time, message, "
    "active, last_run, next_run, created_at"
)


def _to_entry(r: dict) -> ScheduleEntry:
    return ScheduleEntry(
        entry_id=int(r["id"]),
        owner_id=int(r["owner_id"]) if r.get("owner_id") is not None else None,
        trigger_kind=TriggerKind(r["trigger_kind"]),
        recurrence=RecurrenceKind(r["recurrence_kind"]),
        anchor_day=int(r["anchor_day"]) if r.get("anchor_day") is not None else None,
        anchor_time=str(r["anchor_time"])[:5],
        next_run=r["next_run"],
        active=bool(r["active"]),
        last_run=r.get("last_run"),
        message=r.get("message"),
        created_at=r.get("created_at"),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_due(self, now: datetime) -> Sequence[ScheduleEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM scheduled_notifications
                WHERE active=1 AND next_run <= %s
                ORDER BY next_run ASC, id ASC
                """,
                (now,),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def get(self, entry_id: int) -> Optional[ScheduleEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM scheduled_notifications WHERE id=%s", (int(entry_id),))
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def list_for_owner(self, owner_id: int) -> Sequence[ScheduleEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM scheduled_notifications
                WHERE owner_id=%s
                ORDER BY active DESC, next_run ASC
                """,
                (int(owner_id),),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def find_active(self, *, owner_id: Optional[int], trigger_kind: TriggerKind) -> Optional[ScheduleEntry]:
        owner_clause = "owner_id IS NULL" if owner_id is None else "owner_id=%s"
        params: tuple = (trigger_kind.value,) if owner_id is None else (trigger_kind.value, int(owner_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM scheduled_notifications
                WHERE active=1 AND trigger_kind=%s AND {owner_clause}
                ORDER BY id ASC
                LIMIT 1
                """,
                params,
            )
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def owner_ids_with_active(self, trigger_kind: TriggerKind) -> set[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT owner_id
                FROM scheduled_notifications
                WHERE active=1 AND trigger_kind=%s AND owner_id IS NOT NULL
                """,
                (trigger_kind.value,),
            )
            return {int(r["owner_id"]) for r in fetchall(cur)}

    def add(self, entry: ScheduleEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO scheduled_notifications(
                    owner_id, trigger_kind, recurrence_kind, anchor_day, anchor_time, message,
                    active, last_run, next_run
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    entry.owner_id,
                    entry.trigger_kind.value,
                    entry.recurrence.value,
                    entry.anchor_day,
                    entry.anchor_time,
                    entry.message,
                    int(entry.active),
                    entry.last_run,
                    entry.next_run,
                ),
            )
            return int(cur.lastrowid)

    def update_anchor(self, *, entry_id: int, anchor_day: Optional[int], anchor_time: str, next_run: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE scheduled_notifications SET anchor_day=%s, anchor_time=%s, next_run=%s WHERE id=%s",
                (anchor_day, anchor_time, next_run, int(entry_id)),
            )

    def mark_run(self, *, entry_id: int, last_run: datetime, next_run: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE scheduled_notifications SET last_run=%s, next_run=%s WHERE id=%s",
                (last_run, next_run, int(entry_id)),
            )

    def set_active(self, *, entry_id: int, active: bool, next_run: Optional[datetime] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if next_run is None:
                cur.execute(
                    "UPDATE scheduled_notifications SET active=%s WHERE id=%s",
                    (int(active), int(entry_id)),
                )
            else:
                cur.execute(
                    "UPDATE scheduled_notifications SET active=%s, next_run=%s WHERE id=%s",
                    (int(active), next_run, int(entry_id)),
                )
            return cur.rowcount > 0
