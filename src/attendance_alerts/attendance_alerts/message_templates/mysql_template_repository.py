from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import TemplateType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Template
from .repository import TemplateRepository


def _to_template(r: dict) -> Template:
    return Template(
        template_id=int(r["id"]),
        type=TemplateType(r["type"]),
        content=r["content"],
        owner_id=int(r["owner_id"]) if r.get("owner_id") is not None else None,
        is_global=bool(r["is_global"]),
    )


class MySQLTemplateRepository(TemplateRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_owner_template(self, *, owner_id: int, type: TemplateType) -> Optional[Template]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, owner_id, type, content, is_global
                FROM notification_templates
                WHERE owner_id=%s AND type=%s AND is_global=0
                ORDER BY id DESC
                LIMIT 1
                """,
                (int(owner_id), type.value),
            )
            r = fetchone(cur)
            return _to_template(r) if r else None

    def find_global_template(self, *, type: TemplateType) -> Optional[Template]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, owner_id, type, content, is_global
                FROM notification_templates
                WHERE is_global=1 AND type=%s
                ORDER BY id DESC
                LIMIT 1
                """,
                (type.value,),
            )
            r = fetchone(cur)
            return _to_template(r) if r else None

    def list_for_owner(self, *, owner_id: int) -> Sequence[Template]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, owner_id, type, content, is_global
                FROM notification_templates
                WHERE owner_id=%s OR is_global=1
                ORDER BY is_global ASC, type ASC
                """,
                (int(owner_id),),
            )
            return [_to_template(r) for r in fetchall(cur)]

    def save_owner_template(self, *, owner_id: int, type: TemplateType, content: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id FROM notification_templates WHERE owner_id=%s AND type=%s AND is_global=0",
                (int(owner_id), type.value),
            )
            existing = fetchone(cur)
            if existing:
                cur.execute(
                    "UPDATE notification_templates SET content=%s WHERE id=%s",
                    (content, int(existing["id"])),
                )
                return int(existing["id"])

            cur.execute(
                """
                INSERT INTO notification_templates(owner_id, type, content, is_global)
                VALUES(%s,%s,%s,0)
                """,
                (int(owner_id), type.value, content),
            )
            return int(cur.lastrowid)

    def delete_owner_template(self, *, owner_id: int, type: TemplateType) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM notification_templates WHERE owner_id=%s AND type=%s AND is_global=0",
                (int(owner_id), type.value),
            )
            return cur.rowcount > 0

    def ensure_global_template(self, *, type: TemplateType, content: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id FROM notification_templates WHERE is_global=1 AND type=%s LIMIT 1",
                (type.value,),
            )
            if fetchone(cur):
                return False
            cur.execute(
                """
                INSERT INTO notification_templates(owner_id, type, content, is_global)
                VALUES(NULL,%s,%s,1)
                """,
                (type.value, content),
            )
            return True
