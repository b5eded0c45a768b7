from __future__ import annotations

from typing import Protocol, Sequence

from .model import OwnerAlert


class AlertRepository(Protocol):
    def add(self, alert: OwnerAlert) -> int:
        raise NotImplementedError

    def list_unread(self, *, owner_id: int, limit: int) -> Sequence[OwnerAlert]:
        raise NotImplementedError

    def mark_read(self, *, owner_id: int, alert_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, *, owner_id: int) -> int:
        raise NotImplementedError

    def counts(self, *, owner_id: int) -> dict[str, int]:
        """{"total": ..., "unread": ...}"""

        raise NotImplementedError
