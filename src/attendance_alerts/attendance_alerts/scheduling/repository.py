from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import TriggerKind
from .model import ScheduleEntry


class ScheduleRepository(Protocol):
    def list_due(self, now: datetime) -> Sequence[ScheduleEntry]:
        """Active entries with next_run <= now, oldest first."""

        raise NotImplementedError

    def get(self, entry_id: int) -> Optional[ScheduleEntry]:
        raise NotImplementedError

    def list_for_owner(self, owner_id: int) -> Sequence[ScheduleEntry]:
        raise NotImplementedError

    def find_active(self, *, owner_id: Optional[int], trigger_kind: TriggerKind) -> Optional[ScheduleEntry]:
        raise NotImplementedError

    def owner_ids_with_active(self, trigger_kind: TriggerKind) -> set[int]:
        raise NotImplementedError

    def add(self, entry: ScheduleEntry) -> int:
        raise NotImplementedError

    def update_anchor(self, *, entry_id: int, anchor_day: Optional[int], anchor_time: str, next_run: datetime) -> None:
        raise NotImplementedError

    def mark_run(self, *, entry_id: int, last_run: datetime, next_run: datetime) -> None:
        raise NotImplementedError

    def set_active(self, *, entry_id: int, active: bool, next_run: Optional[datetime] = None) -> bool:
        raise NotImplementedError
