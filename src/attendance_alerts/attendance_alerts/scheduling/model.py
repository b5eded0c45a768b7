from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RecurrenceKind, TriggerKind


@dataclass(frozen=True)
class ScheduleEntry:
    """A recurring trigger.

    ``owner_id`` is None for system sweeps, which fire for every owner with
    the trigger kind enabled. ``anchor_day`` is a weekday (0=Monday) for
    weekly entries, a day of month (1-31) for monthly ones and unused for
    daily ones.
    """

    entry_id: Optional[int]
    owner_id: Optional[int]
    trigger_kind: TriggerKind
    recurrence: RecurrenceKind
    anchor_day: Optional[int]
    anchor_time: str
    next_run: datetime
    active: bool = True
    last_run: Optional[datetime] = None
    message: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_system(self) -> bool:
        return self.owner_id is None

    def to_dict(self) -> dict:
        fmt = "%Y-%m-%d %H:%M:%S"
        return {
            "id": self.entry_id,
            "owner_id": self.owner_id,
            "trigger_kind": self.trigger_kind.value,
            "recurrence": self.recurrence.value,
            "anchor_day": self.anchor_day,
            "anchor_time": self.anchor_time,
            "active": self.active,
            "last_run": self.last_run.strftime(fmt) if self.last_run else None,
            "next_run": self.next_run.strftime(fmt),
            "message": self.message,
        }
