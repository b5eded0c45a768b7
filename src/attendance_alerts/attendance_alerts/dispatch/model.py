from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import Channel, FailureKind, TriggerKind


@dataclass(frozen=True)
class DispatchError:
    recipient_contact: str
    subject_id: Optional[int]
    channel: Channel
    error: str
    failure_kind: Optional[FailureKind] = None

    def to_dict(self) -> dict:
        return {
            "recipient_contact": self.recipient_contact,
            "subject_id": self.subject_id,
            "channel": self.channel.value,
            "error": self.error,
            "failure_kind": self.failure_kind.value if self.failure_kind else None,
        }


@dataclass
class BatchResult:
    """Counts for one dispatch_batch call.

    ``attempted`` is sends actually handed to a provider (sent + failed);
    ``truncated`` means the deadline expired before every pair was started.
    """

    trigger_kind: TriggerKind
    owner_id: int
    as_of_date: date
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    truncated: bool = False
    errors: list[DispatchError] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.sent + self.failed

    def to_dict(self) -> dict:
        return {
            "trigger_kind": self.trigger_kind.value,
            "owner_id": self.owner_id,
            "date": self.as_of_date.isoformat(),
            "attempted": self.attempted,
            "sent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
            "truncated": self.truncated,
            "errors": [e.to_dict() for e in self.errors],
        }
