from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import Channel, DeliveryStatus, FailureKind, TriggerKind


@dataclass(frozen=True)
class DeliveryRecord:
    """One row of the append-only delivery log."""

    record_id: Optional[int]
    notification_type: TriggerKind
    owner_id: Optional[int]
    recipient_contact: str
    subject_id: Optional[int]
    channel: Channel
    status: DeliveryStatus
    sent_at: datetime
    provider_ref: Optional[str] = None
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    # Day the notice is about (the absence date); None for test messages.
    event_date: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "type": self.notification_type.value,
            "owner_id": self.owner_id,
            "recipient_contact": self.recipient_contact,
            "subject_id": self.subject_id,
            "channel": self.channel.value,
            "status": self.status.value,
            "provider_ref": self.provider_ref,
            "error": self.error,
            "failure_kind": self.failure_kind.value if self.failure_kind else None,
            "sent_at": self.sent_at.strftime("%Y-%m-%d %H:%M:%S"),
            "event_date": self.event_date.isoformat() if self.event_date else None,
        }
