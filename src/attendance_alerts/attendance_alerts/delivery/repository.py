from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Channel, DeliveryStatus, TriggerKind
from .model import DeliveryRecord


class DeliveryLogRepository(Protocol):
    def append(self, record: DeliveryRecord) -> int:
        """Insert one record (never updates). Returns the new id."""

        raise NotImplementedError

    def latest_sent(
        self,
        *,
        notification_type: TriggerKind,
        channel: Channel,
        subject_id: Optional[int] = None,
        recipient_contact: Optional[str] = None,
        event_date: Optional[date] = None,
    ) -> Optional[DeliveryRecord]:
        """Most recent SENT record matching the subject and/or the contact, whichever are given.

        With ``event_date`` only records about that day match.
        """

        raise NotImplementedError

    def latest_for_contact(self, *, recipient_contact: str, channel: Channel) -> Optional[DeliveryRecord]:
        """Most recent SENT or FAILED record for a contact on a channel."""

        raise NotImplementedError

    def recent_for_owner(self, *, owner_id: int, limit: int) -> Sequence[DeliveryRecord]:
        raise NotImplementedError

    def count_by_status(self, *, owner_id: int, since: datetime) -> dict[DeliveryStatus, int]:
        raise NotImplementedError
