from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Mapping, Optional

from ..core.constants import (
    LOW_ATTENDANCE_DEDUP_WINDOW,
    MONTHLY_REPORT_DEDUP_WINDOW,
    PERMANENT_FAILURE_SUPPRESSION,
    REPORT_DEDUP_TOLERANCE,
    WEEKLY_REPORT_DEDUP_WINDOW,
)
from ..core.enums import Channel, DeliveryStatus, FailureKind, TriggerKind
from .repository import DeliveryLogRepository

DEFAULT_WINDOWS: dict[TriggerKind, timedelta] = {
    TriggerKind.LOW_ATTENDANCE: LOW_ATTENDANCE_DEDUP_WINDOW,
    TriggerKind.WEEKLY_REPORT: WEEKLY_REPORT_DEDUP_WINDOW - REPORT_DEDUP_TOLERANCE,
    TriggerKind.MONTHLY_REPORT: MONTHLY_REPORT_DEDUP_WINDOW - REPORT_DEDUP_TOLERANCE,
}


class DedupPolicy:
    """Decides whether a (type, recipient/subject, channel) may be notified now.

    Everything is derived from typed columns of the delivery log: the most
    recent SENT record for the key is compared against the type's window.

    - absence: once per subject per absence date
    - low_attendance: once per subject per 7 days
    - weekly/monthly reports: once per reporting period (backstop against
      duplicate triggers, the scheduler already fires once per period)
    - custom: no window
    """

    def __init__(
        self,
        log: DeliveryLogRepository,
        *,
        windows: Optional[Mapping[TriggerKind, timedelta]] = None,
        suppression: timedelta = PERMANENT_FAILURE_SUPPRESSION,
    ):
        self._log = log
        self._windows = dict(DEFAULT_WINDOWS if windows is None else windows)
        self._suppression = suppression

    def may_notify(
        self,
        notification_type: TriggerKind,
        recipient_key: Optional[str],
        subject_key: Optional[int],
        channel: Channel,
        now: datetime,
        *,
        event_date: Optional[date] = None,
    ) -> bool:
        """``event_date`` is the day the notice is about (the absence date); it defaults to today."""
        if notification_type == TriggerKind.CUSTOM:
            return True

        absence = notification_type == TriggerKind.ABSENCE
        last = self._log.latest_sent(
            notification_type=notification_type,
            channel=channel,
            subject_id=subject_key,
            recipient_contact=recipient_key,
            event_date=(event_date or now.date()) if absence else None,
        )
        if last is None:
            return True
        if absence:
            return False

        window = self._windows.get(notification_type)
        if window is None:
            return True
        return last.sent_at <= now - window

    def contact_suppressed(self, recipient_contact: str, channel: Channel, now: datetime) -> bool:
        """True while the contact's latest attempt is a fresh permanent failure."""
        last = self._log.latest_for_contact(recipient_contact=recipient_contact, channel=channel)
        if last is None or last.status != DeliveryStatus.FAILED:
            return False
        if last.failure_kind != FailureKind.PERMANENT:
            return False
        return now - last.sent_at < self._suppression
