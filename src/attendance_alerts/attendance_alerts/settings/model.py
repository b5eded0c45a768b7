from __future__ import annotations

from dataclasses import asdict, dataclass

from ..core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD, DEFAULT_SCHEDULE_DAY, DEFAULT_SCHEDULE_TIME
from ..core.enums import Channel, TriggerKind


@dataclass(frozen=True)
class NotificationSettings:
    """Per-owner notification configuration (one row per owner)."""

    owner_id: int
    email_enabled: bool = True
    sms_enabled: bool = False
    absence_alerts: bool = True
    low_attendance_alerts: bool = True
    weekly_reports: bool = True
    monthly_reports: bool = False
    low_attendance_threshold: int = DEFAULT_LOW_ATTENDANCE_THRESHOLD
    schedule_day: str = DEFAULT_SCHEDULE_DAY
    schedule_time: str = DEFAULT_SCHEDULE_TIME

    def channel_enabled(self, channel: Channel) -> bool:
        return self.email_enabled if channel == Channel.EMAIL else self.sms_enabled

    def alert_enabled(self, kind: TriggerKind) -> bool:
        return {
            TriggerKind.ABSENCE: self.absence_alerts,
            TriggerKind.LOW_ATTENDANCE: self.low_attendance_alerts,
            TriggerKind.WEEKLY_REPORT: self.weekly_reports,
            TriggerKind.MONTHLY_REPORT: self.monthly_reports,
            TriggerKind.CUSTOM: True,
        }[kind]

    def to_dict(self) -> dict:
        return asdict(self)


# Fields an owner may change through update_settings().
TOGGLE_FIELDS = (
    "email_enabled",
    "sms_enabled",
    "absence_alerts",
    "low_attendance_alerts",
    "weekly_reports",
    "monthly_reports",
)
