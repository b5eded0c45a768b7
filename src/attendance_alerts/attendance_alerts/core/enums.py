from __future__ import annotations

from enum import Enum


class TriggerKind(str, Enum):
    """What caused a batch: also the notification type stored in the delivery log."""

    ABSENCE = "absence"
    LOW_ATTENDANCE = "low_attendance"
    WEEKLY_REPORT = "weekly_report"
    MONTHLY_REPORT = "monthly_report"
    CUSTOM = "custom"


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class PreferredChannel(str, Enum):
    """Guardian's preferred way of being contacted."""

    EMAIL = "email"
    SMS = "sms"
    BOTH = "both"

    def allows(self, channel: Channel) -> bool:
        return self == PreferredChannel.BOTH or self.value == channel.value


class TemplateType(str, Enum):
    ABSENCE_EMAIL = "absence_email"
    ABSENCE_SMS = "absence_sms"
    LOW_ATTENDANCE_EMAIL = "low_attendance_email"
    LOW_ATTENDANCE_SMS = "low_attendance_sms"
    WEEKLY_REPORT_EMAIL = "weekly_report_email"
    WEEKLY_REPORT_SMS = "weekly_report_sms"
    MONTHLY_REPORT_EMAIL = "monthly_report_email"
    MONTHLY_REPORT_SMS = "monthly_report_sms"
    CUSTOM = "custom"

    @classmethod
    def for_trigger(cls, kind: TriggerKind, channel: Channel) -> "TemplateType":
        if kind == TriggerKind.CUSTOM:
            return cls.CUSTOM
        return cls(f"{kind.value}_{channel.value}")


class DeliveryStatus(str, Enum):
    """Outcome of one (recipient, channel) decision in the delivery log."""

    SENT = "SENT"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class FailureKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNAVAILABLE = "unavailable"


class RecurrenceKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ScheduleState(str, Enum):
    """Runtime state of a schedule entry inside the scheduler driver."""

    SCHEDULED = "SCHEDULED"
    DUE = "DUE"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
