from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from ..core.constants import (
    LOW_ATTENDANCE_MIN_DAYS,
    LOW_ATTENDANCE_WINDOW_DAYS,
    MONTHLY_REPORT_DAYS,
    WEEKLY_REPORT_DAYS,
)
from ..core.enums import TriggerKind
from ..core.exceptions import RecipientUnusable
from ..settings.model import NotificationSettings
from ..settings.repository import SettingsRepository
from .model import AttendanceStats, Recipient, SubjectInfo
from .source import AttendanceSource

logger = logging.getLogger(__name__)

_REPORT_DAYS = {
    TriggerKind.WEEKLY_REPORT: WEEKLY_REPORT_DAYS,
    TriggerKind.MONTHLY_REPORT: MONTHLY_REPORT_DAYS,
}


def _base_variables(subject: SubjectInfo, as_of_date: date, school_name: str) -> dict:
    return {
        "student_name": subject.name,
        "roll_number": subject.roll_number or "",
        "class_name": subject.class_name,
        "section": subject.section or "",
        "date": as_of_date.isoformat(),
        "school_name": school_name,
    }


def _stats_variables(stats: AttendanceStats, start: date, end: date) -> dict:
    return {
        "attendance_rate": f"{stats.rate:.1f}",
        "present_days": stats.present_days,
        "absent_days": stats.absent,
        "late_days": stats.late,
        "excused_days": stats.excused,
        "total_days": stats.total_days,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
    }


class RecipientResolver:
    """Turns (trigger kind, owner, date) into the guardians to notify.

    Policy no-ops (no settings row, alert type switched off) return an
    empty list without raising. Guardians without a usable contact for their
    preferred channel are dropped here and never reach the dispatcher.
    """

    def __init__(self, source: AttendanceSource, settings: SettingsRepository, *, school_name: str = ""):
        self._source = source
        self._settings = settings
        self._school_name = school_name

    def resolve(self, trigger_kind: TriggerKind, owner_id: int, as_of_date: date) -> list[Recipient]:
        settings = self._settings.get_for_owner(int(owner_id))
        if settings is None or not settings.alert_enabled(trigger_kind):
            return []

        if trigger_kind == TriggerKind.ABSENCE:
            return self._absence(owner_id, as_of_date)
        if trigger_kind == TriggerKind.LOW_ATTENDANCE:
            return self._low_attendance(settings, as_of_date)
        if trigger_kind in _REPORT_DAYS:
            return self._report(owner_id, as_of_date, _REPORT_DAYS[trigger_kind])
        return self._everyone(owner_id, as_of_date)

    def _absence(self, owner_id: int, as_of_date: date) -> list[Recipient]:
        subjects = self._source.list_absent(int(owner_id), as_of_date)
        return self._fan_out(
            (subject, _base_variables(subject, as_of_date, self._school_name)) for subject in subjects
        )

    def _low_attendance(self, settings: NotificationSettings, as_of_date: date) -> list[Recipient]:
        start = as_of_date - timedelta(days=LOW_ATTENDANCE_WINDOW_DAYS)
        threshold = settings.low_attendance_threshold

        def candidates():
            for subject in self._source.list_subjects(settings.owner_id):
                stats = self._source.attendance_stats(subject.subject_id, LOW_ATTENDANCE_WINDOW_DAYS, as_of_date)
                if stats.total_days < LOW_ATTENDANCE_MIN_DAYS or stats.rate >= threshold:
                    continue
                variables = _base_variables(subject, as_of_date, self._school_name)
                variables.update(_stats_variables(stats, start, as_of_date))
                variables["threshold"] = threshold
                yield subject, variables

        return self._fan_out(candidates())

    def _report(self, owner_id: int, as_of_date: date, window_days: int) -> list[Recipient]:
        start = as_of_date - timedelta(days=window_days)

        def candidates():
            for subject in self._source.list_subjects(int(owner_id)):
                stats = self._source.attendance_stats(subject.subject_id, window_days, as_of_date)
                if stats.total_days == 0:
                    continue
                variables = _base_variables(subject, as_of_date, self._school_name)
                variables.update(_stats_variables(stats, start, as_of_date))
                yield subject, variables

        return self._fan_out(candidates())

    def _everyone(self, owner_id: int, as_of_date: date) -> list[Recipient]:
        subjects = self._source.list_subjects(int(owner_id))
        return self._fan_out(
            (subject, _base_variables(subject, as_of_date, self._school_name)) for subject in subjects
        )

    def _fan_out(self, candidates: Iterable[tuple[SubjectInfo, dict]]) -> list[Recipient]:
        recipients: list[Recipient] = []
        for subject, variables in candidates:
            for guardian in self._source.contacts_for(subject.subject_id):
                bag = dict(variables)
                bag["guardian_name"] = guardian.name or "Parent/Guardian"
                try:
                    recipients.append(Recipient.build(subject, guardian, bag))
                except RecipientUnusable as exc:
                    logger.debug("Excluded recipient: %s", exc)
        return recipients

