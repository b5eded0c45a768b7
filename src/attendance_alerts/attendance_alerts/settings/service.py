from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Mapping

from ..common.datetime_utils import now_local, parse_hhmm, weekday_index
from ..common.validators import as_bool, require_int_in_range
from ..core.enums import RecurrenceKind, TriggerKind
from ..core.exceptions import ValidationError
from ..scheduling.model import ScheduleEntry
from ..scheduling.recurrence import initial_next_run
from ..scheduling.repository import ScheduleRepository
from .model import TOGGLE_FIELDS, NotificationSettings
from .repository import SettingsRepository

logger = logging.getLogger(__name__)

_EDITABLE = set(TOGGLE_FIELDS) | {"low_attendance_threshold", "schedule_day", "schedule_time"}


class SettingsService:
    def __init__(
        self,
        settings: SettingsRepository,
        schedules: ScheduleRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._settings = settings
        self._schedules = schedules
        self._clock = clock

    def settings_for(self, owner_id: int) -> NotificationSettings:
        """Owner's settings, created with defaults on first access."""
        current = self._settings.get_for_owner(int(owner_id))
        if current is not None:
            return current

        defaults = NotificationSettings(owner_id=int(owner_id))
        self._settings.save(defaults)
        self._sync_report_schedules(defaults)
        logger.info("Created default notification settings for owner %s", owner_id)
        return defaults

    def update_settings(self, owner_id: int, patch: Mapping[str, Any]) -> NotificationSettings:
        unknown = set(patch or {}) - _EDITABLE
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

        current = self.settings_for(owner_id)
        changes: dict[str, Any] = {}
        for key in TOGGLE_FIELDS:
            if key in patch:
                changes[key] = as_bool(patch[key])

        if "low_attendance_threshold" in patch:
            changes["low_attendance_threshold"] = require_int_in_range(
                patch["low_attendance_threshold"], "Low attendance threshold", low=0, high=100
            )
        if "schedule_day" in patch:
            day = str(patch["schedule_day"] or "").strip().lower()
            weekday_index(day)
            changes["schedule_day"] = day
        if "schedule_time" in patch:
            changes["schedule_time"] = parse_hhmm(str(patch["schedule_time"] or "")).strftime("%H:%M")

        updated = replace(current, **changes)
        self._settings.save(updated)
        self._sync_report_schedules(updated)
        return updated

    def _sync_report_schedules(self, settings: NotificationSettings) -> None:
        """Keep the owner's weekly/monthly report entries in line with the toggles."""
        wanted = (
            (TriggerKind.WEEKLY_REPORT, settings.weekly_reports, RecurrenceKind.WEEKLY, weekday_index(settings.schedule_day)),
            (TriggerKind.MONTHLY_REPORT, settings.monthly_reports, RecurrenceKind.MONTHLY, 1),
        )
        now = self._clock()
        for kind, enabled, recurrence, anchor_day in wanted:
            existing = self._schedules.find_active(owner_id=settings.owner_id, trigger_kind=kind)
            if not enabled:
                if existing is not None:
                    self._schedules.set_active(entry_id=existing.entry_id, active=False)
                    logger.info("Deactivated %s schedule %s for owner %s", kind.value, existing.entry_id, settings.owner_id)
                continue

            next_run = initial_next_run(recurrence, anchor_day, settings.schedule_time, now)
            if existing is None:
                self._schedules.add(
                    ScheduleEntry(
                        entry_id=None,
                        owner_id=settings.owner_id,
                        trigger_kind=kind,
                        recurrence=recurrence,
                        anchor_day=anchor_day,
                        anchor_time=settings.schedule_time,
                        next_run=next_run,
                    )
                )
            elif existing.anchor_day != anchor_day or existing.anchor_time != settings.schedule_time:
                self._schedules.update_anchor(
                    entry_id=existing.entry_id,
                    anchor_day=anchor_day,
                    anchor_time=settings.schedule_time,
                    next_run=next_run,
                )
