from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from src.attendance_alerts.attendance_alerts.core.enums import RecurrenceKind, ScheduleState, TriggerKind
from src.attendance_alerts.attendance_alerts.core.exceptions import (
    AuthorizationError,
    InfrastructureError,
    ValidationError,
)
from src.attendance_alerts.attendance_alerts.dispatch.model import BatchResult
from src.attendance_alerts.attendance_alerts.recipients.model import AttendanceStats
from src.attendance_alerts.attendance_alerts.scheduling.model import ScheduleEntry
from src.attendance_alerts.attendance_alerts.scheduling.scheduler import Scheduler
from src.attendance_alerts.attendance_alerts.settings.model import NotificationSettings
from tests.fakes import FakeScheduleRepo, FakeSettingsRepo, build_engine


class RecordingDispatcher:
    def __init__(self, *, block: threading.Event = None, error: Exception = None):
        self.calls = []
        self.started = threading.Event()
        self._block = block
        self._error = error

    def dispatch_batch(self, trigger_kind, owner_id, as_of_date, *, deadline=None, extra_variables=None):
        self.calls.append((trigger_kind, owner_id, as_of_date, extra_variables))
        self.started.set()
        if self._block is not None:
            self._block.wait(5)
        if self._error is not None:
            raise self._error
        return BatchResult(trigger_kind=trigger_kind, owner_id=owner_id, as_of_date=as_of_date)


def _entry(owner_id, kind, next_run, *, recurrence=RecurrenceKind.WEEKLY, anchor_day=4, anchor_time="17:00", message=None):
    return ScheduleEntry(
        entry_id=None,
        owner_id=owner_id,
        trigger_kind=kind,
        recurrence=recurrence,
        anchor_day=anchor_day,
        anchor_time=anchor_time,
        next_run=next_run,
        message=message,
    )


def test_system_entries_are_seeded_once(clock):
    schedules = FakeScheduleRepo()
    scheduler = Scheduler(schedules, FakeSettingsRepo(), RecordingDispatcher(), clock=clock, absence_sweep_time="16:00")

    assert scheduler.ensure_system_entries() == 4
    assert scheduler.ensure_system_entries() == 0

    by_kind = {e.trigger_kind: e for e in schedules.entries.values()}
    assert all(e.is_system for e in by_kind.values())
    assert by_kind[TriggerKind.ABSENCE].next_run == datetime(2026, 3, 5, 16, 0)
    assert by_kind[TriggerKind.LOW_ATTENDANCE].next_run == datetime(2026, 3, 9, 9, 0)
    assert by_kind[TriggerKind.WEEKLY_REPORT].next_run == datetime(2026, 3, 6, 17, 0)
    assert by_kind[TriggerKind.MONTHLY_REPORT].next_run == datetime(2026, 4, 1, 18, 0)


def test_tick_fires_due_entry_and_moves_it_forward(clock):
    engine = build_engine(clock)
    engine.source.add_subject(1, email="a@example.com")
    engine.source.stats[1] = AttendanceStats(present=4, absent=1)
    schedules = FakeScheduleRepo()
    entry_id = schedules.add(_entry(1, TriggerKind.WEEKLY_REPORT, clock.now - timedelta(days=40)))
    scheduler = Scheduler(schedules, engine.settings_repo, engine.dispatcher, clock=clock)

    try:
        futures = scheduler.tick()
        results = futures[0].result(timeout=5)
    finally:
        scheduler.stop()

    assert [r.sent for r in results] == [1]
    entry = schedules.get(entry_id)
    assert entry.last_run == clock.now
    assert entry.next_run == datetime(2026, 3, 6, 17, 0)
    assert scheduler.state_of(entry_id) == ScheduleState.SCHEDULED
    assert scheduler.last_outcome(entry_id) == ScheduleState.COMPLETED


def test_entry_still_running_is_skipped_on_next_tick(clock):
    release = threading.Event()
    dispatcher = RecordingDispatcher(block=release)
    schedules = FakeScheduleRepo()
    entry_id = schedules.add(_entry(1, TriggerKind.WEEKLY_REPORT, clock.now))
    scheduler = Scheduler(schedules, FakeSettingsRepo(), dispatcher, clock=clock)

    try:
        first = scheduler.tick()
        assert dispatcher.started.wait(5)
        assert scheduler.state_of(entry_id) == ScheduleState.RUNNING
        assert scheduler.tick() == []
        release.set()
        first[0].result(timeout=5)
    finally:
        release.set()
        scheduler.stop()

    assert len(dispatcher.calls) == 1
    assert scheduler.state_of(entry_id) == ScheduleState.SCHEDULED
    assert scheduler.last_outcome(entry_id) == ScheduleState.COMPLETED


def test_infrastructure_failure_keeps_next_run(clock):
    schedules = FakeScheduleRepo()
    due = clock.now - timedelta(minutes=5)
    entry_id = schedules.add(_entry(1, TriggerKind.WEEKLY_REPORT, due))
    scheduler = Scheduler(
        schedules, FakeSettingsRepo(), RecordingDispatcher(error=InfrastructureError("db down")), clock=clock
    )

    try:
        assert scheduler.tick()[0].result(timeout=5) == []
    finally:
        scheduler.stop()

    entry = schedules.get(entry_id)
    assert entry.next_run == due
    assert entry.last_run is None
    assert scheduler.state_of(entry_id) == ScheduleState.SCHEDULED
    assert scheduler.last_outcome(entry_id) == ScheduleState.FAILED


def test_unexpected_error_still_moves_entry_forward(clock):
    schedules = FakeScheduleRepo()
    entry_id = schedules.add(_entry(1, TriggerKind.WEEKLY_REPORT, clock.now - timedelta(minutes=5)))
    scheduler = Scheduler(
        schedules, FakeSettingsRepo(), RecordingDispatcher(error=ValueError("bad template data")), clock=clock
    )

    try:
        assert scheduler.tick()[0].result(timeout=5) == []
        assert scheduler.tick() == []
    finally:
        scheduler.stop()

    entry = schedules.get(entry_id)
    assert entry.last_run == clock.now
    assert entry.next_run == datetime(2026, 3, 6, 17, 0)
    assert scheduler.last_outcome(entry_id) == ScheduleState.FAILED


def test_entry_is_due_until_a_worker_picks_it_up(clock):
    release = threading.Event()
    schedules = FakeScheduleRepo()
    first_id = schedules.add(_entry(1, TriggerKind.WEEKLY_REPORT, clock.now))
    second_id = schedules.add(_entry(2, TriggerKind.WEEKLY_REPORT, clock.now))
    scheduler = Scheduler(
        schedules, FakeSettingsRepo(), RecordingDispatcher(block=release), clock=clock, max_workers=1
    )

    try:
        futures = scheduler.tick()
        assert scheduler.state_of(second_id) == ScheduleState.DUE
        assert scheduler.last_outcome(second_id) is None
        release.set()
        for future in futures:
            future.result(timeout=5)
    finally:
        release.set()
        scheduler.stop()

    assert scheduler.state_of(first_id) == scheduler.state_of(second_id) == ScheduleState.SCHEDULED


def test_system_report_sweep_skips_owners_with_their_own_entry(clock):
    settings = FakeSettingsRepo(
        NotificationSettings(owner_id=1),
        NotificationSettings(owner_id=2),
        NotificationSettings(owner_id=3, weekly_reports=False),
    )
    schedules = FakeScheduleRepo()
    schedules.add(_entry(2, TriggerKind.WEEKLY_REPORT, clock.now + timedelta(days=2)))
    dispatcher = RecordingDispatcher()
    scheduler = Scheduler(schedules, settings, dispatcher, clock=clock)

    weekly = schedules.get(schedules.add(_entry(None, TriggerKind.WEEKLY_REPORT, clock.now)))
    scheduler.run_entry(weekly, clock.now)
    assert [call[1] for call in dispatcher.calls] == [1]

    dispatcher.calls.clear()
    absence = schedules.get(
        schedules.add(_entry(None, TriggerKind.ABSENCE, clock.now, recurrence=RecurrenceKind.DAILY, anchor_day=None, anchor_time="16:00"))
    )
    scheduler.run_entry(absence, clock.now)
    assert [call[1] for call in dispatcher.calls] == [1, 2, 3]


def test_custom_entries_need_a_message_and_pass_it_on(clock):
    schedules = FakeScheduleRepo()
    dispatcher = RecordingDispatcher()
    scheduler = Scheduler(schedules, FakeSettingsRepo(), dispatcher, clock=clock)

    with pytest.raises(ValidationError):
        scheduler.add_custom_entry(
            owner_id=1, trigger_kind=TriggerKind.CUSTOM, recurrence=RecurrenceKind.DAILY, anchor_day=None, anchor_time="08:00"
        )

    entry_id = scheduler.add_custom_entry(
        owner_id=1,
        trigger_kind=TriggerKind.CUSTOM,
        recurrence=RecurrenceKind.WEEKLY,
        anchor_day=0,
        anchor_time="08:00",
        message="Library books are due",
    )
    entry = schedules.get(entry_id)
    assert entry.next_run == datetime(2026, 3, 9, 8, 0)

    scheduler.run_entry(entry, entry.next_run)

    assert dispatcher.calls[0][3]["message"] == "Library books are due"
    assert schedules.get(entry_id).next_run == datetime(2026, 3, 16, 8, 0)


def test_deactivate_checks_owner(clock):
    schedules = FakeScheduleRepo()
    scheduler = Scheduler(schedules, FakeSettingsRepo(), RecordingDispatcher(), clock=clock)
    entry_id = schedules.add(_entry(1, TriggerKind.LOW_ATTENDANCE, clock.now + timedelta(days=1)))

    with pytest.raises(AuthorizationError):
        scheduler.deactivate(owner_id=2, entry_id=entry_id)
    with pytest.raises(ValidationError):
        scheduler.deactivate(owner_id=1, entry_id=999)

    scheduler.deactivate(owner_id=1, entry_id=entry_id)
    assert schedules.get(entry_id).active is False
    assert scheduler.list_for_owner(1)[0].active is False
