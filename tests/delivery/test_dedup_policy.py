from __future__ import annotations

from datetime import timedelta

from src.attendance_alerts.attendance_alerts.core.enums import Channel, DeliveryStatus, FailureKind, TriggerKind
from src.attendance_alerts.attendance_alerts.delivery.model import DeliveryRecord
from src.attendance_alerts.attendance_alerts.delivery.policy import DedupPolicy
from tests.fakes import FakeDeliveryLog


def _record(kind, sent_at, *, contact="g@example.com", subject_id=7, channel=Channel.EMAIL,
            status=DeliveryStatus.SENT, failure_kind=None, event_date=None):
    return DeliveryRecord(
        record_id=None,
        notification_type=kind,
        owner_id=1,
        recipient_contact=contact,
        subject_id=subject_id,
        channel=channel,
        status=status,
        sent_at=sent_at,
        failure_kind=failure_kind,
        event_date=event_date or sent_at.date(),
    )


def test_absence_once_per_absence_date_whenever_it_is_sent(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    absence_day = fixed_now.date()
    log.append(_record(TriggerKind.ABSENCE, fixed_now, event_date=absence_day))

    next_morning = fixed_now + timedelta(hours=17)
    assert not policy.may_notify(
        TriggerKind.ABSENCE, "g@example.com", 7, Channel.EMAIL, next_morning, event_date=absence_day
    )
    assert policy.may_notify(
        TriggerKind.ABSENCE, "g@example.com", 7, Channel.EMAIL, next_morning, event_date=next_morning.date()
    )


def test_earlier_absence_date_is_not_blocked_by_todays_notice(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.ABSENCE, fixed_now, event_date=fixed_now.date()))

    yesterday = fixed_now.date() - timedelta(days=1)
    assert policy.may_notify(TriggerKind.ABSENCE, "g@example.com", 7, Channel.EMAIL, fixed_now, event_date=yesterday)


def test_absence_date_defaults_to_today(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.ABSENCE, fixed_now, event_date=fixed_now.date()))

    assert not policy.may_notify(TriggerKind.ABSENCE, "g@example.com", 7, Channel.EMAIL, fixed_now)


def test_low_attendance_window_is_seven_days(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.LOW_ATTENDANCE, fixed_now))

    later = fixed_now + timedelta(days=6, hours=23)
    assert not policy.may_notify(TriggerKind.LOW_ATTENDANCE, "g@example.com", 7, Channel.EMAIL, later)
    assert policy.may_notify(TriggerKind.LOW_ATTENDANCE, "g@example.com", 7, Channel.EMAIL, fixed_now + timedelta(days=7))


def test_key_includes_channel_and_recipient(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.ABSENCE, fixed_now))

    assert policy.may_notify(TriggerKind.ABSENCE, "+15550001111", 7, Channel.SMS, fixed_now)
    # Second guardian of the same student.
    assert policy.may_notify(TriggerKind.ABSENCE, "other@example.com", 7, Channel.EMAIL, fixed_now)
    # Different student.
    assert policy.may_notify(TriggerKind.ABSENCE, "g@example.com", 8, Channel.EMAIL, fixed_now)


def test_failed_records_do_not_count_as_sent(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.ABSENCE, fixed_now, status=DeliveryStatus.FAILED, failure_kind=FailureKind.TRANSIENT))

    assert policy.may_notify(TriggerKind.ABSENCE, "g@example.com", 7, Channel.EMAIL, fixed_now)


def test_weekly_report_tolerates_scheduler_jitter(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.WEEKLY_REPORT, fixed_now))

    assert not policy.may_notify(TriggerKind.WEEKLY_REPORT, "g@example.com", 7, Channel.EMAIL, fixed_now + timedelta(days=6))
    next_run_slightly_early = fixed_now + timedelta(days=7) - timedelta(minutes=30)
    assert policy.may_notify(TriggerKind.WEEKLY_REPORT, "g@example.com", 7, Channel.EMAIL, next_run_slightly_early)


def test_custom_has_no_window(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.CUSTOM, fixed_now))

    assert policy.may_notify(TriggerKind.CUSTOM, "g@example.com", 7, Channel.EMAIL, fixed_now)


def test_permanent_failure_suppresses_contact_for_a_day(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.ABSENCE, fixed_now, status=DeliveryStatus.FAILED, failure_kind=FailureKind.PERMANENT))

    assert policy.contact_suppressed("g@example.com", Channel.EMAIL, fixed_now + timedelta(hours=2))
    assert not policy.contact_suppressed("g@example.com", Channel.SMS, fixed_now + timedelta(hours=2))
    assert not policy.contact_suppressed("g@example.com", Channel.EMAIL, fixed_now + timedelta(hours=25))


def test_transient_failure_or_later_success_does_not_suppress(fixed_now):
    log = FakeDeliveryLog()
    policy = DedupPolicy(log)
    log.append(_record(TriggerKind.ABSENCE, fixed_now, status=DeliveryStatus.FAILED, failure_kind=FailureKind.TRANSIENT))
    assert not policy.contact_suppressed("g@example.com", Channel.EMAIL, fixed_now)

    log.append(_record(TriggerKind.ABSENCE, fixed_now, status=DeliveryStatus.FAILED, failure_kind=FailureKind.PERMANENT))
    log.append(_record(TriggerKind.CUSTOM, fixed_now + timedelta(hours=1)))
    assert not policy.contact_suppressed("g@example.com", Channel.EMAIL, fixed_now + timedelta(hours=2))
