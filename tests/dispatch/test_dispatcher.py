from __future__ import annotations

from datetime import timedelta

import pytest

from src.attendance_alerts.attendance_alerts.core.enums import (
    Channel,
    DeliveryStatus,
    FailureKind,
    PreferredChannel,
    TemplateType,
    TriggerKind,
)
from src.attendance_alerts.attendance_alerts.core.exceptions import (
    InfrastructureError,
    PermanentSendFailure,
    ProviderUnavailable,
    TransientSendFailure,
)
from src.attendance_alerts.attendance_alerts.recipients.model import AttendanceStats
from src.attendance_alerts.attendance_alerts.settings.model import NotificationSettings
from tests.fakes import build_engine, sent_records


def _absent_students(engine, today, count, *, preferred=PreferredChannel.EMAIL):
    for i in range(1, count + 1):
        engine.source.add_subject(
            i,
            email=f"guardian{i}@example.com",
            phone=f"+1555000{i:04d}",
            preferred=preferred,
        )
        engine.source.mark_absent(i, today)


def test_absence_alerts_are_idempotent(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    _absent_students(engine, today, 3)

    first = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)
    second = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert (first.sent, first.skipped, first.failed) == (3, 0, 0)
    assert (second.sent, second.skipped, second.failed) == (0, 3, 0)
    assert second.attempted == 0
    assert len(engine.email.sent) == 3
    assert len(sent_records(engine.log)) == 3


def test_skips_are_audited_only_when_enabled(clock):
    engine = build_engine(clock, audit_skips=True)
    today = clock.now.date()
    _absent_students(engine, today, 2)

    engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)
    engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    skipped = engine.log.with_status(DeliveryStatus.SKIPPED)
    assert len(skipped) == 2
    assert all(r.error == "within dedup window" for r in skipped)


def test_low_attendance_resends_only_after_seven_days(clock):
    engine = build_engine(clock)
    engine.source.add_subject(1, email="a@example.com")
    engine.source.stats[1] = AttendanceStats(present=4, absent=8)

    start = clock.now
    assert engine.dispatcher.dispatch_batch(TriggerKind.LOW_ATTENDANCE, 1, clock.now.date()).sent == 1

    clock.advance(days=3)
    again = engine.dispatcher.dispatch_batch(TriggerKind.LOW_ATTENDANCE, 1, clock.now.date())
    assert (again.sent, again.skipped) == (0, 1)

    clock.now = start + timedelta(days=7)
    later = engine.dispatcher.dispatch_batch(TriggerKind.LOW_ATTENDANCE, 1, clock.now.date())
    assert later.sent == 1
    assert len(sent_records(engine.log, TriggerKind.LOW_ATTENDANCE)) == 2


def test_email_unavailable_does_not_stop_sms(clock):
    engine = build_engine(clock, pool_size=1)
    today = clock.now.date()
    _absent_students(engine, today, 3, preferred=PreferredChannel.BOTH)
    engine.email.fail["*"] = ProviderUnavailable("credentials rejected")

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert len(engine.sms.sent) == 3
    # First email attempt fails and short-circuits the channel.
    assert engine.email.calls == 1
    assert (result.sent, result.failed, result.skipped) == (3, 1, 2)
    assert result.errors[0].failure_kind == FailureKind.UNAVAILABLE


def test_unconfigured_channel_is_never_called(clock):
    engine = build_engine(clock)
    engine.email._available = False
    today = clock.now.date()
    _absent_students(engine, today, 2, preferred=PreferredChannel.BOTH)

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert engine.email.calls == 0
    assert (result.sent, result.skipped) == (2, 2)


@pytest.mark.parametrize("pool_size", [1, 8, 32])
def test_fifty_recipients_two_channels_give_exactly_one_hundred_records(clock, pool_size):
    engine = build_engine(clock, pool_size=pool_size)
    today = clock.now.date()
    _absent_students(engine, today, 50, preferred=PreferredChannel.BOTH)

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert result.sent == 100
    assert len(engine.log.records) == 100
    assert sum(1 for r in engine.log.records if r.channel == Channel.EMAIL) == 50
    assert sum(1 for r in engine.log.records if r.channel == Channel.SMS) == 50


def test_owner_channel_toggle_wins_over_preference(clock):
    engine = build_engine(clock, NotificationSettings(owner_id=1, email_enabled=True, sms_enabled=False))
    today = clock.now.date()
    _absent_students(engine, today, 2, preferred=PreferredChannel.BOTH)

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert result.sent == 2
    assert engine.sms.calls == 0


def test_transient_failure_is_recorded_without_retry(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    _absent_students(engine, today, 2, preferred=PreferredChannel.SMS)
    engine.sms.fail["+15550000001"] = TransientSendFailure("Twilio 503")

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert (result.sent, result.failed) == (1, 1)
    assert engine.sms.calls == 2
    failed = engine.log.with_status(DeliveryStatus.FAILED)
    assert failed[0].failure_kind == FailureKind.TRANSIENT
    assert failed[0].error == "Twilio 503"
    assert engine.alerts_repo.alerts == []


def test_permanent_failure_alerts_owner_and_suppresses_contact(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    _absent_students(engine, today, 2)
    engine.email.fail["guardian1@example.com"] = PermanentSendFailure("Recipient refused")

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert (result.sent, result.failed) == (1, 1)
    assert result.errors[0].failure_kind == FailureKind.PERMANENT
    assert len(engine.alerts_repo.alerts) == 1
    assert "guardian1@example.com" in engine.alerts_repo.alerts[0].message

    # Next morning, inside the 24h suppression.
    clock.advance(hours=18)
    tomorrow = clock.now.date()
    for subject_id in (1, 2):
        engine.source.mark_absent(subject_id, tomorrow)
    calls_before = engine.email.calls

    next_day = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, tomorrow)

    assert (next_day.sent, next_day.skipped) == (1, 1)
    assert engine.email.calls == calls_before + 1


def test_deadline_stops_new_sends_and_marks_truncated(clock):
    engine = build_engine(clock, pool_size=1)
    engine.email._on_send = lambda to: clock.advance(seconds=60)
    today = clock.now.date()
    _absent_students(engine, today, 5)

    result = engine.dispatcher.dispatch_batch(
        TriggerKind.ABSENCE, 1, today, deadline=clock.now + timedelta(seconds=90)
    )

    assert result.truncated
    assert result.sent == 2
    assert len(engine.log.records) == 2


def test_database_failure_aborts_the_batch(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    _absent_students(engine, today, 3)

    def broken_append(record):
        raise InfrastructureError("Database unreachable")

    engine.log.append = broken_append

    with pytest.raises(InfrastructureError):
        engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)


def test_nothing_to_do_returns_zero_counts(clock):
    engine = build_engine(clock)

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, clock.now.date())

    assert (result.attempted, result.sent, result.skipped, result.failed) == (0, 0, 0, 0)
    assert not result.truncated
    assert engine.email.calls == 0


def test_renders_owner_template_and_email_subject(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    engine.source.add_subject(1, name="Ana Lopez", email="maria@example.com", guardian_name="Maria")
    engine.source.mark_absent(1, today)
    engine.template_store.save_owner_template(
        owner_id=1, type=TemplateType.ABSENCE_EMAIL, content="Hi {{guardian_name}}, {{student_name}} missed {{date}}."
    )

    engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    to, content, subject = engine.email.sent[0]
    assert to == "maria@example.com"
    assert content == f"Hi Maria, Ana Lopez missed {today.isoformat()}."
    assert subject == f"Absence Alert: Ana Lopez - {today.isoformat()}"


def test_custom_batch_uses_extra_variables(clock):
    engine = build_engine(clock)
    engine.source.add_subject(1, phone="+15550000001", preferred=PreferredChannel.SMS, guardian_name="Li")

    result = engine.dispatcher.dispatch_batch(
        TriggerKind.CUSTOM, 1, clock.now.date(), extra_variables={"message": "School closes at noon", "subject": "Notice"}
    )

    assert result.sent == 1
    assert engine.sms.sent[0][1] == "Dear Li, School closes at noon - Springfield Elementary"


def test_absence_dedup_follows_the_absence_date_not_the_send_day(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    _absent_students(engine, today, 2)

    first = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)
    clock.advance(hours=10)
    resent = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert first.sent == 2
    assert (resent.sent, resent.skipped) == (0, 2)
    assert {r.event_date for r in sent_records(engine.log)} == {today}


def test_late_trigger_for_yesterday_still_sends(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    yesterday = today - timedelta(days=1)
    _absent_students(engine, today, 1)
    engine.source.mark_absent(1, yesterday)

    engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)
    late = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, yesterday)

    assert (late.sent, late.skipped) == (1, 0)
    assert [r.event_date for r in sent_records(engine.log)] == [today, yesterday]


def test_unexpected_provider_error_fails_only_that_recipient(clock):
    engine = build_engine(clock)
    today = clock.now.date()
    _absent_students(engine, today, 3)

    def explode_for_first(to):
        if to == "guardian1@example.com":
            raise ValueError("unexpected response shape")

    engine.email._on_send = explode_for_first

    result = engine.dispatcher.dispatch_batch(TriggerKind.ABSENCE, 1, today)

    assert (result.sent, result.failed) == (2, 1)
    failed = engine.log.with_status(DeliveryStatus.FAILED)
    assert [(r.recipient_contact, r.failure_kind) for r in failed] == [("guardian1@example.com", FailureKind.TRANSIENT)]
    assert result.errors[0].error == "unexpected response shape"
