from __future__ import annotations

import pytest

from src.attendance_alerts.attendance_alerts.core.enums import (
    Channel,
    DeliveryStatus,
    FailureKind,
    PreferredChannel,
    TriggerKind,
)
from src.attendance_alerts.attendance_alerts.core.exceptions import PermanentSendFailure, ValidationError
from src.attendance_alerts.attendance_alerts.notifications.service import NotificationService
from src.attendance_alerts.attendance_alerts.settings.service import SettingsService
from tests.fakes import FakeScheduleRepo, build_engine


def _service(clock, engine):
    settings_service = SettingsService(engine.settings_repo, FakeScheduleRepo(), clock=clock)
    return NotificationService(
        engine.dispatcher,
        settings_service,
        engine.log,
        {Channel.EMAIL: engine.email, Channel.SMS: engine.sms},
        school_name="Springfield Elementary",
        clock=clock,
    )


def test_trigger_now_defaults_to_today(clock):
    engine = build_engine(clock)
    engine.source.add_subject(1, email="a@example.com")
    engine.source.mark_absent(1, clock.now.date())

    result = _service(clock, engine).trigger_now(TriggerKind.ABSENCE, 1)

    assert result.as_of_date == clock.now.date()
    assert result.sent == 1


def test_trigger_now_rejects_custom(clock):
    with pytest.raises(ValidationError):
        _service(clock, build_engine(clock)).trigger_now(TriggerKind.CUSTOM, 1)


def test_custom_message_reaches_every_guardian_and_creates_settings(clock):
    engine = build_engine(clock)
    engine.settings_repo._rows.clear()
    engine.source.add_subject(1, email="a@example.com", guardian_name="Ana's mum")
    engine.source.add_subject(2, email="b@example.com")
    service = _service(clock, engine)

    result = service.send_custom_message(1, "Sports day is on Friday", subject="Sports day")

    assert result.sent == 2
    assert engine.settings_repo.get_for_owner(1) is not None
    to, content, subject = engine.email.sent[0]
    assert "Sports day is on Friday" in content
    assert subject == "Sports day"


def test_custom_message_requires_text(clock):
    with pytest.raises(ValidationError):
        _service(clock, build_engine(clock)).send_custom_message(1, "  ")


def test_send_test_message_logs_outcome(clock):
    engine = build_engine(clock)
    service = _service(clock, engine)

    ok = service.send_test_message(1, Channel.SMS, "+15550000001")
    assert ok.status == DeliveryStatus.SENT
    assert ok.record_id == 1
    assert ok.provider_ref == "sms-1"

    engine.email.fail["bad@example.com"] = PermanentSendFailure("Recipient refused")
    failed = service.send_test_message(1, Channel.EMAIL, "bad@example.com")
    assert failed.status == DeliveryStatus.FAILED
    assert failed.failure_kind == FailureKind.PERMANENT

    engine.sms._available = False
    unavailable = service.send_test_message(1, Channel.SMS, "+15550000001")
    assert unavailable.failure_kind == FailureKind.UNAVAILABLE
    assert len(engine.log.records) == 3


def test_recent_deliveries_newest_first_and_limit_checked(clock):
    engine = build_engine(clock)
    engine.source.add_subject(1, email="a@example.com", phone="+15550000001", preferred=PreferredChannel.BOTH)
    engine.source.mark_absent(1, clock.now.date())
    service = _service(clock, engine)
    service.trigger_now(TriggerKind.ABSENCE, 1)
    clock.advance(minutes=5)
    service.send_test_message(1, Channel.EMAIL, "me@example.com")

    recent = service.recent_deliveries(1, limit=2)

    assert len(recent) == 2
    assert recent[0].recipient_contact == "me@example.com"
    with pytest.raises(ValidationError):
        service.recent_deliveries(1, limit=0)


def test_delivery_summary_counts_by_status(clock):
    engine = build_engine(clock)
    engine.source.add_subject(1, email="a@example.com")
    engine.source.add_subject(2, email="b@example.com")
    engine.source.mark_absent(1, clock.now.date())
    engine.source.mark_absent(2, clock.now.date())
    engine.email.fail["b@example.com"] = PermanentSendFailure("refused")
    service = _service(clock, engine)
    service.trigger_now(TriggerKind.ABSENCE, 1)

    clock.advance(days=1)
    summary = service.delivery_summary(1, days=7)
    assert summary == {"sent": 1, "failed": 1, "skipped": 0, "total": 2, "days": 7}

    clock.advance(days=10)
    assert service.delivery_summary(1, days=7)["total"] == 0
