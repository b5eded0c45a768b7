from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Mapping, Optional, Sequence

from ..channels.base import ChannelProvider
from ..common.datetime_utils import now_local
from ..common.validators import require_int_in_range, require_non_empty
from ..core.constants import DEFAULT_RECENT_DELIVERIES_LIMIT, MAX_RECENT_DELIVERIES_LIMIT
from ..core.enums import Channel, DeliveryStatus, FailureKind, TriggerKind
from ..core.exceptions import (
    PermanentSendFailure,
    ProviderUnavailable,
    TransientSendFailure,
    ValidationError,
)
from ..delivery.model import DeliveryRecord
from ..delivery.repository import DeliveryLogRepository
from ..dispatch.dispatcher import Dispatcher
from ..dispatch.model import BatchResult
from ..settings.service import SettingsService

logger = logging.getLogger(__name__)

_FAILURE_KINDS = (
    (ProviderUnavailable, FailureKind.UNAVAILABLE),
    (TransientSendFailure, FailureKind.TRANSIENT),
    (PermanentSendFailure, FailureKind.PERMANENT),
)


def parse_trigger_kind(value) -> TriggerKind:
    try:
        return TriggerKind(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown notification type: {value!r}")


def parse_channel(value) -> Channel:
    try:
        return Channel(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown channel: {value!r}")


class NotificationService:
    """Operations exposed to the portal: manual triggers, audit views, one-off messages."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        settings: SettingsService,
        log: DeliveryLogRepository,
        providers: Mapping[Channel, ChannelProvider],
        *,
        school_name: str = "",
        clock: Callable[[], datetime] = now_local,
    ):
        self._dispatcher = dispatcher
        self._settings = settings
        self._log = log
        self._providers = dict(providers)
        self._school_name = school_name
        self._clock = clock

    def trigger_now(self, trigger_kind: TriggerKind, owner_id: int, on_date: Optional[date] = None) -> BatchResult:
        if trigger_kind == TriggerKind.CUSTOM:
            raise ValidationError("Custom messages are sent with send_custom_message")
        on_date = on_date or self._clock().date()
        logger.info("Manual %s trigger by owner %s for %s", trigger_kind.value, owner_id, on_date)
        return self._dispatcher.dispatch_batch(trigger_kind, int(owner_id), on_date)

    def recent_deliveries(self, owner_id: int, limit: int = DEFAULT_RECENT_DELIVERIES_LIMIT) -> Sequence[DeliveryRecord]:
        limit = require_int_in_range(limit, "Limit", low=1, high=MAX_RECENT_DELIVERIES_LIMIT)
        return self._log.recent_for_owner(owner_id=int(owner_id), limit=limit)

    def delivery_summary(self, owner_id: int, *, days: int = 7) -> dict:
        days = require_int_in_range(days, "Days", low=1, high=365)
        since = self._clock() - timedelta(days=days)
        counts = self._log.count_by_status(owner_id=int(owner_id), since=since)
        summary = {status.value.lower(): int(counts.get(status, 0)) for status in DeliveryStatus}
        summary["total"] = sum(summary.values())
        summary["days"] = days
        return summary

    def send_custom_message(self, owner_id: int, message: str, subject: Optional[str] = None) -> BatchResult:
        """Broadcast a one-off message to every contactable guardian of the owner's classes."""
        message = require_non_empty(message, "Message")
        subject = (subject or "").strip() or f"Message from {self._school_name or 'your school'}"
        # Settings row must exist for the resolver to return anyone.
        self._settings.settings_for(int(owner_id))
        return self._dispatcher.dispatch_batch(
            TriggerKind.CUSTOM,
            int(owner_id),
            self._clock().date(),
            extra_variables={"message": message, "subject": subject},
        )

    def send_test_message(self, owner_id: int, channel: Channel, to: str) -> DeliveryRecord:
        """Send a configuration test through one provider and log the outcome."""
        to = require_non_empty(to, "Recipient")
        provider = self._providers.get(channel)
        now = self._clock()
        status, provider_ref, error, failure_kind = DeliveryStatus.SENT, None, None, None

        if provider is None or not provider.available():
            status, error, failure_kind = DeliveryStatus.FAILED, f"{channel.value} is not configured", FailureKind.UNAVAILABLE
        else:
            school = self._school_name or "the school"
            content = f"This is a test message from {school}. Notifications are configured correctly."
            try:
                provider_ref = provider.send(to, content, subject=f"Test notification from {school}")
            except (ProviderUnavailable, TransientSendFailure, PermanentSendFailure) as exc:
                status, error = DeliveryStatus.FAILED, str(exc)
                failure_kind = next(kind for cls, kind in _FAILURE_KINDS if isinstance(exc, cls))

        record = DeliveryRecord(
            record_id=None,
            notification_type=TriggerKind.CUSTOM,
            owner_id=int(owner_id),
            recipient_contact=to,
            subject_id=None,
            channel=channel,
            status=status,
            sent_at=now,
            provider_ref=provider_ref,
            error=error,
            failure_kind=failure_kind,
        )
        record_id = self._log.append(record)
        if status == DeliveryStatus.FAILED:
            logger.warning("Test %s to %s failed: %s", channel.value, to, error)
        else:
            logger.info("Test %s sent to %s", channel.value, to)
        return replace(record, record_id=record_id)
