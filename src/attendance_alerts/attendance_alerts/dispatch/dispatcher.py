from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Mapping, Optional

from ..alerts.service import AlertService
from ..channels.base import ChannelProvider
from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_WORKER_POOL_SIZE
from ..core.enums import AlertSeverity, Channel, DeliveryStatus, FailureKind, TemplateType, TriggerKind
from ..core.exceptions import (
    InfrastructureError,
    PermanentSendFailure,
    ProviderUnavailable,
    TransientSendFailure,
)
from ..delivery.model import DeliveryRecord
from ..delivery.policy import DedupPolicy
from ..delivery.repository import DeliveryLogRepository
from ..message_templates.model import Template
from ..message_templates.renderer import render
from ..message_templates.store import TemplateStore
from ..recipients.model import Recipient
from ..recipients.resolver import RecipientResolver
from ..settings.repository import SettingsRepository
from .model import BatchResult, DispatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Job:
    recipient: Recipient
    channel: Channel
    contact: str
    event_date: date


@dataclass(frozen=True)
class _Outcome:
    status: Optional[DeliveryStatus]
    error: Optional[DispatchError] = None


# Deadline expired before the job started.
_NOT_STARTED = _Outcome(status=None)


class _BatchState:
    """Mutable state shared by the workers of one batch."""

    def __init__(self, disabled: set[Channel], deadline: Optional[datetime]):
        self._lock = threading.Lock()
        self._disabled = set(disabled)
        self.deadline = deadline
        self.aborted = threading.Event()

    def channel_disabled(self, channel: Channel) -> bool:
        with self._lock:
            return channel in self._disabled

    def disable(self, channel: Channel) -> None:
        with self._lock:
            self._disabled.add(channel)


class Dispatcher:
    """Fans a trigger out to every (recipient, channel) pair.

    Sends run on a bounded thread pool; one recipient's failure never stops
    the others. Only InfrastructureError (database gone) escapes a batch.
    """

    def __init__(
        self,
        resolver: RecipientResolver,
        templates: TemplateStore,
        providers: Mapping[Channel, ChannelProvider],
        settings: SettingsRepository,
        log: DeliveryLogRepository,
        policy: DedupPolicy,
        *,
        alerts: Optional[AlertService] = None,
        pool_size: int = DEFAULT_WORKER_POOL_SIZE,
        audit_skips: bool = False,
        clock: Callable[[], datetime] = now_local,
    ):
        self._resolver = resolver
        self._templates = templates
        self._providers = dict(providers)
        self._settings = settings
        self._log = log
        self._policy = policy
        self._alerts = alerts
        self._pool_size = max(1, int(pool_size))
        self._audit_skips = bool(audit_skips)
        self._clock = clock

    def dispatch_batch(
        self,
        trigger_kind: TriggerKind,
        owner_id: int,
        as_of_date: date,
        *,
        deadline: Optional[datetime] = None,
        extra_variables: Optional[Mapping[str, object]] = None,
    ) -> BatchResult:
        result = BatchResult(trigger_kind=trigger_kind, owner_id=int(owner_id), as_of_date=as_of_date)

        recipients = self._resolver.resolve(trigger_kind, int(owner_id), as_of_date)
        if not recipients:
            return result

        settings = self._settings.get_for_owner(int(owner_id))
        channels = [c for c in Channel if settings is not None and settings.channel_enabled(c)]
        if not channels:
            return result

        disabled = set()
        for channel in channels:
            provider = self._providers.get(channel)
            if provider is None or not provider.available():
                logger.warning("%s provider not configured; skipping channel for owner %s", channel.value, owner_id)
                disabled.add(channel)

        templates = {
            channel: self._templates.resolve(TemplateType.for_trigger(trigger_kind, channel), int(owner_id))
            for channel in channels
            if channel not in disabled
        }

        jobs: list[_Job] = []
        seen: set[tuple] = set()
        for r in recipients:
            for c in channels:
                contact = r.contact_for(c)
                key = (r.subject_id, c, contact)
                if contact and key not in seen:
                    seen.add(key)
                    jobs.append(_Job(recipient=r, channel=c, contact=contact, event_date=as_of_date))

        state = _BatchState(disabled, deadline)
        extra = dict(extra_variables or {})

        with ThreadPoolExecutor(max_workers=self._pool_size, thread_name_prefix="dispatch") as pool:
            futures = [
                pool.submit(self._guarded, trigger_kind, int(owner_id), job, templates.get(job.channel), extra, state)
                for job in jobs
            ]
            # result() re-raises InfrastructureError from a worker.
            outcomes = [f.result() for f in futures]

        for outcome in outcomes:
            if outcome.status is None:
                result.truncated = True
            elif outcome.status == DeliveryStatus.SENT:
                result.sent += 1
            elif outcome.status == DeliveryStatus.FAILED:
                result.failed += 1
            else:
                result.skipped += 1
            if outcome.error is not None:
                result.errors.append(outcome.error)

        logger.info(
            "Batch %s owner=%s date=%s: sent=%s failed=%s skipped=%s truncated=%s",
            trigger_kind.value,
            owner_id,
            as_of_date,
            result.sent,
            result.failed,
            result.skipped,
            result.truncated,
        )
        return result

    def _guarded(
        self,
        kind: TriggerKind,
        owner_id: int,
        job: _Job,
        template: Optional[Template],
        extra: Mapping[str, object],
        state: _BatchState,
    ) -> _Outcome:
        if state.aborted.is_set():
            return _NOT_STARTED
        try:
            return self._deliver(kind, owner_id, job, template, extra, state)
        except InfrastructureError:
            state.aborted.set()
            raise

    def _deliver(
        self,
        kind: TriggerKind,
        owner_id: int,
        job: _Job,
        template: Optional[Template],
        extra: Mapping[str, object],
        state: _BatchState,
    ) -> _Outcome:
        now = self._clock()
        if state.deadline is not None and now >= state.deadline:
            return _NOT_STARTED

        if template is None or state.channel_disabled(job.channel):
            return self._skip(kind, owner_id, job, now, "channel unavailable")
        if self._policy.contact_suppressed(job.contact, job.channel, now):
            return self._skip(kind, owner_id, job, now, "contact suppressed after permanent failure")
        if not self._policy.may_notify(
            kind, job.contact, job.recipient.subject_id, job.channel, now, event_date=job.event_date
        ):
            return self._skip(kind, owner_id, job, now, "within dedup window")

        variables = {**job.recipient.variables, **extra}
        content = render(template.content, variables)
        subject = None
        if job.channel == Channel.EMAIL:
            subject = render(self._templates.email_subject(kind), variables)

        provider = self._providers[job.channel]
        try:
            provider_ref = provider.send(job.contact, content, subject=subject)
        except ProviderUnavailable as exc:
            state.disable(job.channel)
            return self._fail(kind, owner_id, job, now, exc, FailureKind.UNAVAILABLE)
        except TransientSendFailure as exc:
            return self._fail(kind, owner_id, job, now, exc, FailureKind.TRANSIENT)
        except PermanentSendFailure as exc:
            outcome = self._fail(kind, owner_id, job, now, exc, FailureKind.PERMANENT)
            self._alert_permanent(owner_id, job, exc)
            return outcome
        except InfrastructureError:
            raise
        except Exception as exc:
            logger.exception("Unexpected error sending %s %s to %s", kind.value, job.channel.value, job.contact)
            return self._fail(kind, owner_id, job, now, exc, FailureKind.TRANSIENT)

        self._log.append(
            DeliveryRecord(
                record_id=None,
                notification_type=kind,
                owner_id=owner_id,
                recipient_contact=job.contact,
                subject_id=job.recipient.subject_id,
                channel=job.channel,
                status=DeliveryStatus.SENT,
                sent_at=now,
                provider_ref=provider_ref,
                event_date=job.event_date,
            )
        )
        logger.info("Sent %s %s to %s (subject %s)", kind.value, job.channel.value, job.contact, job.recipient.subject_id)
        return _Outcome(status=DeliveryStatus.SENT)

    def _skip(self, kind: TriggerKind, owner_id: int, job: _Job, now: datetime, reason: str) -> _Outcome:
        if self._audit_skips:
            self._log.append(
                DeliveryRecord(
                    record_id=None,
                    notification_type=kind,
                    owner_id=owner_id,
                    recipient_contact=job.contact,
                    subject_id=job.recipient.subject_id,
                    channel=job.channel,
                    status=DeliveryStatus.SKIPPED,
                    sent_at=now,
                    error=reason,
                    event_date=job.event_date,
                )
            )
        logger.debug("Skipped %s %s to %s: %s", kind.value, job.channel.value, job.contact, reason)
        return _Outcome(status=DeliveryStatus.SKIPPED)

    def _fail(
        self,
        kind: TriggerKind,
        owner_id: int,
        job: _Job,
        now: datetime,
        exc: Exception,
        failure_kind: FailureKind,
    ) -> _Outcome:
        self._log.append(
            DeliveryRecord(
                record_id=None,
                notification_type=kind,
                owner_id=owner_id,
                recipient_contact=job.contact,
                subject_id=job.recipient.subject_id,
                channel=job.channel,
                status=DeliveryStatus.FAILED,
                sent_at=now,
                error=str(exc),
                failure_kind=failure_kind,
                event_date=job.event_date,
            )
        )
        logger.warning(
            "Failed %s %s to %s (%s): %s", kind.value, job.channel.value, job.contact, failure_kind.value, exc
        )
        return _Outcome(
            status=DeliveryStatus.FAILED,
            error=DispatchError(
                recipient_contact=job.contact,
                subject_id=job.recipient.subject_id,
                channel=job.channel,
                error=str(exc),
                failure_kind=failure_kind,
            ),
        )

    def _alert_permanent(self, owner_id: int, job: _Job, exc: Exception) -> None:
        if self._alerts is None:
            return
        self._alerts.raise_alert(
            owner_id=owner_id,
            severity=AlertSeverity.WARNING,
            title=f"Undeliverable {job.channel.value} contact",
            message=(
                f"Messages about {job.recipient.subject_name} to {job.contact} cannot be delivered ({exc}). "
                "Please update the guardian's contact details."
            ),
        )
