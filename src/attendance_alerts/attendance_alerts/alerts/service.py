from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.enums import AlertSeverity
from ..core.exceptions import ValidationError
from .model import OwnerAlert
from .repository import AlertRepository

logger = logging.getLogger(__name__)


class AlertService:
    """Owner-facing alerts, e.g. a guardian contact that keeps bouncing."""

    def __init__(self, alerts: AlertRepository, *, clock: Callable[[], datetime] = now_local):
        self._alerts = alerts
        self._clock = clock

    def raise_alert(self, *, owner_id: int, title: str, message: str, severity: AlertSeverity = AlertSeverity.WARNING) -> int:
        alert_id = self._alerts.add(
            OwnerAlert(
                alert_id=None,
                owner_id=int(owner_id),
                severity=severity,
                title=require_non_empty(title, "Title"),
                message=require_non_empty(message, "Message"),
                created_at=self._clock(),
            )
        )
        logger.info("Raised %s alert %s for owner %s: %s", severity.value, alert_id, owner_id, title)
        return alert_id

    def unread(self, owner_id: int, *, limit: int = 50) -> Sequence[OwnerAlert]:
        return self._alerts.list_unread(owner_id=int(owner_id), limit=max(1, min(int(limit), 200)))

    def mark_read(self, *, owner_id: int, alert_id: int) -> None:
        if not self._alerts.mark_read(owner_id=int(owner_id), alert_id=int(alert_id)):
            raise ValidationError("Alert not found")

    def mark_all_read(self, owner_id: int) -> int:
        return self._alerts.mark_all_read(owner_id=int(owner_id))

    def counts(self, owner_id: int) -> dict[str, int]:
        return self._alerts.counts(owner_id=int(owner_id))
