from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AlertSeverity


@dataclass(frozen=True)
class OwnerAlert:
    alert_id: Optional[int]
    owner_id: int
    severity: AlertSeverity
    title: str
    message: str
    created_at: datetime
    is_read: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.alert_id,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "is_read": self.is_read,
            "created_at": self.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        }
