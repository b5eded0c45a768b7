from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import TriggerKind
from .model import NotificationSettings


class SettingsRepository(Protocol):
    def get_for_owner(self, owner_id: int) -> Optional[NotificationSettings]:
        """Read without creating: None when the owner never configured anything."""

        raise NotImplementedError

    def save(self, settings: NotificationSettings) -> None:
        """Insert or replace the owner's row."""

        raise NotImplementedError

    def list_owner_ids_with(self, kind: TriggerKind) -> Sequence[int]:
        """Owners with the alert type and at least one channel enabled."""

        raise NotImplementedError
