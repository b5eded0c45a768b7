from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import TemplateType
from .model import Template


class TemplateRepository(Protocol):
    def find_owner_template(self, *, owner_id: int, type: TemplateType) -> Optional[Template]:
        raise NotImplementedError

    def find_global_template(self, *, type: TemplateType) -> Optional[Template]:
        raise NotImplementedError

    def list_for_owner(self, *, owner_id: int) -> Sequence[Template]:
        """Owner templates plus global ones (owner first)."""

        raise NotImplementedError

    def save_owner_template(self, *, owner_id: int, type: TemplateType, content: str) -> int:
        """Create or replace the owner's template for a type.

        Returns template id.
        """

        raise NotImplementedError

    def delete_owner_template(self, *, owner_id: int, type: TemplateType) -> bool:
        raise NotImplementedError

    def ensure_global_template(self, *, type: TemplateType, content: str) -> bool:
        """Insert a global template if the type has none. Returns True if inserted."""

        raise NotImplementedError
