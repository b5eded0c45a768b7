from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import TemplateType


@dataclass(frozen=True)
class Template:
    """A message template; ``owner_id`` is None for global and built-in ones."""

    template_id: Optional[int]
    type: TemplateType
    content: str
    owner_id: Optional[int] = None
    is_global: bool = False

    @property
    def is_builtin(self) -> bool:
        return self.template_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.template_id,
            "type": self.type.value,
            "content": self.content,
            "owner_id": self.owner_id,
            "is_global": self.is_global,
        }
