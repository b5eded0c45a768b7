from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.enums import TemplateType, TriggerKind
from ..core.exceptions import TemplateNotFound, ValidationError
from .defaults import BUILTIN_TEMPLATES, EMAIL_SUBJECTS
from .model import Template
from .repository import TemplateRepository

logger = logging.getLogger(__name__)

MAX_TEMPLATE_LENGTH = 20000


class TemplateStore:
    """Resolves the effective template: owner's, else global, else built-in."""

    def __init__(self, templates: TemplateRepository):
        self._templates = templates

    def _lookup(self, type: TemplateType, owner_id: Optional[int]) -> Template:
        if owner_id is not None:
            own = self._templates.find_owner_template(owner_id=int(owner_id), type=type)
            if own:
                return own

        shared = self._templates.find_global_template(type=type)
        if shared:
            return shared

        raise TemplateNotFound(f"No stored template for {type.value}")

    def resolve(self, type: TemplateType, owner_id: Optional[int] = None) -> Template:
        try:
            return self._lookup(type, owner_id)
        except TemplateNotFound:
            logger.debug("Falling back to built-in template for %s (owner=%s)", type.value, owner_id)
            return Template(template_id=None, type=type, content=BUILTIN_TEMPLATES[type], is_global=True)

    @staticmethod
    def email_subject(kind: TriggerKind) -> str:
        return EMAIL_SUBJECTS[kind]

    def list_for_owner(self, owner_id: int) -> Sequence[Template]:
        return self._templates.list_for_owner(owner_id=int(owner_id))

    def save_owner_template(self, *, owner_id: int, type: TemplateType, content: str) -> int:
        content = require_non_empty(content, "Template content")
        if len(content) > MAX_TEMPLATE_LENGTH:
            raise ValidationError(f"Template content is limited to {MAX_TEMPLATE_LENGTH} characters")
        return self._templates.save_owner_template(owner_id=int(owner_id), type=type, content=content)

    def delete_owner_template(self, *, owner_id: int, type: TemplateType) -> None:
        if not self._templates.delete_owner_template(owner_id=int(owner_id), type=type):
            raise ValidationError(f"No custom {type.value} template to delete")

    def seed_global_defaults(self) -> int:
        """Insert the built-in templates as globals where a type has none."""
        inserted = 0
        for type, content in BUILTIN_TEMPLATES.items():
            if self._templates.ensure_global_template(type=type, content=content.strip()):
                inserted += 1
        return inserted
