from __future__ import annotations

import re
from typing import Any, Mapping, Optional

_PLACEHOLDER = re.compile(r"\{\{\s*(.*?)\s*\}\}")


def render(template: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Replace every ``{{key}}`` with ``variables[key]``.

    Unknown keys and None values render as the empty string, so a template
    edited by an owner can never break a send.
    """
    if not template:
        return ""
    values = variables or {}

    def _sub(match: re.Match) -> str:
        value = values.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_sub, template)
