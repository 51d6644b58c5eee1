"""
Utility functions for the workflow automation engine.

Includes:
- UTC datetime helpers (all timestamps are stored naive UTC)
- Template placeholder substitution
- JSON normalization for stored step output
- Pagination offsets
"""

import json
import re
from datetime import datetime, timezone
from typing import Any

_PLACEHOLDER = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


def utcnow() -> datetime:
    """Current time as naive UTC, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to naive UTC.

    Naive input is assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def json_safe(value: Any) -> Any:
    """Round-trip a value through JSON, stringifying what JSON cannot hold (datetimes, UUIDs)."""
    return json.loads(json.dumps(value, default=str))


def render_placeholders(template: str, values: dict[str, Any], defaults: dict[str, str] | None = None) -> str:
    """
    Replace ``{{name}}`` placeholders in a message template.

    A placeholder whose value is missing or empty falls back to
    ``defaults[name]``; placeholders with neither are left untouched.

    Args:
        template: Message text
        values: Values to substitute, usually the execution context
        defaults: Fallback text per placeholder

    Returns:
        Rendered text
    """
    defaults = defaults or {}

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        value = values.get(name)
        if value is None or value == "":
            return defaults.get(name, match.group(0))
        return str(value)

    return _PLACEHOLDER.sub(_sub, template)


def calculate_offset(page: int = 1, per_page: int = 20) -> int:
    """
    Calculate the SQL offset for a 1-indexed page.

    Args:
        page: Page number (1-indexed)
        per_page: Items per page

    Returns:
        Row offset
    """
    return (max(page, 1) - 1) * per_page
