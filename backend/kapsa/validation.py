"""
Input coercion helpers shared by the request schemas.

These run as Pydantic ``mode="before"`` validators, so they see the raw JSON
value. Raising ValueError turns into a 400 with a field-specific message.
"""

import math
import re
from typing import Any
from urllib.parse import urlparse
from uuid import UUID

UUID_REGEX = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and UUID_REGEX.match(value) is not None


def parse_uuid(value: Any, *, label: str = "ID") -> UUID:
    """Accept only canonical hyphenated UUID strings (or UUID instances)."""
    if isinstance(value, UUID):
        return value
    if not is_valid_uuid(value):
        raise ValueError(f"Invalid {label}")
    return UUID(value)


def clamp_count(value: Any, *, default: int, minimum: int, maximum: int) -> int:
    """
    Clamp a requested item count into [minimum, maximum].

    Non-numeric input (including booleans, strings and NaN) takes the default;
    fractional values are floored.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        value = default
    elif isinstance(value, float) and not math.isfinite(value):
        value = default
    return max(minimum, min(maximum, math.floor(value)))


def truncate_text(value: Any, max_len: int, *, required: bool = False, label: str = "text") -> str | None:
    """Strip and truncate a free-text field. Empty optional fields become None."""
    if value is None:
        if required:
            raise ValueError(f"{label} is required")
        return None
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")
    value = value.strip()
    if not value:
        if required:
            raise ValueError(f"{label} must not be empty")
        return None
    return value[:max_len]


def require_http_url(value: Any, *, label: str = "URL") -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string")
    parsed = urlparse(value.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{label} must be an http or https URL")
    return value.strip()
