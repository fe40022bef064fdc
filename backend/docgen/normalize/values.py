from __future__ import annotations

from typing import Any, Optional


def as_text(value: Any) -> Optional[str]:
    """
    Scalar -> stripped string. None / whitespace-only -> None.

    Booleans are rejected: a bool in a text field means the raw key points at
    the wrong attribute.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError(f"expected text, got bool {value!r}")
    if isinstance(value, (dict, list)):
        raise TypeError(f"expected text, got {type(value).__name__}")
    s = str(value).strip()
    return s or None


def text_or_empty(value: Any) -> str:
    return as_text(value) or ""


def is_true(value: Any) -> bool:
    """Strict two-option check: only an actual True counts."""
    return value is True


def as_int(value: Any) -> Optional[int]:
    """Picklist codes arrive as int, occasionally as numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None
