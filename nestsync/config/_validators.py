from __future__ import annotations

from typing import Any


def validate_key_name(value: Any, *, name: str, default: str) -> str:
    """Validate a mapping key name used to read the input forest."""
    if value is None:
        return default
    key = str(value).strip()
    if not key:
        msg = f"{name} cannot be empty"
        raise ValueError(msg)
    if len(key) > 64:
        msg = f"{name} is too long"
        raise ValueError(msg)
    if any(ch.isspace() for ch in key):
        msg = f"{name} cannot contain whitespace"
        raise ValueError(msg)
    return key
