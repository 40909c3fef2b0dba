"""Field helpers shared by the boundary payload parsers."""

from __future__ import annotations

from typing import Any


def require_str(payload: dict, key: str, errors: list[str]) -> str:
    """Return ``payload[key]`` if it is a non-empty string, else record an error."""
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        errors.append(f"'{key}' is required and must be a non-empty string")
        return ""
    return value


def optional_str(payload: dict, key: str, errors: list[str]) -> str | None:
    """Return ``payload[key]`` if present; it must then be a non-empty string."""
    value: Any = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        errors.append(f"'{key}' must be a non-empty string when present")
        return None
    return value


def require_int(payload: dict, key: str, errors: list[str]) -> int:
    """Return ``payload[key]`` if it is an integer (booleans excluded)."""
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        errors.append(f"'{key}' is required and must be an integer")
        return 0
    return value
