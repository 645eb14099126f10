"""Checked accessors over parsed JSON values.

Catalogue documents arrive as plain ``dict``/``list``/``str``/number trees.  These helpers
narrow a value to the expected shape or raise ``TypeMismatch`` naming the offending path.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import TypeMismatch


def child_path(path: str, key: str | int) -> str:
    if not path:
        return str(key)
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}"


def as_object(value: Any, path: str = "") -> dict[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeMismatch(path, "object", value)
    return dict(value)


def as_array(value: Any, path: str = "") -> list[Any]:
    if not isinstance(value, list):
        raise TypeMismatch(path, "array", value)
    return value


def as_string(value: Any, path: str = "") -> str:
    if not isinstance(value, str):
        raise TypeMismatch(path, "string", value)
    return value


def as_number(value: Any, path: str = "") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeMismatch(path, "number", value)
    return float(value)


def as_bool(value: Any, path: str = "") -> bool:
    if not isinstance(value, bool):
        raise TypeMismatch(path, "boolean", value)
    return value


def as_string_list(value: Any, path: str = "") -> list[str]:
    items = as_array(value, path)
    return [as_string(item, child_path(path, idx)) for idx, item in enumerate(items)]


def as_string_map(value: Any, path: str = "") -> dict[str, str]:
    mapping = as_object(value, path)
    return {key: as_string(item, child_path(path, key)) for key, item in mapping.items()}


def optional_string(value: Any, path: str = "") -> str | None:
    if value is None:
        return None
    return as_string(value, path)


def optional_number(value: Any, path: str = "") -> float | None:
    if value is None:
        return None
    return as_number(value, path)


def optional_bool(value: Any, path: str = "", default: bool = False) -> bool:
    if value is None:
        return default
    return as_bool(value, path)


def optional_object(value: Any, path: str = "") -> dict[str, Any] | None:
    if value is None:
        return None
    return as_object(value, path)


def optional_string_list(value: Any, path: str = "") -> list[str]:
    if value is None:
        return []
    return as_string_list(value, path)


def string_or_list(value: Any, path: str = "") -> list[str]:
    """Accept either a list of strings or a comma/newline separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.replace("\n", ",").split(",")
        return [part.strip() for part in parts if part.strip()]
    return as_string_list(value, path)


def nested_get(mapping: Any, *steps: str) -> Any:
    current: Any = mapping
    for step in steps:
        if not isinstance(current, Mapping):
            return None
        if step not in current:
            return None
        current = current[step]
    return current
