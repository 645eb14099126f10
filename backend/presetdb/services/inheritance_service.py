from __future__ import annotations

from collections.abc import Callable, Sized
from typing import Any, TypeVar

from ..hierarchy import ancestor_ids
from ..models import Catalogue, FeatureDefinition

T = TypeVar("T")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def resolve_inherited(
    catalogue: Catalogue,
    feature_id: str | None,
    getter: Callable[[FeatureDefinition], T | None],
) -> T | None:
    """Return the value from the closest ancestor (including ``feature_id`` itself) that defines it."""
    for current in ancestor_ids(feature_id):
        feature = catalogue.get(current)
        if feature is None:
            continue
        value = getter(feature)
        if not _is_empty(value):
            return value
    return None
