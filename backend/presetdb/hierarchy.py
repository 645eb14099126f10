from __future__ import annotations

SEPARATOR = "/"


def parent_id(feature_id: str) -> str | None:
    """``"amenity/restaurant/pizza"`` -> ``"amenity/restaurant"``; top-level ids have no parent."""
    head, sep, _ = feature_id.rpartition(SEPARATOR)
    if not sep:
        return None
    return head


def top_level_key(feature_id: str) -> str:
    """``"amenity/restaurant/pizza"`` -> ``"amenity"``."""
    return feature_id.split(SEPARATOR, 1)[0]


def ancestor_ids(feature_id: str | None):
    current = feature_id
    while current is not None:
        yield current
        current = parent_id(current)
