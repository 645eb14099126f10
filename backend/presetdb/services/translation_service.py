from __future__ import annotations

from collections.abc import Mapping
from typing import Any

OPTIONS_KEY = "options"
STRINGS_KEY = "strings"


def translate(original: Any, translation: Any) -> Any:
    """Deep-merge a localized translation document over a base document.

    Objects are merged key by key.  An ``options`` entry keeps the base value untouched
    and exposes the translated labels as a sibling ``strings`` entry.  Keys that only
    appear in the translation are added; a translated scalar replaces the base scalar.
    A translation whose shape does not line up with the base leaves the base as is.
    """
    if translation is None:
        return original
    if not isinstance(original, Mapping):
        if isinstance(translation, Mapping):
            return original
        return translation
    if not isinstance(translation, Mapping):
        return original

    merged: dict[str, Any] = {}
    for key, value in original.items():
        if key == OPTIONS_KEY:
            merged[key] = value
            if translation.get(key) is not None:
                merged[STRINGS_KEY] = translation[key]
        else:
            merged[key] = translate(value, translation.get(key))

    for key, value in translation.items():
        if key not in merged:
            merged[key] = value
    return merged
