from __future__ import annotations

import re
import unicodedata

from ..models import FeatureDefinition, GeometryKind

WORD_SPLIT_RE = re.compile(r"[\s\-_/()&,.]+")

NAME_PREFIX_SCORE = 5
ALIAS_PREFIX_SCORE = 4
TERM_PREFIX_SCORE = 3
NAME_WORD_PREFIX_SCORE = 2
SUBSTRING_SCORE = 1


def accent_fold(text: str) -> str:
    folded = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in folded if not unicodedata.combining(ch))


def normalize_text(text: str) -> str:
    return " ".join(accent_fold(text).split())


def words(text: str) -> list[str]:
    return [word for word in WORD_SPLIT_RE.split(text) if word]


def display_name(feature: FeatureDefinition) -> str:
    return feature.name or feature.id.rsplit("/", 1)[-1].replace("_", " ")


def text_match_score(feature: FeatureDefinition, query: str | None, geometry: GeometryKind) -> int | None:
    """Relevance of ``feature`` for a free-text query, or ``None`` when it does not qualify."""
    if query is None:
        return None
    needle = normalize_text(query)
    if not needle:
        return None
    if not feature.applies_to(geometry):
        return None

    name = normalize_text(display_name(feature))
    if name.startswith(needle):
        return NAME_PREFIX_SCORE

    aliases = [normalize_text(alias) for alias in feature.aliases]
    if any(alias.startswith(needle) for alias in aliases):
        return ALIAS_PREFIX_SCORE

    terms = [normalize_text(term) for term in feature.terms]
    if any(term.startswith(needle) for term in terms):
        return TERM_PREFIX_SCORE

    if any(word.startswith(needle) for word in words(name)):
        return NAME_WORD_PREFIX_SCORE

    if needle in name or any(needle in text for text in aliases + terms):
        return SUBSTRING_SCORE
    return None
