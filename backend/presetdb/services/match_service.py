from __future__ import annotations

from collections.abc import Mapping

from ..models import FeatureDefinition, GeometryKind, TagIndex
from ..telemetry import timed_stage
from .index_service import CATCH_ALL_KEY

WILDCARD = "*"


def tag_match_score(feature: FeatureDefinition, tags: Mapping[str, str], geometry: GeometryKind) -> float:
    """Score how well ``tags`` fit ``feature``; 0.0 means the feature is not eligible.

    Every required tag pair must be present: an exact value earns ``match_score``, a
    wildcard value earns half of it.  Matching ``add_tags`` that are not already required
    add ``match_score`` each.
    """
    if not feature.applies_to(geometry):
        return 0.0

    score = 1.0
    for key, value in feature.tags.items():
        actual = tags.get(key)
        if actual is None:
            return 0.0
        if value == actual:
            score += feature.match_score
        elif value == WILDCARD:
            score += feature.match_score / 2
        else:
            return 0.0

    for key, value in feature.add_tags.items():
        if key in feature.tags:
            continue
        if tags.get(key) == value:
            score += feature.match_score
    return score


def best_match(index: TagIndex, tags: Mapping[str, str], geometry: GeometryKind) -> FeatureDefinition | None:
    """Highest scoring feature among the index entries for the object's keys.

    Keys are probed in the object's tag order, then the catch-all key.  Ties keep the
    first feature seen.
    """
    best_feature: FeatureDefinition | None = None
    best_score = 0.0
    with timed_stage("match"):
        for key in [*tags.keys(), CATCH_ALL_KEY]:
            for feature in index.get(key, ()):
                score = tag_match_score(feature, tags, geometry)
                if score > best_score:
                    best_score = score
                    best_feature = feature
    return best_feature
