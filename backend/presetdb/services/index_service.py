from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from ..hierarchy import top_level_key
from ..models import Catalogue, FeatureDefinition, TagIndex
from ..telemetry import instrument_stage

CATCH_ALL_KEY = ""


def significant_keys(base: Mapping[str, FeatureDefinition]) -> Counter[str]:
    """Tag keys that some base feature id starts with, e.g. ``amenity`` for ``amenity/cafe``."""
    return Counter(top_level_key(feature_id) for feature_id in base)


@instrument_stage("index")
def build_tag_index(catalogues: Iterable[Catalogue], base: Catalogue) -> TagIndex:
    """Map each significant tag key to the features carrying it.

    ``base`` is always the regular catalogue; ``catalogues`` is either ``[base]`` or
    ``[base, supplementary]``.  Features with several significant keys are filed under
    each of them; features with none go under the catch-all ``""`` key.
    """
    keys = significant_keys(base)
    index: dict[str, list[FeatureDefinition]] = {}
    for catalogue in catalogues:
        for feature in catalogue.values():
            added = False
            for key in feature.tags:
                if key in keys:
                    index.setdefault(key, []).append(feature)
                    added = True
            if not added:
                index.setdefault(CATCH_ALL_KEY, []).append(feature)
    return MappingProxyType({key: tuple(features) for key, features in index.items()})
