from __future__ import annotations

import logging
from collections.abc import Iterator

from ..models import CatalogueSnapshot, FeatureDefinition, GeometryKind, LatLon
from ..telemetry import timed_stage
from .geo_service import CountryGeometryProvider, LocationMatcher
from .text_service import display_name, text_match_score

logger = logging.getLogger(__name__)


def iter_presets_and_supplementary(snapshot: CatalogueSnapshot) -> Iterator[FeatureDefinition]:
    yield from snapshot.base.values()
    yield from snapshot.supplementary.values()


def search_features(
    snapshot: CatalogueSnapshot,
    query: str | None,
    geometry: GeometryKind,
    location: LatLon,
    countries: CountryGeometryProvider,
    default_radius: float | None = None,
) -> list[tuple[FeatureDefinition, int]]:
    """Searchable features matching ``query`` for ``geometry`` that are valid at ``location``.

    Results are ordered by descending score; equal scores keep catalogue order
    (base features first, then supplementary ones).
    """
    locations = LocationMatcher(countries, snapshot.regions, default_radius)
    matches: list[tuple[FeatureDefinition, int]] = []
    with timed_stage("search"):
        for feature in iter_presets_and_supplementary(snapshot):
            if not feature.searchable:
                continue
            score = text_match_score(feature, query, geometry)
            if score is None:
                continue
            if not locations.admits(feature.location_set, location, display_name(feature)):
                continue
            matches.append((feature, score))
    matches.sort(key=lambda item: item[1], reverse=True)
    return matches
