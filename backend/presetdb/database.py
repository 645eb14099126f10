from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import replace
from functools import lru_cache
from threading import Lock
from typing import TypeVar

from .config import settings
from .models import (
    Catalogue,
    CatalogueSnapshot,
    CategoryDefinition,
    FeatureDefinition,
    FieldDefinition,
    GeometryKind,
    GeoRegion,
    LatLon,
    TagIndex,
)
from .services.asset_service import AssetProvider, FileAssetProvider
from .services.augmentation_service import LOADED, AugmentationLoader
from .services.geo_service import CountryBoundaries, CountryGeometryProvider
from .services.index_service import build_tag_index
from .services.inheritance_service import resolve_inherited
from .services.language_service import PresetLanguages
from .services.match_service import best_match
from .services.registry_service import FeatureRegistry
from .services.search_service import iter_presets_and_supplementary, search_features

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PresetsDatabase:
    """Preset catalogue for one locale.

    The base catalogue is loaded and indexed in the constructor.  The supplementary
    catalogue and geoJSON regions arrive later from background tasks, each replacing
    its part of the published ``CatalogueSnapshot``.  Readers always see one complete
    snapshot.
    """

    def __init__(
        self,
        provider: AssetProvider | None = None,
        *,
        language: str | None = None,
        countries: CountryGeometryProvider | None = None,
        enable_supplementary: bool | None = None,
        enable_regions: bool | None = None,
        start_background: bool = True,
    ):
        self.provider = provider or FileAssetProvider(settings.data_dir)
        languages = PresetLanguages(self.provider, language or settings.language, settings.fallback_language)
        self.language = languages.preferred_language_code()

        self.registry = FeatureRegistry.load(self.provider, self.language)
        base = self.registry.presets
        self._snapshot = CatalogueSnapshot.initial(base, build_tag_index([base], base))
        self._publish_lock = Lock()

        self.countries = countries if countries is not None else CountryBoundaries.load(self.provider)
        self.augmentation = AugmentationLoader(
            self.provider,
            base,
            publish_supplementary=self._publish_supplementary,
            publish_regions=self._publish_regions,
            enable_supplementary=settings.enable_supplementary if enable_supplementary is None else enable_supplementary,
            enable_regions=settings.enable_regions if enable_regions is None else enable_regions,
        )
        if start_background:
            self.augmentation.start()

    @property
    def snapshot(self) -> CatalogueSnapshot:
        return self._snapshot

    def _publish_supplementary(self, supplementary: Catalogue, combined_index: TagIndex) -> None:
        with self._publish_lock:
            self._snapshot = replace(self._snapshot, supplementary=supplementary, combined_index=combined_index)

    def _publish_regions(self, regions: Mapping[str, GeoRegion]) -> None:
        with self._publish_lock:
            self._snapshot = replace(self._snapshot, regions=regions)

    def wait_for_augmentation(self, timeout: float | None = None) -> bool:
        return self.augmentation.wait(timeout)

    @property
    def supplementary_loaded(self) -> bool:
        return self.augmentation.status.get("supplementary") == LOADED

    def enumerate_presets(self) -> Iterator[FeatureDefinition]:
        yield from self._snapshot.base.values()

    def enumerate_presets_and_supplementary(self) -> Iterator[FeatureDefinition]:
        yield from iter_presets_and_supplementary(self._snapshot)

    def feature_by_id(self, feature_id: str) -> FeatureDefinition | None:
        return self._snapshot.feature(feature_id)

    def resolve_inherited(
        self,
        feature_id: str | None,
        getter: Callable[[FeatureDefinition], T | None],
    ) -> T | None:
        # Supplementary entries are leaves and never act as ancestors.
        return resolve_inherited(self._snapshot.base, feature_id, getter)

    def match(
        self,
        tags: Mapping[str, str] | None,
        geometry: GeometryKind,
        include_supplementary: bool,
    ) -> FeatureDefinition | None:
        if tags is None:
            return None
        index = self._snapshot.index_for(include_supplementary)
        return best_match(index, tags, geometry)

    def search(
        self,
        query: str | None,
        geometry: GeometryKind,
        location: LatLon,
    ) -> list[tuple[FeatureDefinition, int]]:
        return search_features(self._snapshot, query, geometry, location, self.countries)

    def defaults_for_geometry(self, geometry: GeometryKind) -> list[FeatureDefinition | CategoryDefinition]:
        output: list[FeatureDefinition | CategoryDefinition] = []
        for item_id in self.registry.defaults_for_geometry(geometry):
            item = self.registry.category(item_id) or self.feature_by_id(item_id)
            if item is None:
                logger.debug("Default %s for %s is not in the catalogue", item_id, geometry.value)
                continue
            output.append(item)
        return output

    def field(self, name: str) -> FieldDefinition | None:
        return self.registry.field(name)

    def category(self, category_id: str) -> CategoryDefinition | None:
        return self.registry.category(category_id)

    @property
    def address_formats(self) -> list:
        return self.registry.address_formats

    @property
    def yes_for_locale(self) -> str:
        return self.registry.yes_for_locale

    @property
    def no_for_locale(self) -> str:
        return self.registry.no_for_locale

    @property
    def unknown_for_locale(self) -> str:
        return self.registry.unknown_for_locale


class DatabaseHandle:
    """Holds the current ``PresetsDatabase``; ``reload`` swaps in a fresh one (e.g. on locale change)."""

    def __init__(self, factory: Callable[..., PresetsDatabase] = PresetsDatabase):
        self._factory = factory
        self._database: PresetsDatabase | None = None
        self._lock = Lock()

    def get(self) -> PresetsDatabase:
        database = self._database
        if database is not None:
            return database
        with self._lock:
            if self._database is None:
                self._database = self._factory()
            return self._database

    def reload(self, language: str | None = None) -> PresetsDatabase:
        database = self._factory(language=language) if language else self._factory()
        with self._lock:
            self._database = database
        logger.info("Reloaded preset database (%s)", database.language)
        return database


@lru_cache(maxsize=1)
def get_database_handle() -> DatabaseHandle:
    return DatabaseHandle()


def get_database() -> PresetsDatabase:
    return get_database_handle().get()
