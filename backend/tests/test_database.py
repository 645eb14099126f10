from __future__ import annotations

import logging
import threading

import pytest
from conftest import MemoryAssetProvider, make_database, make_documents, square

from presetdb.database import DatabaseHandle, PresetsDatabase
from presetdb.errors import FatalLoadError
from presetdb.models import CategoryDefinition, GeometryKind, LatLon
from presetdb.services.augmentation_service import DISABLED, FAILED, LOADED, PENDING
from presetdb.services.geo_service import CountryBoundaries

BASE = {
    "amenity/cafe": {"tags": {"amenity": "cafe"}, "geometry": ["point", "area"], "name": "Cafe", "icon": "maki-cafe"},
    "amenity/cafe/internet": {"tags": {"amenity": "cafe", "internet_access": "yes"}, "geometry": ["point"]},
    "shop/bakery": {"tags": {"shop": "bakery"}, "geometry": ["point"], "name": "Bakery"},
}

SUPPLEMENTARY = {
    "presets": {
        "amenity/cafe/bean-1a2b": {
            "tags": {"amenity": "cafe", "brand": "Bean"},
            "geometry": ["point", "area"],
            "name": "Bean Coffee",
            "locationSet": {"include": ["bean.geojson"]},
        }
    }
}

REGIONS = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "id": "bean.geojson", "properties": {}, "geometry": square(5.0, 5.0, 1.0)},
        {"type": "Feature", "id": "line.geojson", "geometry": {"type": "LineString", "coordinates": [[0, 0], [1, 1]]}},
        {"type": "Feature", "geometry": square(0.0, 0.0, 1.0)},
    ],
}

FRENCH = {
    "fr": {
        "presets": {
            "presets": {"amenity/cafe": {"name": "Café", "terms": "bistrot,thé"}},
            "fields": {
                "internet_access": {"options": {"yes": "Oui", "no": "Non"}},
                "opening_hours": {"placeholder": "Inconnu"},
            },
            "categories": {"category-food": {"name": "Restauration"}},
        }
    }
}

BRANDED_TAGS = {"amenity": "cafe", "brand": "Bean", "name": "Bean Coffee"}


def _documents(**extra):
    return make_documents(
        dict(BASE),
        **{
            "nsi_presets.json": SUPPLEMENTARY,
            "nsi_geojson.json": REGIONS,
            "fields.json": {
                "internet_access": {"key": "internet_access", "type": "combo", "options": ["yes", "no"]},
                "opening_hours": {"key": "opening_hours", "type": "text", "placeholder": "Unknown"},
            },
            "preset_categories.json": {
                "category-food": {"name": "Food", "geometry": ["point"], "members": ["amenity/cafe"]},
            },
            "preset_defaults.json": {"point": ["category-food", "shop/bakery", "missing/preset"]},
            "address_formats.json": [{"format": [["housenumber", "street"]]}],
            **extra,
        },
    )


def test_missing_base_catalogue_is_fatal() -> None:
    documents = _documents()
    del documents["presets.json"]
    with pytest.raises(FatalLoadError) as excinfo:
        make_database(documents)
    assert excinfo.value.document == "presets.json"


def test_malformed_base_documents_are_fatal() -> None:
    provider = MemoryAssetProvider(_documents(), raw={"fields.json": b"{not json"})
    with pytest.raises(FatalLoadError):
        make_database({}, provider=provider)

    broken = _documents()
    broken["presets.json"] = {"amenity/cafe": {"tags": ["amenity"], "geometry": ["point"]}}
    with pytest.raises(FatalLoadError):
        make_database(broken)


def test_missing_translation_falls_back_to_base_text() -> None:
    database = make_database(_documents(), language="fr")
    assert database.language == "en"
    assert database.feature_by_id("amenity/cafe").name == "Cafe"
    assert database.yes_for_locale == "Yes"
    assert database.unknown_for_locale == "???"


def test_malformed_translation_is_degraded_not_fatal(caplog) -> None:
    provider = MemoryAssetProvider(_documents(), raw={"translations/fr.json": b"\xff\xfe"})
    with caplog.at_level(logging.WARNING, logger="presetdb.services.registry_service"):
        database = make_database({}, provider=provider, language="fr")
    assert database.language == "fr"
    assert database.feature_by_id("amenity/cafe").name == "Cafe"
    assert "untranslated" in caplog.text


@pytest.mark.parametrize(
    "presets_section",
    [
        {"amenity/cafe": {"name": 5}},
        {"ghost": "oops"},
    ],
)
def test_badly_typed_translation_falls_back_to_base_text(presets_section, caplog) -> None:
    translation = {"fr": {"presets": {"presets": presets_section, "categories": {"category-food": {"name": "Restauration"}}}}}
    with caplog.at_level(logging.WARNING, logger="presetdb.services.registry_service"):
        database = make_database(_documents(**{"translations/fr.json": translation}), language="fr")

    assert database.feature_by_id("amenity/cafe").name == "Cafe"
    assert database.feature_by_id("ghost") is None
    assert database.category("category-food").name == "Food"
    assert "untranslated" in caplog.text


def test_badly_typed_base_catalogue_stays_fatal_with_translation() -> None:
    documents = _documents(**{"translations/fr.json": FRENCH})
    documents["presets.json"] = {"amenity/cafe": {"tags": {"amenity": "cafe"}, "name": 5}}
    with pytest.raises(FatalLoadError):
        make_database(documents, language="fr")


def test_translation_is_merged_into_presets_fields_and_categories() -> None:
    database = make_database(_documents(**{"translations/fr.json": FRENCH}), language="fr")

    cafe = database.feature_by_id("amenity/cafe")
    assert cafe.name == "Café"
    assert cafe.terms == ("bistrot", "thé")
    assert cafe.icon == "maki-cafe"

    field = database.field("internet_access")
    assert field.options == ("yes", "no")
    assert field.option_label("yes") == "Oui"
    assert database.yes_for_locale == "Oui"
    assert database.no_for_locale == "Non"
    assert database.unknown_for_locale == "Inconnu"
    assert database.category("category-food").name == "Restauration"


def test_regional_language_falls_back_to_base_language() -> None:
    database = make_database(_documents(**{"translations/fr.json": FRENCH}), language="fr-CA")
    assert database.language == "fr"


def test_registry_tables() -> None:
    database = make_database(_documents())
    defaults = database.defaults_for_geometry(GeometryKind.POINT)
    assert isinstance(defaults[0], CategoryDefinition)
    assert [item.id for item in defaults] == ["category-food", "shop/bakery"]
    assert database.defaults_for_geometry(GeometryKind.LINE) == []
    assert database.address_formats == [{"format": [["housenumber", "street"]]}]
    assert database.registry.verify_fields() == []


def test_inherited_values_use_base_catalogue() -> None:
    database = make_database(_documents())
    assert database.resolve_inherited("amenity/cafe/internet", lambda feature: feature.icon) == "maki-cafe"
    assert database.resolve_inherited("amenity/cafe/bean-1a2b", lambda feature: feature.name) == "Cafe"


def test_initial_snapshot_is_base_only() -> None:
    database = make_database(_documents())
    snapshot = database.snapshot
    assert snapshot.supplementary == {}
    assert snapshot.combined_index is snapshot.base_index
    assert snapshot.regions == {}
    assert database.augmentation.status == {"supplementary": PENDING, "regions": PENDING}
    assert [feature.id for feature in database.enumerate_presets()] == list(BASE)


def test_supplementary_publish_happens_in_background() -> None:
    gate = threading.Event()
    provider = MemoryAssetProvider(_documents(), gates={"nsi_presets.json": gate})
    database = make_database({}, provider=provider, start_background=True, enable_regions=False)

    before = database.match(BRANDED_TAGS, GeometryKind.POINT, True)
    assert before is database.match(BRANDED_TAGS, GeometryKind.POINT, False)
    assert before.id == "amenity/cafe"
    assert database.feature_by_id("amenity/cafe/bean-1a2b") is None

    gate.set()
    assert database.wait_for_augmentation(timeout=5)

    after = database.match(BRANDED_TAGS, GeometryKind.POINT, True)
    assert after.id == "amenity/cafe/bean-1a2b"
    assert after.is_supplementary
    assert database.match(BRANDED_TAGS, GeometryKind.POINT, False).id == "amenity/cafe"
    assert database.supplementary_loaded
    assert database.augmentation.status == {"supplementary": LOADED, "regions": DISABLED}
    assert [feature.id for feature in database.enumerate_presets_and_supplementary()][-1] == "amenity/cafe/bean-1a2b"


def test_publishes_replace_only_their_own_fields() -> None:
    database = make_database(_documents(), start_background=True)
    initial = database.snapshot
    assert database.wait_for_augmentation(timeout=5)

    snapshot = database.snapshot
    assert snapshot is not initial
    assert snapshot.base is initial.base
    assert snapshot.base_index is initial.base_index
    assert list(snapshot.supplementary) == ["amenity/cafe/bean-1a2b"]
    assert list(snapshot.regions) == ["bean.geojson"]
    # the initial snapshot was never mutated
    assert initial.supplementary == {}
    assert initial.regions == {}


def test_geojson_rules_admit_once_regions_are_loaded() -> None:
    gate = threading.Event()
    provider = MemoryAssetProvider(_documents(), gates={"nsi_geojson.json": gate})
    database = make_database({}, provider=provider, start_background=True)
    inside = LatLon(lat=5.0, lon=5.0)

    def ids():
        return [feature.id for feature, _ in database.search("bean", GeometryKind.POINT, inside)]

    while not database.supplementary_loaded:
        database.augmentation.wait(timeout=0.05)
        if database.augmentation.status["supplementary"] == FAILED:
            pytest.fail("supplementary load failed")
    assert ids() == []

    gate.set()
    assert database.wait_for_augmentation(timeout=5)
    assert ids() == ["amenity/cafe/bean-1a2b"]
    assert [feature.id for feature, _ in database.search("bean", GeometryKind.POINT, LatLon(lat=0.0, lon=0.0))] == []


def test_background_failures_leave_base_data_in_place(caplog) -> None:
    provider = MemoryAssetProvider(_documents(), raw={"nsi_presets.json": b"[]", "nsi_geojson.json": b"oops"})
    with caplog.at_level(logging.ERROR, logger="presetdb.services.augmentation_service"):
        database = make_database({}, provider=provider, start_background=True)
        assert database.wait_for_augmentation(timeout=5)

    assert database.augmentation.status == {"supplementary": FAILED, "regions": FAILED}
    assert set(database.augmentation.failures) == {"supplementary", "regions"}
    assert database.snapshot.supplementary == {}
    assert database.snapshot.combined_index is database.snapshot.base_index
    assert database.match(BRANDED_TAGS, GeometryKind.POINT, True).id == "amenity/cafe"
    assert "continuing without it" in caplog.text


def test_missing_supplementary_file_is_a_background_failure() -> None:
    documents = _documents()
    del documents["nsi_presets.json"]
    database = make_database(documents, start_background=True)
    assert database.wait_for_augmentation(timeout=5)
    assert database.augmentation.status["supplementary"] == FAILED
    assert database.augmentation.status["regions"] == LOADED


def test_handle_reload_swaps_in_a_fresh_database() -> None:
    documents = _documents(**{"translations/fr.json": FRENCH})

    def factory(language: str = "en") -> PresetsDatabase:
        return make_database(documents, language=language, countries=CountryBoundaries())

    handle = DatabaseHandle(factory)
    first = handle.get()
    assert handle.get() is first
    assert first.feature_by_id("amenity/cafe").name == "Cafe"

    reloaded = handle.reload("fr")
    assert reloaded is not first
    assert handle.get() is reloaded
    assert reloaded.feature_by_id("amenity/cafe").name == "Café"
    # the old instance is untouched for readers still holding it
    assert first.feature_by_id("amenity/cafe").name == "Cafe"
