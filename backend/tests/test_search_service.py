from conftest import make_database, make_documents, square

from presetdb.models import GeometryKind, LatLon
from presetdb.services.geo_service import CountryBoundaries

COUNTRIES = {
    "type": "FeatureCollection",
    "features": [
        {"type": "Feature", "properties": {"iso1A2": "FR"}, "geometry": square(2.0, 46.5, 4.0)},
    ],
}

PRESETS = {
    "amenity/cafe": {"tags": {"amenity": "cafe"}, "geometry": ["point", "area"], "name": "Cafe"},
    "amenity/car_wash": {"tags": {"amenity": "car_wash"}, "geometry": ["point"], "name": "Car Wash"},
    "amenity/bicycle_cafe": {
        "tags": {"amenity": "cafe", "cafe": "bicycle"},
        "geometry": ["point"],
        "name": "Bicycle Cafe",
        "terms": ["cafe for cyclists"],
    },
    "amenity/hidden_cafe": {"tags": {"amenity": "cafe"}, "geometry": ["point"], "name": "Cafe Hidden", "searchable": False},
    "amenity/local_cafe": {
        "tags": {"amenity": "cafe"},
        "geometry": ["point"],
        "name": "Cafe Local",
        "locationSet": {"include": [[0, 0, 1000]]},
    },
    "amenity/french_cafe": {
        "tags": {"amenity": "cafe"},
        "geometry": ["point"],
        "name": "Cafe Parisien",
        "locationSet": {"include": ["fr"]},
    },
    "amenity/odd_cafe": {
        "tags": {"amenity": "cafe"},
        "geometry": ["point"],
        "name": "Cafe Odd",
        "locationSet": {"include": [{"unexpected": "shape"}]},
    },
}


def _database():
    return make_database(make_documents(PRESETS), countries=CountryBoundaries.from_geojson(COUNTRIES))


def _ids(results):
    return [feature.id for feature, _ in results]


def test_results_are_ordered_by_score_then_catalogue_order() -> None:
    results = _database().search("caf", GeometryKind.POINT, LatLon(lat=0.0, lon=0.0))
    assert _ids(results) == ["amenity/cafe", "amenity/local_cafe", "amenity/bicycle_cafe"]
    assert [score for _, score in results] == [5, 5, 3]


def test_unsearchable_and_inapplicable_features_are_skipped() -> None:
    results = _database().search("cafe", GeometryKind.AREA, LatLon(lat=0.0, lon=0.0))
    assert _ids(results) == ["amenity/cafe"]


def test_region_filter_is_applied_after_text_match() -> None:
    database = _database()
    far_away = database.search("cafe", GeometryKind.POINT, LatLon(lat=0.018, lon=0.0))
    assert "amenity/local_cafe" not in _ids(far_away)

    paris = database.search("cafe", GeometryKind.POINT, LatLon(lat=48.85, lon=2.35))
    assert "amenity/french_cafe" in _ids(paris)
    assert "amenity/local_cafe" not in _ids(paris)


def test_unrecognized_rule_never_admits() -> None:
    results = _database().search("cafe odd", GeometryKind.POINT, LatLon(lat=0.0, lon=0.0))
    assert results == []


def test_missing_query_returns_nothing() -> None:
    assert _database().search(None, GeometryKind.POINT, LatLon(lat=0.0, lon=0.0)) == []
