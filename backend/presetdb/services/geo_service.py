from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Protocol

from shapely.errors import GeometryTypeError, ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from ..config import settings
from ..errors import FatalLoadError, UnrecognizedLocationRule
from ..models import (
    CircleRule,
    CountryRule,
    GeoJsonRule,
    GeoRegion,
    LatLon,
    LocationRule,
    LocationSet,
    UniversalRule,
)
from .asset_service import COUNTRY_BOUNDARIES_FILE, AssetProvider, load_document

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371008.8
UNIVERSAL_CODE = "001"
GEOJSON_SUFFIX = ".geojson"
REGION_GEOMETRY_TYPES = {"Polygon", "MultiPolygon"}
COUNTRY_CODE_PROPERTIES = ("id", "iso1A2", "iso1A3", "iso1N3", "m49", "wikidata")


def great_circle_distance(a: LatLon, b: LatLon) -> float:
    """Haversine distance in meters."""
    lat1_rad = math.radians(a.lat)
    lat2_rad = math.radians(b.lat)
    d_lat = math.radians(b.lat - a.lat)
    d_lon = math.radians(b.lon - a.lon)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def geometry_from_geojson(payload: Any, allowed_types: set[str] | None = None) -> BaseGeometry | None:
    if not isinstance(payload, Mapping):
        return None
    if allowed_types is not None and payload.get("type") not in allowed_types:
        return None
    try:
        geometry = shape(payload)
    except (GeometryTypeError, ShapelyError, KeyError, TypeError, ValueError, IndexError):
        return None
    if geometry.is_empty:
        return None
    return geometry


class CountryGeometryProvider(Protocol):
    def region_for_code(self, code: str) -> GeoRegion | None:
        """Boundary geometry for an ISO country/region code, or ``None`` if unknown."""


class CountryBoundaries:
    """Country and region outlines from a geoJSON feature collection, keyed by their codes."""

    def __init__(self, regions: Mapping[str, GeoRegion] | None = None):
        self._regions: dict[str, GeoRegion] = {code.upper(): region for code, region in (regions or {}).items()}

    @classmethod
    def from_geojson(cls, document: Any) -> "CountryBoundaries":
        features = document.get("features") if isinstance(document, Mapping) else None
        regions: dict[str, GeoRegion] = {}
        for feature in features if isinstance(features, list) else []:
            if not isinstance(feature, Mapping):
                continue
            geometry = geometry_from_geojson(feature.get("geometry"), REGION_GEOMETRY_TYPES)
            if geometry is None:
                continue
            properties = feature.get("properties") if isinstance(feature.get("properties"), Mapping) else {}
            codes = {feature.get("id"), *(properties.get(name) for name in COUNTRY_CODE_PROPERTIES)}
            for code in codes:
                if isinstance(code, (str, int)) and not isinstance(code, bool) and str(code):
                    regions[str(code).upper()] = GeoRegion(str(code), geometry)
        return cls(regions)

    @classmethod
    def load(cls, provider: AssetProvider) -> "CountryBoundaries":
        try:
            document = load_document(provider, COUNTRY_BOUNDARIES_FILE, required=False)
        except FatalLoadError as exc:
            logger.warning("Ignoring country boundaries: %s", exc)
            document = None
        if document is None:
            logger.warning("No country boundaries available; country location rules will not match")
            return cls()
        boundaries = cls.from_geojson(document)
        logger.info("Loaded %d country/region codes", len(boundaries))
        return boundaries

    def region_for_code(self, code: str) -> GeoRegion | None:
        return self._regions.get(code.upper())

    def __len__(self) -> int:
        return len(self._regions)


def parse_location_rule(raw: Any, default_radius: float | None = None) -> LocationRule:
    if isinstance(raw, str):
        if raw == UNIVERSAL_CODE:
            return UniversalRule()
        if raw.lower().endswith(GEOJSON_SUFFIX):
            return GeoJsonRule(raw)
        if raw:
            return CountryRule(raw)
    elif isinstance(raw, list) and len(raw) in (2, 3):
        if all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in raw):
            if len(raw) > 2:
                radius = float(raw[2])
            elif default_radius is not None:
                radius = default_radius
            else:
                radius = settings.default_radius_meters
            return CircleRule(lon=float(raw[0]), lat=float(raw[1]), radius_meters=radius)
    raise UnrecognizedLocationRule(raw)


class LocationMatcher:
    """Evaluates location rules against a point for one catalogue snapshot."""

    def __init__(
        self,
        countries: CountryGeometryProvider,
        regions: Mapping[str, GeoRegion],
        default_radius: float | None = None,
    ):
        self.countries = countries
        self.regions = regions
        self.default_radius = settings.default_radius_meters if default_radius is None else default_radius

    def rule_admits(self, rule: LocationRule, location: LatLon, label: str = "?") -> bool:
        if isinstance(rule, UniversalRule):
            return True
        if isinstance(rule, GeoJsonRule):
            region = self.regions.get(rule.ref)
            if region is not None and region.contains(location):
                logger.debug("accepting %s for %s", rule.ref, label)
                return True
            return False
        if isinstance(rule, CountryRule):
            boundary = self.countries.region_for_code(rule.code)
            if boundary is None:
                logger.warning("unknown code: %s: %s", label, rule.code)
                return False
            if boundary.contains(location):
                logger.debug("accepting %s for %s", rule.code, label)
                return True
            return False
        if isinstance(rule, CircleRule):
            return great_circle_distance(LatLon(lat=rule.lat, lon=rule.lon), location) <= rule.radius_meters
        return False

    def any_admits(self, raw_rules: tuple[Any, ...], location: LatLon, label: str = "?") -> bool:
        for raw in raw_rules:
            try:
                rule = parse_location_rule(raw, self.default_radius)
            except UnrecognizedLocationRule as exc:
                logger.warning("unknown include: %s: %s", label, exc.rule)
                continue
            if self.rule_admits(rule, location, label):
                return True
        return False

    def admits(self, location_set: LocationSet | None, location: LatLon, label: str = "?") -> bool:
        """Whether ``location`` satisfies ``location_set``.

        No set, or a set without an ``include`` list, admits everywhere; an empty
        ``include`` list admits nowhere.  Include rules are OR-ed.  ``exclude`` rules
        are also honoured: a point admitted by ``include`` is rejected when any
        exclude rule admits it, so entries carrying ``exclude`` are filtered more
        narrowly than by include alone.
        """
        if location_set is None:
            return True
        if location_set.include is not None and not self.any_admits(location_set.include, location, label):
            return False
        if location_set.exclude and self.any_admits(location_set.exclude, location, label):
            return False
        return True
