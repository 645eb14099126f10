from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from .hierarchy import parent_id, top_level_key


class GeometryKind(str, Enum):
    POINT = "point"
    VERTEX = "vertex"
    LINE = "line"
    AREA = "area"
    RELATION = "relation"

    @classmethod
    def parse(cls, value: str) -> "GeometryKind | None":
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class LatLon:
    lat: float
    lon: float

    def as_point(self) -> Point:
        return Point(self.lon, self.lat)


@dataclass(frozen=True, slots=True)
class UniversalRule:
    code: str = "001"


@dataclass(frozen=True, slots=True)
class CountryRule:
    code: str


@dataclass(frozen=True, slots=True)
class GeoJsonRule:
    ref: str


@dataclass(frozen=True, slots=True)
class CircleRule:
    lon: float
    lat: float
    radius_meters: float


LocationRule = Union[UniversalRule, CountryRule, GeoJsonRule, CircleRule]


@dataclass(frozen=True, slots=True)
class LocationSet:
    # Raw JSON entries; parsed lazily so one bad rule only disqualifies itself.
    # None when the set has no include list; an empty list admits nowhere.
    include: tuple[Any, ...] | None = None
    exclude: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True, eq=False)
class FeatureDefinition:
    id: str
    tags: Mapping[str, str]
    geometry: frozenset[GeometryKind]
    searchable: bool = True
    name: str | None = None
    location_set: LocationSet | None = None
    is_supplementary: bool = False
    add_tags: Mapping[str, str] = field(default_factory=dict)
    remove_tags: Mapping[str, str] = field(default_factory=dict)
    terms: tuple[str, ...] = ()
    aliases: tuple[str, ...] = ()
    fields: tuple[str, ...] = ()
    more_fields: tuple[str, ...] = ()
    icon: str | None = None
    match_score: float = 1.0
    reference: Mapping[str, str] | None = None

    @property
    def parent_id(self) -> str | None:
        return parent_id(self.id)

    @property
    def top_level_key(self) -> str:
        return top_level_key(self.id)

    def applies_to(self, geometry: GeometryKind) -> bool:
        return geometry in self.geometry

    def __repr__(self) -> str:
        return f"FeatureDefinition(id={self.id!r}, supplementary={self.is_supplementary})"


@dataclass(frozen=True, slots=True)
class FieldDefinition:
    name: str
    key: str | None
    keys: tuple[str, ...]
    type: str
    label: str | None = None
    placeholder: str | None = None
    options: tuple[str, ...] = ()
    strings: Mapping[str, str] = field(default_factory=dict)
    geometry: frozenset[GeometryKind] = frozenset()
    default: str | None = None

    def option_label(self, value: str) -> str:
        return self.strings.get(value, value)


@dataclass(frozen=True, slots=True)
class CategoryDefinition:
    id: str
    name: str | None
    icon: str | None
    geometry: frozenset[GeometryKind]
    members: tuple[str, ...]


class GeoRegion:
    """A named region from the geoJSON dataset."""

    __slots__ = ("name", "geometry", "_prepared")

    def __init__(self, name: str, geometry: BaseGeometry):
        self.name = name
        self.geometry = geometry
        self._prepared: PreparedGeometry = prep(geometry)

    def contains(self, location: LatLon) -> bool:
        return self._prepared.covers(location.as_point())

    def __repr__(self) -> str:
        return f"GeoRegion(name={self.name!r}, type={self.geometry.geom_type})"


Catalogue = Mapping[str, FeatureDefinition]
TagIndex = Mapping[str, tuple[FeatureDefinition, ...]]

EMPTY_CATALOGUE: Catalogue = MappingProxyType({})
EMPTY_REGIONS: Mapping[str, GeoRegion] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class CatalogueSnapshot:
    base: Catalogue
    supplementary: Catalogue
    base_index: TagIndex
    combined_index: TagIndex
    regions: Mapping[str, GeoRegion]

    @classmethod
    def initial(cls, base: Catalogue, base_index: TagIndex) -> "CatalogueSnapshot":
        return cls(
            base=base,
            supplementary=EMPTY_CATALOGUE,
            base_index=base_index,
            combined_index=base_index,
            regions=EMPTY_REGIONS,
        )

    def index_for(self, include_supplementary: bool) -> TagIndex:
        return self.combined_index if include_supplementary else self.base_index

    def feature(self, feature_id: str) -> FeatureDefinition | None:
        return self.base.get(feature_id) or self.supplementary.get(feature_id)
