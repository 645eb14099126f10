from typing import Any

from pydantic import BaseModel, Field

from .models import CategoryDefinition, FeatureDefinition, GeometryKind


class LocationSetView(BaseModel):
    include: list[Any] | None = None
    exclude: list[Any] = Field(default_factory=list)


class FeatureView(BaseModel):
    id: str
    name: str | None = None
    tags: dict[str, str]
    add_tags: dict[str, str] = Field(default_factory=dict)
    geometry: list[GeometryKind]
    searchable: bool
    is_supplementary: bool
    icon: str | None = None
    terms: list[str] = Field(default_factory=list)
    fields: list[str] = Field(default_factory=list)
    location_set: LocationSetView | None = None

    @classmethod
    def from_feature(cls, feature: FeatureDefinition) -> "FeatureView":
        location_set = None
        if feature.location_set is not None:
            location_set = LocationSetView(
                include=None if feature.location_set.include is None else list(feature.location_set.include),
                exclude=list(feature.location_set.exclude),
            )
        return cls(
            id=feature.id,
            name=feature.name,
            tags=dict(feature.tags),
            add_tags=dict(feature.add_tags),
            geometry=sorted(feature.geometry, key=lambda kind: kind.value),
            searchable=feature.searchable,
            is_supplementary=feature.is_supplementary,
            icon=feature.icon,
            terms=list(feature.terms),
            fields=list(feature.fields),
            location_set=location_set,
        )


class CategoryView(BaseModel):
    id: str
    name: str | None = None
    icon: str | None = None
    members: list[str]

    @classmethod
    def from_category(cls, category: CategoryDefinition) -> "CategoryView":
        return cls(id=category.id, name=category.name, icon=category.icon, members=list(category.members))


class MatchRequest(BaseModel):
    tags: dict[str, str]
    geometry: GeometryKind
    include_supplementary: bool = True


class MatchResponse(BaseModel):
    matched: bool
    feature: FeatureView | None = None
    supplementary_loaded: bool


class SearchResultView(BaseModel):
    feature: FeatureView
    score: int


class SearchResponse(BaseModel):
    query: str | None
    geometry: GeometryKind
    lat: float
    lon: float
    results: list[SearchResultView]
    request_id: str | None = None


class InheritedFieldResponse(BaseModel):
    feature_id: str
    field: str
    value: Any | None = None


class DefaultsResponse(BaseModel):
    geometry: GeometryKind
    features: list[FeatureView]
    categories: list[CategoryView]


class ReloadRequest(BaseModel):
    language: str | None = None


class HealthResponse(BaseModel):
    status: str
    language: str
    base_presets: int
    supplementary_presets: int
    regions: int
    background: dict[str, str]
