from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..config import settings
from ..database import DatabaseHandle, PresetsDatabase, get_database, get_database_handle
from ..models import CategoryDefinition, GeometryKind, LatLon
from ..schemas import (
    CategoryView,
    DefaultsResponse,
    FeatureView,
    HealthResponse,
    InheritedFieldResponse,
    MatchRequest,
    MatchResponse,
    ReloadRequest,
    SearchResponse,
    SearchResultView,
)
from ..telemetry import get_current_trace

router = APIRouter(tags=["presets"])

INHERITABLE_FIELDS = {
    "name": lambda feature: feature.name,
    "icon": lambda feature: feature.icon,
    "fields": lambda feature: list(feature.fields),
    "more_fields": lambda feature: list(feature.more_fields),
    "terms": lambda feature: list(feature.terms),
    "reference": lambda feature: dict(feature.reference) if feature.reference else None,
}


def _snapshot_state(database: PresetsDatabase) -> str:
    return "augmented" if database.supplementary_loaded else "base"


@router.post("/match", response_model=MatchResponse)
def match(payload: MatchRequest, database: PresetsDatabase = Depends(get_database)) -> MatchResponse:
    feature = database.match(payload.tags, payload.geometry, payload.include_supplementary)
    trace = get_current_trace()
    if trace is not None:
        trace.set_result_summary(1 if feature else 0, _snapshot_state(database))
    return MatchResponse(
        matched=feature is not None,
        feature=FeatureView.from_feature(feature) if feature else None,
        supplementary_loaded=database.supplementary_loaded,
    )


@router.get("/search", response_model=SearchResponse)
def search(
    request: Request,
    q: str | None = Query(default=None),
    geometry: GeometryKind = Query(default=GeometryKind.POINT),
    lat: float = Query(..., ge=-90.0, le=90.0),
    lon: float = Query(..., ge=-180.0, le=180.0),
    limit: int = Query(default=settings.search_result_limit, ge=1, le=500),
    database: PresetsDatabase = Depends(get_database),
) -> SearchResponse:
    trace = get_current_trace()
    if trace is not None:
        trace.mark_query(q)
    results = database.search(q, geometry, LatLon(lat=lat, lon=lon))[:limit]
    if trace is not None:
        trace.set_result_summary(len(results), _snapshot_state(database))
    return SearchResponse(
        query=q,
        geometry=geometry,
        lat=lat,
        lon=lon,
        results=[SearchResultView(feature=FeatureView.from_feature(feature), score=score) for feature, score in results],
        request_id=getattr(request.state, "request_id", None),
    )


@router.get("/presets/{feature_id:path}/inherited/{field}", response_model=InheritedFieldResponse)
def inherited_field(
    feature_id: str,
    field: str,
    database: PresetsDatabase = Depends(get_database),
) -> InheritedFieldResponse:
    getter = INHERITABLE_FIELDS.get(field)
    if getter is None:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported field {field!r}; expected one of: {', '.join(sorted(INHERITABLE_FIELDS))}",
        )
    value = database.resolve_inherited(feature_id, getter)
    return InheritedFieldResponse(feature_id=feature_id, field=field, value=value)


@router.get("/presets/{feature_id:path}", response_model=FeatureView)
def preset(feature_id: str, database: PresetsDatabase = Depends(get_database)) -> FeatureView:
    feature = database.feature_by_id(feature_id)
    if feature is None:
        raise HTTPException(status_code=404, detail=f"Unknown preset {feature_id!r}")
    return FeatureView.from_feature(feature)


@router.get("/defaults/{geometry}", response_model=DefaultsResponse)
def defaults(geometry: GeometryKind, database: PresetsDatabase = Depends(get_database)) -> DefaultsResponse:
    features: list[FeatureView] = []
    categories: list[CategoryView] = []
    for item in database.defaults_for_geometry(geometry):
        if isinstance(item, CategoryDefinition):
            categories.append(CategoryView.from_category(item))
        else:
            features.append(FeatureView.from_feature(item))
    return DefaultsResponse(geometry=geometry, features=features, categories=categories)


@router.post("/reload", response_model=HealthResponse)
def reload(payload: ReloadRequest, handle: DatabaseHandle = Depends(get_database_handle)) -> HealthResponse:
    database = handle.reload(payload.language)
    return health_for(database)


def health_for(database: PresetsDatabase) -> HealthResponse:
    snapshot = database.snapshot
    return HealthResponse(
        status="ok",
        language=database.language,
        base_presets=len(snapshot.base),
        supplementary_presets=len(snapshot.supplementary),
        regions=len(snapshot.regions),
        background=database.augmentation.status,
    )
