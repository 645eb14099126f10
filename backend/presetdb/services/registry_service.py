from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from ..errors import DegradedLoadError, FatalLoadError, TypeMismatch
from ..models import CategoryDefinition, FeatureDefinition, FieldDefinition, GeometryKind, LocationSet
from ..telemetry import timed_stage
from ..values import (
    as_array,
    as_object,
    as_string_list,
    as_string_map,
    child_path,
    nested_get,
    optional_bool,
    optional_number,
    optional_object,
    optional_string,
    optional_string_list,
    string_or_list,
)
from .asset_service import (
    ADDRESS_FORMATS_FILE,
    CATEGORIES_FILE,
    DEFAULTS_FILE,
    FIELDS_FILE,
    PRESETS_FILE,
    AssetProvider,
    load_document,
    translation_file,
)
from .translation_service import translate

logger = logging.getLogger(__name__)

SUPPLEMENTARY_ROOT_KEY = "presets"


def parse_geometry(value: Any, path: str) -> frozenset[GeometryKind]:
    kinds: set[GeometryKind] = set()
    for raw in as_string_list(value, path):
        kind = GeometryKind.parse(raw)
        if kind is None:
            logger.debug("Ignoring unknown geometry %r at %s", raw, path)
            continue
        kinds.add(kind)
    return frozenset(kinds)


def parse_location_set(value: Any, path: str) -> LocationSet | None:
    payload = optional_object(value, path)
    if payload is None:
        return None
    include = payload.get("include")
    exclude = payload.get("exclude")
    return LocationSet(
        include=tuple(as_array(include, child_path(path, "include"))) if include is not None else None,
        exclude=tuple(as_array(exclude, child_path(path, "exclude"))) if exclude is not None else (),
    )


def feature_from_json(feature_id: str, payload: Any, *, is_supplementary: bool = False) -> FeatureDefinition:
    path = feature_id
    values = as_object(payload, path)
    tags = as_string_map(values.get("tags", {}), child_path(path, "tags"))
    add_tags = values.get("addTags")
    remove_tags = values.get("removeTags")
    reference = values.get("reference")
    match_score = optional_number(values.get("matchScore"), child_path(path, "matchScore"))

    return FeatureDefinition(
        id=feature_id,
        tags=tags,
        geometry=parse_geometry(values.get("geometry", []), child_path(path, "geometry")),
        searchable=optional_bool(values.get("searchable"), child_path(path, "searchable"), default=True),
        name=optional_string(values.get("name"), child_path(path, "name")),
        location_set=parse_location_set(values.get("locationSet"), child_path(path, "locationSet")),
        is_supplementary=is_supplementary,
        add_tags=as_string_map(add_tags, child_path(path, "addTags")) if add_tags is not None else tags,
        remove_tags=as_string_map(remove_tags, child_path(path, "removeTags")) if remove_tags is not None else tags,
        terms=tuple(string_or_list(values.get("terms"), child_path(path, "terms"))),
        aliases=tuple(string_or_list(values.get("aliases"), child_path(path, "aliases"))),
        fields=tuple(optional_string_list(values.get("fields"), child_path(path, "fields"))),
        more_fields=tuple(optional_string_list(values.get("moreFields"), child_path(path, "moreFields"))),
        icon=optional_string(values.get("icon"), child_path(path, "icon")),
        match_score=1.0 if match_score is None else match_score,
        reference=as_string_map(reference, child_path(path, "reference")) if reference is not None else None,
    )


def features_from_document(document: Any, *, is_supplementary: bool = False) -> dict[str, FeatureDefinition]:
    presets = as_object(document)
    if is_supplementary:
        presets = as_object(presets.get(SUPPLEMENTARY_ROOT_KEY), SUPPLEMENTARY_ROOT_KEY)
    return {
        feature_id: feature_from_json(feature_id, values, is_supplementary=is_supplementary)
        for feature_id, values in presets.items()
    }


def load(base_json: Any, translation_json: Any = None) -> Mapping[str, FeatureDefinition]:
    """Merge a base catalogue document with its translation and build the features."""
    merged = translate(base_json, translation_json)
    return MappingProxyType(features_from_document(merged))


def load_translation(provider: AssetProvider, code: str) -> dict[str, Any]:
    """Return ``doc[code]["presets"]`` for a locale, or ``{}`` when it cannot be used."""
    name = translation_file(code)
    try:
        try:
            document = load_document(provider, name, required=False)
        except FatalLoadError as exc:
            raise DegradedLoadError(name, exc.reason) from exc
        if document is None:
            raise DegradedLoadError(name, "document is missing")
        locale_section = nested_get(document, code, "presets")
        if locale_section is None:
            raise DegradedLoadError(name, f"no '{code}.presets' section")
        try:
            return as_object(locale_section, f"{code}.presets")
        except TypeMismatch as exc:
            raise DegradedLoadError(name, str(exc)) from exc
    except DegradedLoadError as exc:
        logger.warning("Using untranslated preset text: %s", exc)
        return {}


def _section(translation: Mapping[str, Any], key: str) -> Any:
    section = translation.get(key)
    if section is not None and not isinstance(section, Mapping):
        logger.warning("Ignoring malformed translation section %r", key)
        return None
    return section


def _option_strings(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    strings: dict[str, str] = {}
    for option, label in value.items():
        if isinstance(label, str):
            strings[option] = label
        elif isinstance(label, Mapping) and isinstance(label.get("title"), str):
            strings[option] = label["title"]
    return strings


def field_from_json(name: str, payload: Any) -> FieldDefinition:
    values = as_object(payload, name)
    key = optional_string(values.get("key"), child_path(name, "key"))
    keys = tuple(optional_string_list(values.get("keys"), child_path(name, "keys")))
    raw_options = values.get("options")
    if isinstance(raw_options, Mapping):
        options = tuple(raw_options.keys())
    else:
        options = tuple(optional_string_list(raw_options, child_path(name, "options")))
    geometry = values.get("geometry")
    default = values.get("default")
    return FieldDefinition(
        name=name,
        key=key,
        keys=keys or ((key,) if key else ()),
        type=optional_string(values.get("type"), child_path(name, "type")) or "text",
        label=optional_string(values.get("label"), child_path(name, "label")),
        placeholder=optional_string(values.get("placeholder"), child_path(name, "placeholder")),
        options=options,
        strings=MappingProxyType(_option_strings(values.get("strings"))),
        geometry=parse_geometry(geometry, child_path(name, "geometry")) if geometry is not None else frozenset(),
        default=None if default is None else str(default),
    )


def category_from_json(category_id: str, payload: Any) -> CategoryDefinition:
    values = as_object(payload, category_id)
    return CategoryDefinition(
        id=category_id,
        name=optional_string(values.get("name"), child_path(category_id, "name")),
        icon=optional_string(values.get("icon"), child_path(category_id, "icon")),
        geometry=parse_geometry(values.get("geometry", []), child_path(category_id, "geometry")),
        members=tuple(as_string_list(values.get("members", []), child_path(category_id, "members"))),
    )


class FeatureRegistry:
    """Base catalogue plus the display tables that travel with it."""

    def __init__(
        self,
        presets: Mapping[str, FeatureDefinition],
        *,
        defaults: Mapping[str, Any],
        categories: Mapping[str, Any],
        fields: Mapping[str, Any],
        address_formats: list[Any],
        translation: Mapping[str, Any] | None = None,
        language: str = "en",
    ):
        self.presets = presets
        self.language = language
        self.json_defaults = defaults
        self.json_categories = categories
        self.json_fields = fields
        self.address_formats = address_formats

        translation = translation or {}
        yes_no = _option_strings(nested_get(translation, "fields", "internet_access", "options"))
        self.yes_for_locale = yes_no.get("yes", "Yes")
        self.no_for_locale = yes_no.get("no", "No")
        unknown = nested_get(translation, "fields", "opening_hours", "placeholder")
        self.unknown_for_locale = unknown if isinstance(unknown, str) else "???"

        self._categories = {
            category_id: category_from_json(category_id, payload) for category_id, payload in categories.items()
        }
        self._field_cache: dict[str, FieldDefinition] = {}

    @classmethod
    def load(cls, provider: AssetProvider, language: str) -> "FeatureRegistry":
        translation = load_translation(provider, language)
        with timed_stage("registry"):
            documents = {
                name: load_document(provider, name)
                for name in (PRESETS_FILE, DEFAULTS_FILE, CATEGORIES_FILE, FIELDS_FILE, ADDRESS_FORMATS_FILE)
            }
            registry = None
            if translation:
                try:
                    registry = cls._build(documents, translation, language)
                except TypeMismatch as exc:
                    degraded = DegradedLoadError(translation_file(language), str(exc))
                    logger.warning("Using untranslated preset text: %s", degraded)
            if registry is None:
                try:
                    registry = cls._build(documents, {}, language)
                except TypeMismatch as exc:
                    raise FatalLoadError("preset catalogue", str(exc)) from exc
        logger.info("Loaded %d presets (%s)", len(registry.presets), language)
        return registry

    @classmethod
    def _build(
        cls,
        documents: Mapping[str, Any],
        translation: Mapping[str, Any],
        language: str,
    ) -> "FeatureRegistry":
        def translated(name: str, section: str) -> dict[str, Any]:
            return as_object(translate(documents[name], _section(translation, section)), name)

        return cls(
            load(documents[PRESETS_FILE], _section(translation, "presets")),
            defaults=translated(DEFAULTS_FILE, "defaults"),
            categories=translated(CATEGORIES_FILE, "categories"),
            fields=translated(FIELDS_FILE, "fields"),
            address_formats=as_array(documents[ADDRESS_FORMATS_FILE], ADDRESS_FORMATS_FILE),
            translation=translation,
            language=language,
        )

    def defaults_for_geometry(self, geometry: GeometryKind) -> list[str]:
        raw = self.json_defaults.get(geometry.value)
        if not isinstance(raw, list):
            return []
        return [item for item in raw if isinstance(item, str)]

    def category(self, category_id: str) -> CategoryDefinition | None:
        return self._categories.get(category_id)

    def categories(self) -> list[CategoryDefinition]:
        return list(self._categories.values())

    def field(self, name: str) -> FieldDefinition | None:
        cached = self._field_cache.get(name)
        if cached is not None:
            return cached
        payload = self.json_fields.get(name)
        if payload is None:
            return None
        definition = field_from_json(name, payload)
        self._field_cache[name] = definition
        return definition

    def verify_fields(self) -> list[str]:
        """Parse every field definition; return the names that are malformed."""
        failures: list[str] = []
        for name in self.json_fields:
            try:
                self.field(name)
            except TypeMismatch as exc:
                logger.warning("Field %s is malformed: %s", name, exc)
                failures.append(name)
        return failures
