from __future__ import annotations

import json
import threading
from typing import Any

import pytest

from presetdb.database import PresetsDatabase
from presetdb.services.geo_service import CountryBoundaries


class MemoryAssetProvider:
    """Serves catalogue documents from memory; a gated document blocks until its event is set."""

    def __init__(
        self,
        documents: dict[str, Any],
        raw: dict[str, bytes] | None = None,
        gates: dict[str, threading.Event] | None = None,
    ):
        self.documents = documents
        self.raw = raw or {}
        self.gates = gates or {}

    def read_bytes(self, name: str) -> bytes | None:
        gate = self.gates.get(name)
        if gate is not None:
            gate.wait(timeout=10)
        if name in self.raw:
            return self.raw[name]
        if name not in self.documents:
            return None
        return json.dumps(self.documents[name]).encode("utf-8")


def make_documents(presets: dict[str, Any], **extra: Any) -> dict[str, Any]:
    documents: dict[str, Any] = {
        "presets.json": presets,
        "preset_defaults.json": {},
        "preset_categories.json": {},
        "fields.json": {},
        "address_formats.json": [],
    }
    documents.update(extra)
    return documents


def make_database(documents: dict[str, Any], **kwargs: Any) -> PresetsDatabase:
    options: dict[str, Any] = {
        "language": "en",
        "countries": CountryBoundaries(),
        "start_background": False,
    }
    options.update(kwargs)
    provider = options.pop("provider", None) or MemoryAssetProvider(documents)
    return PresetsDatabase(provider, **options)


def square(lon: float, lat: float, half: float) -> dict[str, Any]:
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lon - half, lat - half],
                [lon + half, lat - half],
                [lon + half, lat + half],
                [lon - half, lat + half],
                [lon - half, lat - half],
            ]
        ],
    }


CAFE_CATALOGUE = {
    "amenity/cafe": {"tags": {"amenity": "cafe"}, "geometry": ["point"], "name": "Cafe"},
}


@pytest.fixture
def cafe_documents() -> dict[str, Any]:
    return make_documents(dict(CAFE_CATALOGUE))
