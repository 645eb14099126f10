from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from ..errors import FatalLoadError

logger = logging.getLogger(__name__)

PRESETS_FILE = "presets.json"
DEFAULTS_FILE = "preset_defaults.json"
CATEGORIES_FILE = "preset_categories.json"
FIELDS_FILE = "fields.json"
ADDRESS_FORMATS_FILE = "address_formats.json"
SUPPLEMENTARY_FILE = "nsi_presets.json"
REGIONS_FILE = "nsi_geojson.json"
COUNTRY_BOUNDARIES_FILE = "country_boundaries.json"


def translation_file(code: str) -> str:
    return f"translations/{code}.json"


class AssetProvider(Protocol):
    def read_bytes(self, name: str) -> bytes | None:
        """Return the raw document, or ``None`` when it does not exist."""


class FileAssetProvider:
    def __init__(self, root: Path):
        self.root = Path(root)

    @property
    def presets_dir(self) -> Path:
        return self.root / "presets"

    def read_bytes(self, name: str) -> bytes | None:
        path = self.presets_dir / name
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def __repr__(self) -> str:
        return f"FileAssetProvider(root={str(self.root)!r})"


def parse_document(raw: bytes, name: str) -> Any:
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"{name} is not valid JSON: {exc}") from exc


def load_document(provider: AssetProvider, name: str, *, required: bool = True) -> Any:
    raw = provider.read_bytes(name)
    if raw is None:
        if required:
            raise FatalLoadError(name, "document is missing")
        logger.debug("Optional document %s is missing", name)
        return None
    try:
        return parse_document(raw, name)
    except ValueError as exc:
        raise FatalLoadError(name, str(exc)) from exc
