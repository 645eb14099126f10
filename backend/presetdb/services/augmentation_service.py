from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor, wait
from threading import Lock
from types import MappingProxyType
from typing import Any

from ..errors import BackgroundLoadFailure
from ..models import Catalogue, GeoRegion, TagIndex
from ..telemetry import timed_stage
from ..values import as_array, as_object
from .asset_service import REGIONS_FILE, SUPPLEMENTARY_FILE, AssetProvider, load_document
from .geo_service import REGION_GEOMETRY_TYPES, geometry_from_geojson
from .index_service import build_tag_index
from .registry_service import features_from_document

logger = logging.getLogger(__name__)

SUPPLEMENTARY_TASK = "supplementary"
REGIONS_TASK = "regions"

PENDING = "pending"
LOADED = "loaded"
FAILED = "failed"
DISABLED = "disabled"


def load_supplementary(provider: AssetProvider, base: Catalogue) -> tuple[Catalogue, TagIndex]:
    document = load_document(provider, SUPPLEMENTARY_FILE)
    supplementary = MappingProxyType(features_from_document(document, is_supplementary=True))
    combined_index = build_tag_index([base, supplementary], base)
    logger.info("Loaded %d supplementary presets", len(supplementary))
    return supplementary, combined_index


def regions_from_geojson(document: Any) -> Mapping[str, GeoRegion]:
    features = as_array(as_object(document, REGIONS_FILE).get("features"), f"{REGIONS_FILE}.features")
    regions: dict[str, GeoRegion] = {}
    for feature in features:
        if not isinstance(feature, Mapping) or feature.get("type") != "Feature":
            continue
        name = feature.get("id")
        if not isinstance(name, str):
            continue
        geometry = geometry_from_geojson(feature.get("geometry"), REGION_GEOMETRY_TYPES)
        if geometry is None:
            logger.debug("Skipping region %s with unusable geometry", name)
            continue
        regions[name] = GeoRegion(name, geometry)
    return MappingProxyType(regions)


def load_regions(provider: AssetProvider) -> Mapping[str, GeoRegion]:
    regions = regions_from_geojson(load_document(provider, REGIONS_FILE))
    logger.info("Loaded %d geoJSON regions", len(regions))
    return regions


class AugmentationLoader:
    """Runs the supplementary catalogue and region dataset loads off the caller's thread.

    Each task publishes its result once through its callback; a failure leaves the
    published state alone and is only logged.
    """

    def __init__(
        self,
        provider: AssetProvider,
        base: Catalogue,
        *,
        publish_supplementary: Callable[[Catalogue, TagIndex], None],
        publish_regions: Callable[[Mapping[str, GeoRegion]], None],
        enable_supplementary: bool = True,
        enable_regions: bool = True,
    ):
        self.provider = provider
        self.base = base
        self._publish_supplementary = publish_supplementary
        self._publish_regions = publish_regions
        self._status_lock = Lock()
        self._status = {
            SUPPLEMENTARY_TASK: PENDING if enable_supplementary else DISABLED,
            REGIONS_TASK: PENDING if enable_regions else DISABLED,
        }
        self.failures: dict[str, BackgroundLoadFailure] = {}
        self._futures: list[Future] = []
        self._started = False

    @property
    def status(self) -> dict[str, str]:
        with self._status_lock:
            return dict(self._status)

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        tasks = []
        if self._status[SUPPLEMENTARY_TASK] == PENDING:
            tasks.append((SUPPLEMENTARY_TASK, self._run_supplementary))
        if self._status[REGIONS_TASK] == PENDING:
            tasks.append((REGIONS_TASK, self._run_regions))
        if not tasks:
            return
        executor = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="presetdb-augment")
        self._futures = [executor.submit(self._run, name, task) for name, task in tasks]
        executor.shutdown(wait=False)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until both tasks have finished; ``False`` on timeout."""
        if not self._futures:
            return True
        _, not_done = wait(self._futures, timeout=timeout)
        return not not_done

    def _run_supplementary(self) -> None:
        supplementary, combined_index = load_supplementary(self.provider, self.base)
        self._publish_supplementary(supplementary, combined_index)

    def _run_regions(self) -> None:
        self._publish_regions(load_regions(self.provider))

    def _run(self, name: str, task: Callable[[], None]) -> None:
        try:
            with timed_stage(f"augment.{name}"):
                task()
        except Exception as exc:
            failure = BackgroundLoadFailure(name, str(exc))
            logger.error("%s; continuing without it", failure, exc_info=exc)
            with self._status_lock:
                self.failures[name] = failure
                self._status[name] = FAILED
            return
        with self._status_lock:
            self._status[name] = LOADED
