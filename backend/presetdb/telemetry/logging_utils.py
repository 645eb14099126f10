from __future__ import annotations

import logging

PERF_LEVEL_NUM = 25
PERF_LEVEL_NAME = "PERF"
PERF_LOGGER_NAME = "presetdb.perf"
LOCATION_LOGGER_NAME = "presetdb.services.geo_service"

# Background loads run on worker threads, so the thread name is part of every line.
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s %(message)s"


def register_perf_level() -> None:
    if logging.getLevelName(PERF_LEVEL_NUM) != PERF_LEVEL_NAME:
        logging.addLevelName(PERF_LEVEL_NUM, PERF_LEVEL_NAME)


def resolve_log_level(value: str | None, fallback: int = logging.INFO) -> int:
    if not value:
        return fallback
    normalized = value.strip().upper()
    if normalized == PERF_LEVEL_NAME:
        return PERF_LEVEL_NUM
    resolved = logging.getLevelName(normalized)
    return resolved if isinstance(resolved, int) else fallback


def configure_logging(app_level: str, perf_level: str, location_level: str | None = None) -> None:
    """Set up root logging plus the perf and location-rule loggers.

    Location rule decisions are logged per feature and per search, so that logger
    gets its own threshold (defaults to WARNING) independent of ``app_level``.
    """
    register_perf_level()
    app_log_level = resolve_log_level(app_level)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(app_log_level)
    else:
        logging.basicConfig(level=app_log_level, format=LOG_FORMAT)

    logging.getLogger(PERF_LOGGER_NAME).setLevel(resolve_log_level(perf_level, fallback=PERF_LEVEL_NUM))
    logging.getLogger(LOCATION_LOGGER_NAME).setLevel(resolve_log_level(location_level, fallback=logging.WARNING))
