from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import wraps
from time import perf_counter
from typing import Callable, ParamSpec, TypeVar

from .logging_utils import PERF_LEVEL_NUM, PERF_LOGGER_NAME
from .trace import get_current_trace

P = ParamSpec("P")
R = TypeVar("R")

perf_logger = logging.getLogger(PERF_LOGGER_NAME)


@contextmanager
def timed_stage(stage: str):
    started = perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (perf_counter() - started) * 1000.0
        perf_logger.log(PERF_LEVEL_NUM, "stage=%s elapsed_ms=%.3f", stage, elapsed_ms)
        trace = get_current_trace()
        if trace is not None:
            trace.record_stage_time(stage, elapsed_ms)


def instrument_stage(stage: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with timed_stage(stage):
                return func(*args, **kwargs)

        return wrapper

    return decorator
