"""Logging and timing helpers for catalogue loads, matching and search."""

from .instrumentation import instrument_stage, timed_stage
from .trace import (
    RequestTrace,
    get_current_trace,
    reset_current_trace,
    set_current_trace,
)

__all__ = [
    "RequestTrace",
    "get_current_trace",
    "instrument_stage",
    "reset_current_trace",
    "set_current_trace",
    "timed_stage",
]
