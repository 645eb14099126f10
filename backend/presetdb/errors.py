from __future__ import annotations

from typing import Any


class PresetDatabaseError(Exception):
    """Base class for preset database failures."""


class TypeMismatch(PresetDatabaseError, TypeError):
    def __init__(self, path: str, expected: str, actual: Any):
        self.path = path or "<root>"
        self.expected = expected
        self.actual = type(actual).__name__
        super().__init__(f"{self.path}: expected {expected}, got {self.actual}")


class FatalLoadError(PresetDatabaseError):
    """A required catalogue document is missing or malformed; nothing is usable."""

    def __init__(self, document: str, reason: str):
        self.document = document
        self.reason = reason
        super().__init__(f"Unable to load {document}: {reason}")


class DegradedLoadError(PresetDatabaseError):
    """Translation data could not be used; callers fall back to base text."""

    def __init__(self, document: str, reason: str):
        self.document = document
        self.reason = reason
        super().__init__(f"Ignoring {document}: {reason}")


class BackgroundLoadFailure(PresetDatabaseError):
    def __init__(self, task: str, reason: str):
        self.task = task
        self.reason = reason
        super().__init__(f"Background task {task} failed: {reason}")


class UnrecognizedLocationRule(PresetDatabaseError):
    def __init__(self, rule: Any):
        self.rule = rule
        super().__init__(f"Unrecognized location rule: {rule!r}")
