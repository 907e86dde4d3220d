"""Exception types shared by the intake pipeline."""

from __future__ import annotations


class StructuralError(ValueError):
    """Raised when an extraction payload is not shaped as expected.

    Intake of the whole payload is aborted; nothing is stored.
    """

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class OperationError(Exception):
    """Raised for caller-facing failures (double confirm, bad time input, unknown id...)."""


class ExtractionError(Exception):
    """Raised when an extractor adapter fails to produce a response."""


class ExtractionTimeoutError(ExtractionError, TimeoutError):
    """Raised when an extraction round-trip exceeds its configured timeout."""
