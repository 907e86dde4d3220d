"""
Deadline Intake — Suggestion Store.

In-memory owner of the suggestion collection. Durability is the caller's
concern. Queries return new lists; the backing list is never handed out.
Not safe for concurrent writers.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime

from deadline_intake.data.models import (
    ExtractionMethod,
    SourceType,
    StoreStatistics,
    Suggestion,
)

logger = logging.getLogger(__name__)


class SuggestionStore:
    """Ordered in-memory collection of suggestions keyed by id."""

    def __init__(self) -> None:
        self._suggestions: list[Suggestion] = []

    def _index_of(self, suggestion_id: str) -> int | None:
        for i, s in enumerate(self._suggestions):
            if s.id == suggestion_id:
                return i
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, suggestions: list[Suggestion]) -> None:
        """Append suggestions. Titles may repeat; ids may not."""
        known = {s.id for s in self._suggestions}
        for s in suggestions:
            if s.id in known:
                raise ValueError(f"Suggestion id {s.id} already in store")
            known.add(s.id)
        self._suggestions.extend(suggestions)
        logger.debug("Stored %d suggestions (total %d)", len(suggestions), len(self._suggestions))

    def update(self, suggestion_id: str, suggestion: Suggestion) -> bool:
        """Replace the record at `suggestion_id`. Returns False if absent."""
        if suggestion.id != suggestion_id:
            raise ValueError(
                f"Cannot store suggestion {suggestion.id} under id {suggestion_id}"
            )
        index = self._index_of(suggestion_id)
        if index is None:
            logger.warning("Update for unknown suggestion %s", suggestion_id)
            return False
        self._suggestions[index] = suggestion
        return True

    def clear_all(self) -> None:
        logger.info("Clearing %d suggestions", len(self._suggestions))
        self._suggestions = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, suggestion_id: str) -> Suggestion | None:
        index = self._index_of(suggestion_id)
        return None if index is None else self._suggestions[index]

    def all(self) -> list[Suggestion]:
        return list(self._suggestions)

    def count(self) -> int:
        return len(self._suggestions)

    def by_source(self, source: SourceType) -> list[Suggestion]:
        return [s for s in self._suggestions if s.source == source]

    def by_confirmation(self, confirmed: bool) -> list[Suggestion]:
        return [s for s in self._suggestions if s.confirmed == confirmed]

    def unconfirmed(self) -> list[Suggestion]:
        return self.by_confirmation(False)

    def by_method(self, method: ExtractionMethod) -> list[Suggestion]:
        return [s for s in self._suggestions if s.extraction_method == method]

    def by_confidence(self, min_confidence: float, max_confidence: float) -> list[Suggestion]:
        """Suggestions whose confidence lies in [min, max]. Unscored ones are excluded."""
        return [
            s for s in self._suggestions
            if s.confidence is not None and min_confidence <= s.confidence <= max_confidence
        ]

    def by_date_range(self, start: datetime, end: datetime) -> list[Suggestion]:
        """Suggestions due within [start, end], inclusive."""
        return [s for s in self._suggestions if start <= s.due <= end]

    def with_warnings(self) -> list[Suggestion]:
        return [s for s in self._suggestions if s.warnings]

    def statistics(self) -> StoreStatistics:
        total = len(self._suggestions)
        confirmed = sum(1 for s in self._suggestions if s.confirmed)
        scores = [s.confidence for s in self._suggestions if s.confidence is not None]

        return StoreStatistics(
            total=total,
            confirmed=confirmed,
            unconfirmed=total - confirmed,
            by_source=dict(Counter(s.source.value for s in self._suggestions)),
            by_method=dict(Counter(s.extraction_method.value for s in self._suggestions)),
            average_confidence=sum(scores) / len(scores) if scores else 0.0,
            with_warnings=len(self.with_warnings()),
        )
