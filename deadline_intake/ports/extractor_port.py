"""Extractor port — abstract interface for the extraction backend.

The service depends on this protocol, never on a specific model provider.
Every method returns the parsed response payload, which is expected to be
an object holding a `suggestions` list. Adapters raise ExtractionError on
failure.
"""

from __future__ import annotations

from typing import Any, Protocol

from deadline_intake.data.models import ExtractionConfig, RefinementRequest, UploadedDocument


class ExtractorPort(Protocol):
    """Abstract extraction interface used by SuggestionService."""

    async def extract_document(
        self, document: UploadedDocument, config: ExtractionConfig
    ) -> Any: ...

    async def extract_documents(
        self, documents: list[UploadedDocument], config: ExtractionConfig
    ) -> Any: ...

    async def extract_website(self, url: str, config: ExtractionConfig) -> Any: ...

    async def refine(
        self, request: RefinementRequest, config: ExtractionConfig
    ) -> Any: ...
