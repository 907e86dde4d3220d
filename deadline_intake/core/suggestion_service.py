"""
Deadline Intake — Suggestion Service.

Orchestrates the suggestion lifecycle:
extraction payload -> structural decode -> Suggestion records -> domain
validation -> store -> (edit | refine)* -> confirm -> deadline sink.

A suggestion moves one way, unconfirmed -> confirmed. Edits and refinement
are only allowed while it is unconfirmed.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable
from zoneinfo import ZoneInfo

from deadline_intake.core.editor import batch_apply_time, edit_fields, set_time_of_day
from deadline_intake.core.errors import ExtractionTimeoutError, OperationError
from deadline_intake.core.validators import Candidate, decode_entry, decode_payload, validate_suggestions
from deadline_intake.data.models import (
    BatchResult,
    ConfirmedDeadline,
    ExtractionConfig,
    ExtractionMethod,
    RefinementRequest,
    SourceType,
    Suggestion,
    UploadedDocument,
    User,
)
from deadline_intake.data.store import SuggestionStore

if TYPE_CHECKING:
    from deadline_intake.ports.deadline_sink_port import DeadlineSinkPort
    from deadline_intake.ports.extractor_port import ExtractorPort

logger = logging.getLogger(__name__)

DEFAULT_MODEL_CONFIDENCE = 0.5
DIRECT_CONFIDENCE = 1.0
DEFAULT_PROVENANCE = "LLM extraction"
REFINED_WARNING = "Refined with user feedback"
UNKNOWN_COURSE = "Unknown Course"

_IMAGE_TYPES = {"png", "jpg", "jpeg"}


class SuggestionService:
    """Owns the intake, refine, edit and confirm operations for one store.

    Single writer: callers must not run operations on the same service
    concurrently.
    """

    def __init__(
        self,
        extractor: ExtractorPort | None = None,
        sink: DeadlineSinkPort | None = None,
        store: SuggestionStore | None = None,
        config: ExtractionConfig | None = None,
        known_courses: list[str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if config is None:
            config = ExtractionConfig.from_settings()
        if known_courses is None:
            from deadline_intake.config import settings
            known_courses = settings.KNOWN_COURSES

        self._extractor = extractor
        self._sink = sink
        self._store = store if store is not None else SuggestionStore()
        self._config = config
        self._known_courses = list(known_courses)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def extraction_config(self) -> ExtractionConfig:
        return self._config

    def update_extraction_config(self, **changes: Any) -> ExtractionConfig:
        """Replace the process-wide default config with an updated copy."""
        self._config = self._config.with_overrides(**changes)
        return self._config

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def _build(
        self,
        candidate: Candidate,
        source: SourceType,
        method: ExtractionMethod,
        default_provenance: str,
        default_confidence: float,
    ) -> Suggestion:
        return Suggestion(
            title=candidate.title,
            due=candidate.due,
            source=source,
            extraction_method=method,
            confidence=candidate.confidence if candidate.confidence is not None else default_confidence,
            provenance=candidate.provenance or default_provenance,
        )

    def _validate_and_store(self, suggestions: list[Suggestion]) -> None:
        validate_suggestions(suggestions, self._store.all(), now=self._clock())
        self._store.add(suggestions)

    def convert_and_store(
        self,
        payload: Any,
        source: SourceType,
        *,
        method: ExtractionMethod = ExtractionMethod.MODEL,
        uploaded_document: UploadedDocument | None = None,
        uploaded_documents: list[UploadedDocument] | None = None,
        website_url: str | None = None,
        default_provenance: str = DEFAULT_PROVENANCE,
        config: ExtractionConfig | None = None,
    ) -> list[Suggestion]:
        """Turn a raw extraction payload into validated, stored suggestions.

        Raises StructuralError (store untouched) for a malformed payload.
        Entries with unusable fields are skipped and logged.
        """
        config = config or self._config
        result = decode_payload(payload, ZoneInfo(config.timezone))

        suggestions: list[Suggestion] = []
        for candidate in result.candidates:
            suggestion = self._build(
                candidate, source, method, default_provenance, DEFAULT_MODEL_CONFIDENCE,
            )
            suggestion.uploaded_document = uploaded_document
            suggestion.uploaded_documents = list(uploaded_documents or [])
            suggestion.website_url = website_url
            suggestions.append(suggestion)

        self._validate_and_store(suggestions)
        logger.info(
            "Stored %d %s suggestions (%d entries skipped)",
            len(suggestions), source.value, len(result.issues),
        )
        return suggestions

    def ingest_direct(
        self, entries: list[dict], source: SourceType = SourceType.CANVAS,
    ) -> list[Suggestion]:
        """Intake already-structured feed entries (title, due, course).

        Bypasses payload shape checks but still drops entries with unusable
        fields and still runs domain validation.
        """
        tz = ZoneInfo(self._config.timezone)
        suggestions: list[Suggestion] = []
        skipped = 0

        for index, entry in enumerate(entries):
            if not isinstance(entry, dict):
                logger.warning("Skipping feed entry %d: not an object", index)
                skipped += 1
                continue

            course = entry.get("course_name") or entry.get("course") or ""
            decoded = decode_entry(
                index,
                {
                    "title": entry.get("title"),
                    "due": entry.get("due") or entry.get("due_date"),
                    "confidence": entry.get("confidence"),
                },
                tz,
            )
            if not decoded.ok:
                for issue in decoded.issues:
                    logger.warning("Skipping feed entry: %s", issue)
                skipped += 1
                continue

            provenance = f"{source.value.capitalize()} assignment"
            if course:
                provenance += f" from {course}"
            suggestion = self._build(
                decoded.candidate, source, ExtractionMethod.DIRECT, provenance, DIRECT_CONFIDENCE,
            )
            if source is SourceType.CANVAS:
                suggestion.canvas_metadata = json.dumps(entry, default=str)
            suggestions.append(suggestion)

        self._validate_and_store(suggestions)
        logger.info(
            "Ingested %d %s feed suggestions (%d skipped)", len(suggestions), source.value, skipped,
        )
        return suggestions

    # ------------------------------------------------------------------
    # Extraction round-trips
    # ------------------------------------------------------------------

    def _require_extractor(self) -> ExtractorPort:
        if self._extractor is None:
            raise OperationError("No extractor configured")
        return self._extractor

    async def _await_extraction(self, call: Awaitable[Any], config: ExtractionConfig) -> Any:
        """Await an extractor call under the configured timeout. Never retries."""
        try:
            return await asyncio.wait_for(call, timeout=config.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("Extraction timed out after %ss", config.timeout_seconds)
            raise ExtractionTimeoutError(
                f"Extraction timed out after {config.timeout_seconds}s"
            ) from exc

    async def extract_from_document(
        self, document: UploadedDocument, config: ExtractionConfig | None = None,
    ) -> list[Suggestion]:
        extractor = self._require_extractor()
        config = config or self._config
        logger.info("Extracting deadlines from document: %s", document.filename)

        payload = await self._await_extraction(extractor.extract_document(document, config), config)
        source = SourceType.IMAGE if document.file_type.lower() in _IMAGE_TYPES else SourceType.SYLLABUS
        return self.convert_and_store(
            payload, source,
            uploaded_document=document,
            default_provenance=f"{DEFAULT_PROVENANCE} from {document.filename}",
            config=config,
        )

    async def extract_from_documents(
        self, documents: list[UploadedDocument], config: ExtractionConfig | None = None,
    ) -> list[Suggestion]:
        """Extract from several documents in one request so they can be cross-referenced."""
        if not documents:
            raise OperationError("No documents given")
        if len(documents) == 1:
            return await self.extract_from_document(documents[0], config)

        extractor = self._require_extractor()
        config = config or self._config
        filenames = ", ".join(d.filename for d in documents)
        logger.info("Extracting deadlines from %d documents: %s", len(documents), filenames)

        payload = await self._await_extraction(extractor.extract_documents(documents, config), config)
        all_images = all(d.file_type.lower() in _IMAGE_TYPES for d in documents)
        return self.convert_and_store(
            payload,
            SourceType.IMAGE if all_images else SourceType.SYLLABUS,
            uploaded_documents=documents,
            default_provenance=f"{DEFAULT_PROVENANCE} from {filenames}",
            config=config,
        )

    async def extract_from_website(
        self, url: str, config: ExtractionConfig | None = None,
    ) -> list[Suggestion]:
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise OperationError(f"Not a web URL: {url!r}")

        extractor = self._require_extractor()
        config = config or self._config
        logger.info("Extracting deadlines from website: %s", url)

        payload = await self._await_extraction(extractor.extract_website(url, config), config)
        return self.convert_and_store(
            payload, SourceType.WEBSITE,
            website_url=url,
            default_provenance=f"{DEFAULT_PROVENANCE} from {url}",
            config=config,
        )

    # ------------------------------------------------------------------
    # Refinement
    # ------------------------------------------------------------------

    def _require_editable(self, suggestion_id: str) -> Suggestion:
        suggestion = self._store.get(suggestion_id)
        if suggestion is None:
            raise OperationError(f"Suggestion with ID {suggestion_id} not found")
        if suggestion.confirmed:
            raise OperationError(f"Suggestion {suggestion_id} is already confirmed")
        return suggestion

    async def refine_with_feedback(
        self, suggestion_id: str, feedback: str, config: ExtractionConfig | None = None,
    ) -> Suggestion:
        """Re-extract one suggestion using the user's feedback.

        The first returned candidate replaces title, due, confidence and
        provenance; id, source and back-references are kept, and a refinement
        warning is appended to the existing warnings.
        """
        suggestion = self._require_editable(suggestion_id)
        if not isinstance(feedback, str) or not feedback.strip():
            raise OperationError("Feedback must be non-empty text")

        extractor = self._require_extractor()
        config = config or self._config
        logger.info("Refining suggestion '%s' with user feedback", suggestion.title)

        request = RefinementRequest.from_suggestion(suggestion, feedback.strip())
        payload = await self._await_extraction(extractor.refine(request, config), config)
        result = decode_payload(payload, ZoneInfo(config.timezone))
        if not result.candidates:
            raise OperationError("No refined suggestions returned from extractor")

        first = result.candidates[0]
        refined = replace(
            suggestion,
            title=first.title,
            due=first.due,
            confidence=first.confidence if first.confidence is not None else DEFAULT_MODEL_CONFIDENCE,
            provenance=first.provenance or DEFAULT_PROVENANCE,
            extraction_method=ExtractionMethod.MODEL,
            warnings=[*suggestion.warnings, REFINED_WARNING],
        )
        self._store.update(suggestion_id, refined)
        logger.info("Refined suggestion: '%s'", refined.title)
        return refined

    # ------------------------------------------------------------------
    # Manual edits
    # ------------------------------------------------------------------

    def _zone(self) -> ZoneInfo:
        return ZoneInfo(self._config.timezone)

    def edit(self, suggestion_id: str, **updates: Any) -> Suggestion:
        """Apply a manual correction (title, due, confidence, provenance).

        An aware `due` is stored in the configured timezone.
        """
        suggestion = self._require_editable(suggestion_id)
        due = updates.get("due")
        if isinstance(due, datetime) and due.tzinfo is not None:
            updates["due"] = due.astimezone(self._zone())
        edit_fields(suggestion, **updates)
        self._store.update(suggestion_id, suggestion)
        return suggestion

    def update_title(self, suggestion_id: str, title: str) -> Suggestion:
        return self.edit(suggestion_id, title=title)

    def update_due(self, suggestion_id: str, due: datetime) -> Suggestion:
        return self.edit(suggestion_id, due=due)

    def update_time(self, suggestion_id: str, time_text: str) -> Suggestion:
        """Change only the time of day of a suggestion's due date."""
        suggestion = self._require_editable(suggestion_id)
        if not set_time_of_day(suggestion, time_text, self._zone()):
            raise OperationError(f"Invalid time format: {time_text!r}")
        self._store.update(suggestion_id, suggestion)
        return suggestion

    def batch_update_time(self, suggestion_ids: list[str], time_text: str) -> BatchResult:
        return batch_apply_time(self._store.all(), suggestion_ids, time_text, self._zone())

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def course_for(self, suggestion: Suggestion) -> str:
        """Best-effort course name; lossy by nature."""
        if suggestion.canvas_metadata:
            try:
                metadata = json.loads(suggestion.canvas_metadata)
            except json.JSONDecodeError:
                logger.warning("Unreadable canvas metadata on suggestion %s", suggestion.id)
                metadata = None
            if isinstance(metadata, dict):
                course = metadata.get("course_name") or metadata.get("course")
                if course:
                    return str(course)

        for course in self._known_courses:
            if course in suggestion.provenance:
                return course
        return UNKNOWN_COURSE

    async def confirm(self, suggestion_id: str, user: User) -> ConfirmedDeadline:
        """Promote a suggestion to a canonical deadline.

        Raises OperationError if the suggestion is unknown, already confirmed
        or incomplete. If the sink fails the suggestion stays unconfirmed.
        """
        suggestion = self._store.get(suggestion_id)
        if suggestion is None:
            raise OperationError(f"Suggestion with ID {suggestion_id} not found")
        if suggestion.confirmed:
            raise OperationError("Suggestion is already confirmed")
        if not suggestion.title or suggestion.due is None:
            raise OperationError("Suggestion must have valid title and due date")

        record = ConfirmedDeadline(
            course=self.course_for(suggestion),
            title=suggestion.title,
            due=suggestion.due,
            source=suggestion.source,
            confirmed_by=user,
        )
        if self._sink is not None:
            await self._sink.create_deadline(record)

        suggestion.confirmed = True
        self._store.update(suggestion_id, suggestion)
        logger.info(
            "Confirmed suggestion: '%s' due %s (%s)",
            suggestion.title, suggestion.due.isoformat(), record.course,
        )
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, suggestion_id: str) -> Suggestion | None:
        return self._store.get(suggestion_id)

    def all(self) -> list[Suggestion]:
        return self._store.all()

    def unconfirmed(self) -> list[Suggestion]:
        return self._store.unconfirmed()

    def by_source(self, source: SourceType) -> list[Suggestion]:
        return self._store.by_source(source)

    def clear_all(self) -> None:
        self._store.clear_all()
