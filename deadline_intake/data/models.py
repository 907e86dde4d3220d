"""
Deadline Intake — Data Models.

A Suggestion is an unconfirmed deadline candidate. It is created only by the
SuggestionService and mutated in place by three paths: manual editing,
refinement, and confirmation.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class SourceType(str, Enum):
    """Where a suggestion came from."""

    SYLLABUS = "SYLLABUS"
    IMAGE = "IMAGE"
    WEBSITE = "WEBSITE"
    CANVAS = "CANVAS"


class ExtractionMethod(str, Enum):
    DIRECT = "DIRECT"   # structured feed (e.g. Canvas assignments)
    MODEL = "MODEL"     # language-model output


def new_suggestion_id() -> str:
    return uuid.uuid4().hex


@dataclass
class UploadedDocument:
    """A document handed to the extractor. `content` is already text."""

    filename: str
    content: str
    file_type: str = "txt"       # "pdf" | "png" | "jpg" | "txt"
    id: str = field(default_factory=new_suggestion_id)
    upload_date: datetime | None = None


@dataclass
class User:
    id: str
    name: str
    email: str = ""


@dataclass
class Suggestion:
    """A deadline candidate awaiting review.

    `warnings` is an append-only audit trail: entries are never removed or
    deduplicated, so the same message may appear more than once.
    """

    title: str
    due: datetime                       # timezone-aware
    source: SourceType
    extraction_method: ExtractionMethod
    id: str = field(default_factory=new_suggestion_id)
    confidence: float | None = None     # 0.0–1.0
    confirmed: bool = False
    provenance: str = ""
    warnings: list[str] = field(default_factory=list)
    # Back-references, display only
    uploaded_document: UploadedDocument | None = None
    uploaded_documents: list[UploadedDocument] = field(default_factory=list)  # multi-document intake
    website_url: str | None = None
    canvas_metadata: str | None = None  # raw feed entry as JSON

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


_DEFAULT_PROMPT_TEMPLATE = """\
Extract all deadline information from the provided content. Include all assignment deadlines, project due dates, exam dates, and important academic dates.

For each deadline, provide:
- title: Clear, descriptive name of the assignment/project/exam
- due: ISO 8601 date-time format (YYYY-MM-DDTHH:mm:ssZ)
- confidence: Score from 0.0 to 1.0 (use 0.8+ only when very certain)
- provenance: Brief description of where this information was found

Focus on academic deadlines and be conservative with confidence scores.
Return ONLY a JSON object of the form {"suggestions": [...]}. No markdown, no explanation."""


@dataclass(frozen=True)
class ExtractionConfig:
    """Parameters for one extraction or refinement request. Immutable."""

    model: str = ""                     # empty → provider default
    prompt_template: str = _DEFAULT_PROMPT_TEMPLATE
    max_tokens: int = 2000
    temperature: float = 0.1
    timezone: str = "America/New_York"
    timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls) -> ExtractionConfig:
        from deadline_intake.config import settings

        return cls(
            model=settings.LLM_MODEL,
            max_tokens=settings.EXTRACTION_MAX_TOKENS,
            temperature=settings.EXTRACTION_TEMPERATURE,
            timezone=settings.TIMEZONE,
            timeout_seconds=settings.EXTRACTION_TIMEOUT_SECONDS,
        )

    def with_overrides(self, **changes) -> ExtractionConfig:
        return replace(self, **changes)


@dataclass(frozen=True)
class RefinementRequest:
    """Snapshot of a suggestion's current fields plus the user's feedback."""

    suggestion_id: str
    title: str
    due: datetime
    confidence: float | None
    source: SourceType
    provenance: str
    feedback: str

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion, feedback: str) -> RefinementRequest:
        return cls(
            suggestion_id=suggestion.id,
            title=suggestion.title,
            due=suggestion.due,
            confidence=suggestion.confidence,
            source=suggestion.source,
            provenance=suggestion.provenance,
            feedback=feedback,
        )


@dataclass(frozen=True)
class ConfirmedDeadline:
    """Canonical record emitted to the deadline sink on confirmation."""

    course: str
    title: str
    due: datetime
    source: SourceType
    confirmed_by: User


@dataclass
class BatchResult:
    success: int = 0
    failed: int = 0


@dataclass
class StoreStatistics:
    total: int
    confirmed: int
    unconfirmed: int
    by_source: dict[str, int] = field(default_factory=dict)
    by_method: dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0
    with_warnings: int = 0
