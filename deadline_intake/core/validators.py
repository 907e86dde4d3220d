"""
Deadline Intake — Validators.

Two tiers:

* Structural decoding turns an untrusted extraction payload into typed
  candidates. A payload of the wrong shape raises StructuralError; a bad
  field inside one entry becomes a FieldIssue and only that entry is dropped.
* Domain checks look at already-built Suggestions for implausible or
  suspicious values. They never raise: each triggered check appends one
  warning to the suggestion and one line to the returned issues list.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from deadline_intake.core.errors import StructuralError
from deadline_intake.data.models import Suggestion

logger = logging.getLogger(__name__)

CANDIDATES_FIELD = "suggestions"

# ---------------------------------------------------------------------------
# Warning texts appended to Suggestion.warnings
# ---------------------------------------------------------------------------

WARN_PAST = "Date is in the past"
WARN_FAR_FUTURE = "Date is very far in the future"
WARN_DUPLICATE = "Potential duplicate"
WARN_LOW_CONFIDENCE = "Low confidence score"
WARN_WEEKEND = "Weekend deadline - verify if correct"
WARN_EARLY_MORNING = "Very early morning deadline - verify if correct"
WARN_LATE_EVENING = "Very late evening deadline - verify if correct"
WARN_VAGUE_TERM = "High confidence on vague term - possible hallucination"
WARN_SHORT_DEADLINE = "Very short deadline - verify if correct"
WARN_ROUND_DATE = "High confidence on round date - possible generation"

LOW_CONFIDENCE_THRESHOLD = 0.3
VAGUE_CONFIDENCE_THRESHOLD = 0.7
ROUND_DATE_CONFIDENCE_THRESHOLD = 0.8
FAR_FUTURE_DAYS = 365
ROUND_DAYS = frozenset({1, 15, 30, 31})

_VAGUE_TERMS = re.compile(r"\b(tbd|soon|later|eventually|sometime)\b", re.IGNORECASE)
_EARLIEST_NORMAL = time(6, 0)
_LATEST_NORMAL = time(23, 0)


# ---------------------------------------------------------------------------
# Timestamp parsing
# ---------------------------------------------------------------------------


def check_wall_time(value: datetime) -> datetime:
    """Reject local times a DST transition skips or repeats.

    Raises ValueError for a wall time that does not exist in its zone (spring
    forward gap) or that names two instants (fall back overlap).
    """
    round_trip = value.astimezone(timezone.utc).astimezone(value.tzinfo)
    if round_trip.replace(tzinfo=None) != value.replace(tzinfo=None):
        raise ValueError(f"{value.replace(tzinfo=None).isoformat()} does not exist in {value.tzinfo}")
    if value.replace(fold=0).utcoffset() != value.replace(fold=1).utcoffset():
        raise ValueError(f"{value.replace(tzinfo=None).isoformat()} is ambiguous in {value.tzinfo}")
    return value


def parse_due(value: Any, tz: tzinfo = timezone.utc) -> datetime:
    """Parse an ISO 8601 date/date-time into a datetime in `tz`.

    Values without an offset are interpreted in `tz`; values with one are
    converted into it. Raises ValueError on anything that is not an
    unambiguous point in time.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
    else:
        raise ValueError(f"expected an ISO 8601 string, got {type(value).__name__}")

    if parsed.tzinfo is None:
        return check_wall_time(parsed.replace(tzinfo=tz))
    return parsed.astimezone(tz)


# ---------------------------------------------------------------------------
# Structural tier
# ---------------------------------------------------------------------------


class FieldIssueKind(Enum):
    NOT_AN_OBJECT = "not_an_object"
    MISSING_TITLE = "missing_title"
    INVALID_TITLE = "invalid_title"
    MISSING_DUE = "missing_due"
    INVALID_DUE = "invalid_due"
    INVALID_CONFIDENCE = "invalid_confidence"


@dataclass
class FieldIssue:
    """One unusable field in one candidate entry."""

    index: int
    kind: FieldIssueKind
    message: str

    def __str__(self) -> str:
        return f"Suggestion {self.index}: {self.message}"


class Candidate(BaseModel):
    """One decoded candidate entry.

    JSON example:
    {
        "title": "Problem Set 1",
        "due": "2025-10-01T23:59:00-04:00",
        "confidence": 0.85,
        "provenance": "Syllabus page 2, schedule table"
    }
    """

    model_config = ConfigDict(extra="ignore")

    title: str
    due: datetime
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    provenance: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _check_title(cls, v: Any) -> str:
        if v is None:
            raise PydanticCustomError("missing", "Field required")
        if not isinstance(v, str) or not v.strip():
            raise ValueError("title must be non-empty text")
        return v.strip()

    @field_validator("due", mode="before")
    @classmethod
    def _check_due(cls, v: Any, info: ValidationInfo) -> datetime:
        if v is None or v == "":
            raise PydanticCustomError("missing", "Field required")
        tz = (info.context or {}).get("tz", timezone.utc)
        return parse_due(v, tz)

    @field_validator("confidence", mode="before")
    @classmethod
    def _check_confidence(cls, v: Any) -> float | None:
        if v is None:
            return None
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("confidence must be a number")
        return float(v)

    @field_validator("provenance", mode="before")
    @classmethod
    def _check_provenance(cls, v: Any) -> str | None:
        if v is None or isinstance(v, str):
            return v
        return str(v)


_ISSUE_KINDS: dict[tuple[str, bool], FieldIssueKind] = {
    ("title", True): FieldIssueKind.MISSING_TITLE,
    ("title", False): FieldIssueKind.INVALID_TITLE,
    ("due", True): FieldIssueKind.MISSING_DUE,
    ("due", False): FieldIssueKind.INVALID_DUE,
    ("confidence", True): FieldIssueKind.INVALID_CONFIDENCE,
    ("confidence", False): FieldIssueKind.INVALID_CONFIDENCE,
}


@dataclass
class DecodedEntry:
    """Result of decoding one entry: a candidate, or the issues that rejected it."""

    index: int
    candidate: Candidate | None = None
    issues: list[FieldIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.candidate is not None


@dataclass
class DecodeResult:
    candidates: list[Candidate] = field(default_factory=list)
    issues: list[FieldIssue] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [str(issue) for issue in self.issues]


def _issue_from_error(index: int, raw: dict, error: dict) -> FieldIssue:
    name = str(error["loc"][0]) if error.get("loc") else ""
    missing = error.get("type") == "missing"
    kind = _ISSUE_KINDS.get((name, missing), FieldIssueKind.NOT_AN_OBJECT)
    if missing:
        message = f"Missing '{name}' field"
    elif kind is FieldIssueKind.INVALID_DUE:
        message = f"Invalid date format '{raw.get('due')}'"
    elif kind is FieldIssueKind.INVALID_CONFIDENCE:
        message = f"Invalid confidence score '{raw.get('confidence')}' (must be 0.0-1.0)"
    else:
        message = f"Invalid '{name}' field: {error.get('msg', '')}"
    return FieldIssue(index=index, kind=kind, message=message)


def decode_entry(index: int, raw: Any, tz: tzinfo = timezone.utc) -> DecodedEntry:
    """Decode one raw candidate entry without raising."""
    if not isinstance(raw, dict):
        return DecodedEntry(
            index=index,
            issues=[FieldIssue(index, FieldIssueKind.NOT_AN_OBJECT, "Entry is not an object")],
        )
    try:
        candidate = Candidate.model_validate(raw, context={"tz": tz})
    except ValidationError as exc:
        issues = [_issue_from_error(index, raw, err) for err in exc.errors()]
        return DecodedEntry(index=index, issues=issues)
    return DecodedEntry(index=index, candidate=candidate)


def decode_entries(entries: Iterable[Any], tz: tzinfo = timezone.utc) -> DecodeResult:
    """Decode a list of entries, keeping the good ones and logging the rest."""
    result = DecodeResult()
    for index, raw in enumerate(entries):
        decoded = decode_entry(index, raw, tz)
        if decoded.ok:
            result.candidates.append(decoded.candidate)
        else:
            result.issues.extend(decoded.issues)

    for issue in result.issues:
        logger.warning("Skipping candidate: %s", issue)
    return result


def decode_payload(payload: Any, tz: tzinfo = timezone.utc) -> DecodeResult:
    """Validate the shape of an extraction payload and decode its candidates.

    Raises StructuralError when the payload is not an object or lacks a
    `suggestions` list. Per-entry problems are returned, not raised.
    """
    if not isinstance(payload, dict):
        raise StructuralError("Extraction response is not a JSON object")
    if CANDIDATES_FIELD not in payload:
        raise StructuralError(f"Extraction response missing '{CANDIDATES_FIELD}' list")
    entries = payload[CANDIDATES_FIELD]
    if not isinstance(entries, list):
        raise StructuralError(
            f"Extraction response field '{CANDIDATES_FIELD}' is {type(entries).__name__}, not a list"
        )

    result = decode_entries(entries, tz)
    if not result.issues:
        logger.debug("Extraction response structure is valid (%d candidates)", len(result.candidates))
    return result


def _clean_response_text(raw_text: str) -> str:
    """Remove markdown code block delimiters from a model's raw response."""
    cleaned_text = raw_text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text.removeprefix("```json")
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text.removeprefix("```")
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text.removesuffix("```")
    return cleaned_text.strip()


_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def parse_payload_text(raw_text: str) -> Any:
    """Pull the outermost JSON object out of model text and parse it."""
    cleaned = _clean_response_text(raw_text or "")
    match = _JSON_OBJECT.search(cleaned)
    if not match:
        raise StructuralError("No JSON object found in extraction response")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise StructuralError(f"Extraction response is not valid JSON: {exc}") from exc


# ---------------------------------------------------------------------------
# Domain tier
# ---------------------------------------------------------------------------


def _flag(suggestion: Suggestion, warning: str, issue: str, issues: list[str]) -> None:
    suggestion.add_warning(warning)
    issues.append(issue)


def check_temporal(suggestion: Suggestion, now: datetime, issues: list[str]) -> None:
    """Past dates and dates more than a year out."""
    if suggestion.due < now:
        _flag(
            suggestion, WARN_PAST,
            f'Suggestion "{suggestion.title}" has a date in the past: {suggestion.due.isoformat()}',
            issues,
        )
    if suggestion.due > now + timedelta(days=FAR_FUTURE_DAYS):
        _flag(
            suggestion, WARN_FAR_FUTURE,
            f'Suggestion "{suggestion.title}" has a date more than a year in the future: '
            f"{suggestion.due.isoformat()}",
            issues,
        )


def check_duplicate(
    suggestion: Suggestion, existing: Iterable[Suggestion], issues: list[str],
) -> None:
    """Case-insensitive exact title match against other suggestions."""
    title = suggestion.title.casefold()
    if any(s.id != suggestion.id and s.title.casefold() == title for s in existing):
        _flag(suggestion, WARN_DUPLICATE, f'Duplicate suggestion found: "{suggestion.title}"', issues)


def check_confidence(suggestion: Suggestion, issues: list[str]) -> None:
    if suggestion.confidence is not None and suggestion.confidence < LOW_CONFIDENCE_THRESHOLD:
        _flag(
            suggestion, WARN_LOW_CONFIDENCE,
            f'Low confidence suggestion: "{suggestion.title}" ({suggestion.confidence})',
            issues,
        )


def check_academic_calendar(suggestion: Suggestion, issues: list[str]) -> None:
    """Weekend, early-morning and late-evening deadlines.

    Evaluated in the due value's own zone; intake stores dues in the
    configured timezone.
    """
    due = suggestion.due
    if due.weekday() >= 5:
        _flag(
            suggestion, WARN_WEEKEND,
            f'Suggestion "{suggestion.title}" has a weekend deadline ({due.date().isoformat()})',
            issues,
        )

    due_time = due.time()
    if due_time < _EARLIEST_NORMAL:
        _flag(
            suggestion, WARN_EARLY_MORNING,
            f'Suggestion "{suggestion.title}" has a very early morning deadline ({due:%H:%M})',
            issues,
        )
    if due_time > _LATEST_NORMAL:
        _flag(
            suggestion, WARN_LATE_EVENING,
            f'Suggestion "{suggestion.title}" has a very late evening deadline ({due:%H:%M})',
            issues,
        )


def check_hallucination(suggestion: Suggestion, now: datetime, issues: list[str]) -> None:
    """Patterns that suggest the model invented a value."""
    confidence = suggestion.confidence

    if (
        confidence is not None
        and confidence > VAGUE_CONFIDENCE_THRESHOLD
        and _VAGUE_TERMS.search(suggestion.title)
    ):
        _flag(
            suggestion, WARN_VAGUE_TERM,
            f'Suggestion "{suggestion.title}" has high confidence ({confidence}) '
            "for vague term - possible hallucination",
            issues,
        )

    remaining = suggestion.due - now
    if timedelta(0) < remaining < timedelta(days=1):
        _flag(
            suggestion, WARN_SHORT_DEADLINE,
            f'Suggestion "{suggestion.title}" has deadline less than 1 day away',
            issues,
        )

    if (
        confidence is not None
        and confidence > ROUND_DATE_CONFIDENCE_THRESHOLD
        and suggestion.due.day in ROUND_DAYS
    ):
        _flag(
            suggestion, WARN_ROUND_DATE,
            f'Suggestion "{suggestion.title}" has high confidence for round date '
            f"({suggestion.due.date().isoformat()}) - possible generation",
            issues,
        )


def validate_suggestion(
    suggestion: Suggestion,
    existing: Iterable[Suggestion] = (),
    now: datetime | None = None,
) -> list[str]:
    """Run every domain check on one suggestion. All checks always run."""
    if now is None:
        now = datetime.now(timezone.utc)

    issues: list[str] = []
    check_temporal(suggestion, now, issues)
    check_duplicate(suggestion, existing, issues)
    check_confidence(suggestion, issues)
    check_academic_calendar(suggestion, issues)
    check_hallucination(suggestion, now, issues)
    return issues


def validate_suggestions(
    suggestions: list[Suggestion],
    existing: Iterable[Suggestion] = (),
    now: datetime | None = None,
) -> list[str]:
    """Annotate a batch of new suggestions and return the issues log.

    Each suggestion is compared for duplicates against `existing` and the
    suggestions before it in the same batch.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    seen = list(existing)
    issues: list[str] = []
    for suggestion in suggestions:
        issues.extend(validate_suggestion(suggestion, seen, now))
        seen.append(suggestion)

    if issues:
        for issue in issues:
            logger.warning("Validation: %s", issue)
    else:
        logger.debug("All %d suggestions passed validation", len(suggestions))
    return issues
