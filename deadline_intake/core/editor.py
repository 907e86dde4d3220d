"""
Deadline Intake — Manual editing.

Direct user corrections that never touch the LLM. Every edit appends
MANUAL_EDIT_WARNING so the audit trail shows which values came from a person
rather than from extraction.

No I/O: this module only transforms Suggestion objects.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, tzinfo

from deadline_intake.core.errors import OperationError
from deadline_intake.core.validators import check_wall_time
from deadline_intake.data.models import BatchResult, Suggestion

logger = logging.getLogger(__name__)

MANUAL_EDIT_WARNING = "Manually edited by user"

# "11:59 PM", "23:59", "11:59pm", "9:05 am"
_TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*([ap]\.?m\.?)?", re.IGNORECASE)

_UNSET = object()


def parse_time_of_day(text: str) -> tuple[int, int] | None:
    """Parse a free-text clock time into (hour, minute) in 24h form.

    Returns None for anything that is not a real time of day.
    """
    if not isinstance(text, str):
        return None
    match = _TIME_PATTERN.fullmatch(text.strip())
    if not match:
        return None

    hour, minute = int(match.group(1)), int(match.group(2))
    period = (match.group(3) or "").replace(".", "").lower()

    if minute > 59:
        return None
    if period:
        if not 1 <= hour <= 12:
            return None
        if period == "pm" and hour != 12:
            hour += 12
        elif period == "am" and hour == 12:
            hour = 0
    elif hour > 23:
        return None
    return hour, minute


def edit_fields(
    suggestion: Suggestion,
    *,
    title: str | object = _UNSET,
    due: datetime | object = _UNSET,
    confidence: float | None | object = _UNSET,
    provenance: str | object = _UNSET,
) -> Suggestion:
    """Apply only the provided fields, then record the manual edit.

    Raises OperationError if a value would break a Suggestion invariant;
    in that case nothing is changed.
    """
    if title is not _UNSET and (not isinstance(title, str) or not title.strip()):
        raise OperationError("Title must be non-empty text")
    if due is not _UNSET and (not isinstance(due, datetime) or due.tzinfo is None):
        raise OperationError("Due date must be a timezone-aware datetime")
    if confidence is not _UNSET and confidence is not None:
        if (
            isinstance(confidence, bool)
            or not isinstance(confidence, (int, float))
            or math.isnan(confidence)
            or not 0.0 <= confidence <= 1.0
        ):
            raise OperationError(f"Confidence must be between 0.0 and 1.0, got {confidence!r}")

    if title is not _UNSET:
        suggestion.title = title.strip()
    if due is not _UNSET:
        suggestion.due = due
    if confidence is not _UNSET:
        suggestion.confidence = None if confidence is None else float(confidence)
    if provenance is not _UNSET:
        suggestion.provenance = provenance

    suggestion.add_warning(MANUAL_EDIT_WARNING)
    logger.info("Manually edited suggestion: '%s'", suggestion.title)
    return suggestion


def set_time_of_day(suggestion: Suggestion, time_text: str, tz: tzinfo | None = None) -> bool:
    """Replace only the clock time of `due`, keeping its local date.

    The date and new time are read in `tz` when given (the user's zone),
    otherwise in the zone `due` already carries. Returns False (and leaves
    the suggestion untouched) for unparsable input; raises OperationError
    when the new wall time is skipped or repeated by a DST change.
    """
    parsed = parse_time_of_day(time_text)
    if parsed is None:
        logger.error("Invalid time format: '%s'", time_text)
        return False

    hour, minute = parsed
    local_due = suggestion.due if tz is None else suggestion.due.astimezone(tz)
    new_due = local_due.replace(hour=hour, minute=minute, second=0, microsecond=0, fold=0)
    try:
        check_wall_time(new_due)
    except ValueError as exc:
        raise OperationError(f"Cannot set time to {time_text!r}: {exc}") from exc
    edit_fields(suggestion, due=new_due)
    return True


def batch_apply_time(
    suggestions: list[Suggestion], ids: list[str], time_text: str, tz: tzinfo | None = None,
) -> BatchResult:
    """Apply one time of day to many suggestions, best effort.

    Unknown ids, confirmed suggestions and times that cannot be applied
    count as failures. Successes are never rolled back.
    """
    by_id = {s.id: s for s in suggestions}
    result = BatchResult()

    for suggestion_id in ids:
        suggestion = by_id.get(suggestion_id)
        if suggestion is None:
            logger.warning("Batch time update: suggestion %s not found", suggestion_id)
            result.failed += 1
        elif suggestion.confirmed:
            logger.warning("Batch time update: suggestion %s is already confirmed", suggestion_id)
            result.failed += 1
        else:
            try:
                applied = set_time_of_day(suggestion, time_text, tz)
            except OperationError as exc:
                logger.warning("Batch time update: %s", exc)
                applied = False
            if applied:
                result.success += 1
            else:
                result.failed += 1

    logger.info("Batch timing update: %d successful, %d failed", result.success, result.failed)
    return result
