"""Tests for deadline_intake.data.models — Suggestion and request dataclasses."""

from dataclasses import FrozenInstanceError, asdict
from datetime import datetime, timezone

import pytest

from deadline_intake.data.models import (
    ExtractionConfig,
    ExtractionMethod,
    RefinementRequest,
    SourceType,
    Suggestion,
)

DUE = datetime(2025, 10, 7, 18, 0, tzinfo=timezone.utc)


def _make(**kw):
    return Suggestion(
        title="Problem Set 1", due=DUE, source=SourceType.SYLLABUS,
        extraction_method=ExtractionMethod.MODEL, **kw,
    )


def test_suggestion_defaults():
    s = _make()
    assert s.confirmed is False
    assert s.confidence is None
    assert s.warnings == []
    assert s.provenance == ""
    assert s.uploaded_document is None
    assert s.uploaded_documents == []
    assert s.website_url is None
    assert s.canvas_metadata is None


def test_suggestion_ids_are_unique():
    assert len({_make().id for _ in range(100)}) == 100


def test_warning_lists_are_not_shared():
    a, b = _make(), _make()
    a.add_warning("Potential duplicate")
    assert b.warnings == []


def test_add_warning_keeps_repeats():
    s = _make()
    s.add_warning("Manually edited by user")
    s.add_warning("Manually edited by user")
    assert s.warnings == ["Manually edited by user", "Manually edited by user"]


def test_suggestion_serializable():
    d = asdict(_make(confidence=0.7))
    assert d["title"] == "Problem Set 1"
    assert d["source"] == SourceType.SYLLABUS
    assert d["confidence"] == 0.7


def test_enum_values():
    assert {s.value for s in SourceType} == {"SYLLABUS", "IMAGE", "WEBSITE", "CANVAS"}
    assert {m.value for m in ExtractionMethod} == {"DIRECT", "MODEL"}


def test_extraction_config_is_immutable():
    config = ExtractionConfig()
    with pytest.raises(FrozenInstanceError):
        config.max_tokens = 10


def test_extraction_config_overrides():
    config = ExtractionConfig()
    override = config.with_overrides(timeout_seconds=5)
    assert override.timeout_seconds == 5
    assert config.timeout_seconds == 30.0
    assert override.prompt_template == config.prompt_template


def test_refinement_request_snapshot():
    s = _make(confidence=0.4, provenance="Syllabus p.3")
    request = RefinementRequest.from_suggestion(s, "It's due Friday")
    s.title = "Changed later"
    assert request.suggestion_id == s.id
    assert request.title == "Problem Set 1"
    assert request.due == DUE
    assert request.confidence == 0.4
    assert request.provenance == "Syllabus p.3"
    assert request.feedback == "It's due Friday"
