"""Shared test fixtures and configuration.

Sets fake environment variables before any package import and provides a
store, a fixed clock and a SuggestionService wired to mocked ports.
"""

import os

# Patch env vars BEFORE any deadline_intake imports
os.environ.setdefault("LLM_API_KEY", "fake-llm-key-for-tests")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("TIMEZONE", "America/New_York")
os.environ.setdefault("KNOWN_COURSES", "6.1040")

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

# Monday 2025-09-15, noon UTC
NOW = datetime(2025, 9, 15, 12, 0, tzinfo=timezone.utc)


def payload(*entries):
    """Wrap candidate dicts in the extractor response shape."""
    return {"suggestions": list(entries)}


def entry(title="Problem Set 1", due="2025-10-07T14:00:00-04:00", confidence=0.85, **extra):
    """A candidate that passes every domain check relative to NOW."""
    data = {"title": title, "due": due, "confidence": confidence, "provenance": "Syllabus p.2"}
    data.update(extra)
    return data


@pytest.fixture
def store():
    from deadline_intake.data.store import SuggestionStore
    return SuggestionStore()


@pytest.fixture
def extractor():
    ext = MagicMock()
    ext.extract_document = AsyncMock(return_value=payload(entry()))
    ext.extract_documents = AsyncMock(return_value=payload(entry()))
    ext.extract_website = AsyncMock(return_value=payload(entry()))
    ext.refine = AsyncMock(return_value=payload(entry()))
    return ext


@pytest.fixture
def sink():
    from deadline_intake.adapters.memory_sink import InMemoryDeadlineSink
    return InMemoryDeadlineSink()


@pytest.fixture
def config():
    from deadline_intake.data.models import ExtractionConfig
    return ExtractionConfig(timezone="America/New_York", timeout_seconds=5)


@pytest.fixture
def service(extractor, sink, store, config):
    from deadline_intake.core.suggestion_service import SuggestionService
    return SuggestionService(
        extractor=extractor,
        sink=sink,
        store=store,
        config=config,
        known_courses=["6.1040"],
        clock=lambda: NOW,
    )
