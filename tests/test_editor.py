"""Tests for deadline_intake.core.editor — manual correction path."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from deadline_intake.core.editor import (
    MANUAL_EDIT_WARNING,
    batch_apply_time,
    edit_fields,
    parse_time_of_day,
    set_time_of_day,
)
from deadline_intake.core.errors import OperationError
from deadline_intake.data.models import ExtractionMethod, SourceType, Suggestion

EDT = timezone(timedelta(hours=-4))
NEW_YORK = ZoneInfo("America/New_York")


def _make(title="Problem Set 1", due=None, **kw):
    return Suggestion(
        title=title,
        due=due or datetime(2025, 10, 1, 10, 0, tzinfo=EDT),
        source=SourceType.SYLLABUS,
        extraction_method=ExtractionMethod.MODEL,
        confidence=0.6,
        provenance="Syllabus p.1",
        **kw,
    )


class TestParseTimeOfDay:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("11:59 PM", (23, 59)),
            ("11:59pm", (23, 59)),
            ("23:59", (23, 59)),
            ("12:00 AM", (0, 0)),
            ("12:30 pm", (12, 30)),
            ("9:05 a.m.", (9, 5)),
            ("  7:15  ", (7, 15)),
            ("0:00", (0, 0)),
        ],
    )
    def test_valid_times(self, text, expected):
        assert parse_time_of_day(text) == expected

    @pytest.mark.parametrize(
        "text",
        ["midnight", "", "25:00", "12:75", "13:00 PM", "0:30 am", "11.59", "11:59 PM tomorrow"],
    )
    def test_invalid_times(self, text):
        assert parse_time_of_day(text) is None


class TestEditFields:
    def test_sets_only_given_fields(self):
        s = _make()
        edit_fields(s, title="Problem Set 1 (revised)")
        assert s.title == "Problem Set 1 (revised)"
        assert s.due == datetime(2025, 10, 1, 10, 0, tzinfo=EDT)
        assert s.confidence == 0.6
        assert s.provenance == "Syllabus p.1"

    def test_appends_manual_edit_warning(self):
        s = _make(warnings=["Weekend deadline - verify if correct"])
        edit_fields(s, provenance="Corrected by TA email")
        assert s.warnings == ["Weekend deadline - verify if correct", MANUAL_EDIT_WARNING]

    def test_every_edit_adds_a_warning(self):
        s = _make()
        edit_fields(s, confidence=0.9)
        edit_fields(s, confidence=1.0)
        assert s.warnings == [MANUAL_EDIT_WARNING, MANUAL_EDIT_WARNING]

    def test_can_clear_confidence(self):
        s = _make()
        edit_fields(s, confidence=None)
        assert s.confidence is None

    def test_rejects_blank_title(self):
        s = _make()
        with pytest.raises(OperationError):
            edit_fields(s, title="  ")
        assert s.title == "Problem Set 1"
        assert s.warnings == []

    def test_rejects_naive_due(self):
        s = _make()
        with pytest.raises(OperationError):
            edit_fields(s, due=datetime(2025, 10, 2, 9, 0))

    @pytest.mark.parametrize("bad", [1.2, -0.5, float("nan"), True])
    def test_rejects_confidence_outside_range(self, bad):
        s = _make()
        with pytest.raises(OperationError):
            edit_fields(s, confidence=bad)
        assert s.confidence == 0.6

    def test_invalid_value_changes_nothing(self):
        s = _make()
        with pytest.raises(OperationError):
            edit_fields(s, title="New title", confidence=5)
        assert s.title == "Problem Set 1"


class TestSetTimeOfDay:
    def test_changes_only_the_time(self):
        s = _make(due=datetime(2025, 10, 1, 10, 0, tzinfo=EDT))
        assert set_time_of_day(s, "11:59 PM") is True
        assert s.due == datetime(2025, 10, 1, 23, 59, tzinfo=EDT)
        assert s.due.date() == datetime(2025, 10, 1).date()

    def test_keeps_offset(self):
        s = _make()
        set_time_of_day(s, "08:00")
        assert s.due.utcoffset() == timedelta(hours=-4)

    def test_zeroes_seconds(self):
        s = _make(due=datetime(2025, 10, 1, 10, 0, 42, 123, tzinfo=EDT))
        set_time_of_day(s, "17:30")
        assert (s.due.second, s.due.microsecond) == (0, 0)

    def test_records_manual_edit(self):
        s = _make()
        set_time_of_day(s, "23:59")
        assert s.warnings == [MANUAL_EDIT_WARNING]

    def test_unparsable_time_leaves_suggestion_alone(self):
        s = _make()
        assert set_time_of_day(s, "end of day") is False
        assert s.due == datetime(2025, 10, 1, 10, 0, tzinfo=EDT)
        assert s.warnings == []

    def test_utc_due_uses_local_date(self):
        # Tue Oct 7 22:00 in New York
        s = _make(due=datetime(2025, 10, 8, 2, 0, tzinfo=timezone.utc))
        assert set_time_of_day(s, "11:59 PM", NEW_YORK) is True
        assert s.due == datetime(2025, 10, 7, 23, 59, tzinfo=NEW_YORK)
        assert s.due.tzinfo == NEW_YORK

    def test_time_skipped_by_dst_raises(self):
        s = _make(due=datetime(2026, 3, 8, 12, 0, tzinfo=NEW_YORK))
        with pytest.raises(OperationError):
            set_time_of_day(s, "2:30 AM", NEW_YORK)
        assert s.due == datetime(2026, 3, 8, 12, 0, tzinfo=NEW_YORK)
        assert s.warnings == []

    def test_time_repeated_by_dst_raises(self):
        s = _make(due=datetime(2026, 11, 1, 12, 0, tzinfo=NEW_YORK))
        with pytest.raises(OperationError):
            set_time_of_day(s, "1:30 AM", NEW_YORK)
        assert s.warnings == []


class TestBatchApplyTime:
    def test_partial_failure_keeps_successes(self):
        a, b = _make(title="PS1"), _make(title="PS2")
        result = batch_apply_time([a, b], [a.id, "missing-id", b.id], "11:59 PM")
        assert (result.success, result.failed) == (2, 1)
        assert (a.due.hour, a.due.minute) == (23, 59)
        assert (b.due.hour, b.due.minute) == (23, 59)

    def test_unparsable_time_fails_every_item(self):
        a, b = _make(title="PS1"), _make(title="PS2")
        result = batch_apply_time([a, b], [a.id, b.id], "whenever")
        assert (result.success, result.failed) == (0, 2)
        assert a.due.hour == 10

    def test_confirmed_suggestion_counts_as_failure(self):
        a, b = _make(title="PS1"), _make(title="PS2", confirmed=True)
        result = batch_apply_time([a, b], [a.id, b.id], "17:00")
        assert (result.success, result.failed) == (1, 1)
        assert b.due.hour == 10

    def test_empty_id_list(self):
        result = batch_apply_time([_make()], [], "17:00")
        assert (result.success, result.failed) == (0, 0)

    def test_dst_gap_counts_as_failure(self):
        a = _make(title="PS1", due=datetime(2026, 3, 8, 12, 0, tzinfo=NEW_YORK))
        b = _make(title="PS2", due=datetime(2026, 3, 9, 12, 0, tzinfo=NEW_YORK))
        result = batch_apply_time([a, b], [a.id, b.id], "2:30 AM", NEW_YORK)
        assert (result.success, result.failed) == (1, 1)
        assert a.due.hour == 12
        assert (b.due.hour, b.due.minute) == (2, 30)
