"""Tests for bdlaw.schedules module."""
from __future__ import annotations

from bdlaw.schedules import (
    ScheduleCapture,
    ScheduleElement,
    ScheduleTable,
    check_missing_schedules,
    count_schedule_references,
    detect_schedule_distinction,
    has_schedule_markers,
    schedule_metadata,
    schedule_quality_assessment,
    validate_schedule_capture,
)

TABLE_HTML = "<div class=\"schedule\"><table><tr><td>ক</td></tr></table></div>"


def _capture(markers: bool = True) -> ScheduleCapture:
    return ScheduleCapture(
        elements=(ScheduleElement(selector=".schedule", html=TABLE_HTML, has_table=True),),
        markers_in_text=markers,
    )


class TestReferences:
    def test_overlapping_patterns_counted_once(self) -> None:
        refs = count_schedule_references("প্রথম তফসিল অনুযায়ী")
        assert len(refs) == 1
        assert refs[0].text == "তফসিল"

    def test_distinct_references(self) -> None:
        text = "তফসিল দেখুন এবং Schedule II দেখুন"
        refs = count_schedule_references(text)
        assert [r.position for r in sorted(refs, key=lambda r: r.position)] == [
            0, text.index("Schedule"),
        ]

    def test_markers(self) -> None:
        assert has_schedule_markers("Form A")
        assert not has_schedule_markers("ধারা ১")
        assert not has_schedule_markers(None)


class TestDistinction:
    def test_reference_without_table(self) -> None:
        result = detect_schedule_distinction("এই আইনের তফসিল অনুযায়ী", ())
        assert result.schedule_reference_count >= 1
        assert result.schedule_table_count == 0
        assert result.missing_schedule is True

    def test_reference_with_table(self) -> None:
        result = detect_schedule_distinction(
            "এই আইনের তফসিল অনুযায়ী", (ScheduleTable(".schedule table", True),),
        )
        assert result.missing_schedule is False
        assert result.to_dict()["tables"] == [{"selector": ".schedule table", "has_content": True}]

    def test_no_reference(self) -> None:
        assert detect_schedule_distinction("ধারা ১", ()).missing_schedule is False


class TestCapture:
    def test_capture_properties(self) -> None:
        capture = _capture()
        assert capture.html_content == TABLE_HTML
        assert capture.schedule_count == 1
        assert capture.has_tables
        assert not capture.missing_schedule_flag
        d = capture.to_dict()
        assert d["representation"] == "raw_html"
        assert d["extraction_method"] == "verbatim_dom_capture"
        assert d["processed"] is False
        assert d["schedule_elements"][0]["html_length"] == len(TABLE_HTML)

    def test_empty_capture_with_markers_is_missing(self) -> None:
        capture = ScheduleCapture(markers_in_text=True)
        assert capture.html_content is None
        assert capture.missing_schedule_flag

    def test_check_missing(self) -> None:
        result = check_missing_schedules("তফসিল এবং তফসিল এবং Appendix B", None)
        assert result["missing"] is True
        assert result["references"] == ["তফসিল", "Appendix B"]
        assert check_missing_schedules("তফসিল", _capture())["missing"] is False


class TestValidation:
    def test_no_capture(self) -> None:
        result = validate_schedule_capture(None)
        assert not result.valid
        assert result.issues[0]["type"] == "schedule_validation_error"

    def test_valid_capture(self) -> None:
        result = validate_schedule_capture(_capture(), "তফসিল")
        assert result.valid
        assert result.flags == ()

    def test_tampered_metadata(self) -> None:
        capture = ScheduleCapture(representation="text", processed=True)
        result = validate_schedule_capture(capture)
        assert not result.valid
        assert len(result.issues) == 2

    def test_referenced_but_not_captured(self) -> None:
        result = validate_schedule_capture(ScheduleCapture(), "Schedule I দেখুন")
        assert result.flags == ("missing_schedule",)
        assert result.valid

    def test_quality_assessment(self) -> None:
        qa = schedule_quality_assessment(ScheduleCapture(markers_in_text=True), "তফসিল")
        assert qa["schedule_missing_flag"] is True
        assert qa["schedule_html_preserved"] is False
        assert len(qa["schedule_validation_issues"]) == 2


class TestScheduleMetadata:
    def test_missing_when_no_tables(self) -> None:
        meta = schedule_metadata(ScheduleCapture(), "তফসিল অনুযায়ী ফি")
        assert meta["missing_schedule_flag"] is True
        assert meta["schedule_reference_count"] == 1
        assert meta["schedule_table_count"] == 0
        assert meta["html_content"] is None

    def test_captured_schedule(self) -> None:
        meta = schedule_metadata(
            _capture(), "তফসিল অনুযায়ী ফি", (ScheduleTable(".schedule table", True),),
        )
        assert meta["missing_schedule_flag"] is False
        assert meta["html_content"] == TABLE_HTML

    def test_no_text(self) -> None:
        meta = schedule_metadata(ScheduleCapture(), "")
        assert meta["missing_schedule_flag"] is False
        assert meta["missing_schedule_references"] == []
