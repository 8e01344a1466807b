"""Unit tests for report rendering."""

import json
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from qarun.models.metrics import RunMetrics
from qarun.models.result import AggregateReport, PassResult, PassStatus, Violation
from qarun.templates.renderer import (
    ReportRenderer,
    format_datetime,
    format_duration,
    status_glyph,
)


@pytest.fixture
def report(tmp_path: Path) -> AggregateReport:
    """A small failing report."""
    metrics = RunMetrics()
    metrics.record_invocation("general", 100, 200, 2.0, success=True)
    metrics.record_timeout()
    results = [
        PassResult(
            "ai-review",
            "general",
            PassStatus.FAIL,
            score=65,
            summary="Score: 65/100\n\nNeeds work",
            violations=[Violation("warning", "src/a.py", 4, "Long | tangled\nfunction")],
            duration=2.0,
        ),
        PassResult.skipped("structure", "structure", "disabled in configuration"),
    ]
    return AggregateReport.from_results(
        "demo",
        tmp_path,
        results,
        started_at=datetime(2024, 5, 6, 7, 8, 9, tzinfo=UTC),
        run_metrics=metrics,
    )


@pytest.fixture
def renderer() -> ReportRenderer:
    """Create a renderer."""
    return ReportRenderer()


class TestFilters:
    """Tests for template filters."""

    def test_format_datetime(self) -> None:
        """Test UTC formatting of aware, naive and string values."""
        aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_datetime(aware) == "2024-01-01 10:00:00 UTC"
        assert format_datetime(datetime(2024, 1, 1, 12, 0)) == "2024-01-01 12:00:00 UTC"
        assert format_datetime("2024-01-01T12:00:00+00:00") == "2024-01-01 12:00:00 UTC"
        assert format_datetime("yesterday") == "yesterday"
        assert format_datetime(None) == "N/A"

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(None, "-"), (0, "0.0s"), (1.25, "1.2s"), (59.9, "59.9s"), (61, "1m 01s"), (605, "10m 05s")],
    )
    def test_format_duration(self, seconds: float | None, expected: str) -> None:
        """Test duration formatting."""
        assert format_duration(seconds) == expected

    def test_status_glyph(self) -> None:
        """Test glyphs for enum and string values."""
        assert status_glyph(PassStatus.PASS) == "✓"
        assert status_glyph("fail") == "✗"
        assert status_glyph("skipped") == "-"


class TestReportRenderer:
    """Tests for ReportRenderer."""

    def test_markdown(self, renderer: ReportRenderer, report: AggregateReport) -> None:
        """Test the Markdown layout."""
        text = renderer.render_markdown(report)

        assert text.startswith("# Quality Report: demo")
        assert "| Status | ✗ **FAIL** |" in text
        assert "| Started | 2024-05-06 07:08:09 UTC |" in text
        assert "| 1 | ai-review | general | ✗ fail | 65 | 1 | 2.0s |" in text
        assert "| 2 | structure | structure | - skipped | - | 0 | 0.0s |" in text
        assert "## 1. ai-review" in text
        assert "Needs work" in text
        assert "Long \\| tangled function" in text
        assert "- Timeouts: 1" in text

    def test_markdown_without_run_metrics(
        self,
        renderer: ReportRenderer,
        report: AggregateReport,
    ) -> None:
        """Test that the usage section is omitted without metrics."""
        report.run_metrics = None

        assert "Assistant Usage" not in renderer.render_markdown(report)

    def test_missing_template(self, renderer: ReportRenderer, report: AggregateReport) -> None:
        """Test that a missing template raises ValueError."""
        with pytest.raises(ValueError, match="Template not found"):
            renderer.render_markdown(report, template_name="missing.j2")

    def test_json(self, renderer: ReportRenderer, report: AggregateReport) -> None:
        """Test JSON output."""
        data = json.loads(renderer.render_json(report))

        assert data["status"] == "fail"
        assert [r["name"] for r in data["results"]] == ["ai-review", "structure"]
        assert data["run_metrics"]["timeouts"] == 1

    def test_unknown_format(self, renderer: ReportRenderer, report: AggregateReport) -> None:
        """Test that unknown formats are rejected."""
        with pytest.raises(ValueError, match="Unknown report format"):
            renderer.render(report, "html")

    def test_write(
        self,
        renderer: ReportRenderer,
        report: AggregateReport,
        tmp_path: Path,
    ) -> None:
        """Test writing both formats."""
        output_dir = tmp_path / "out" / "reports"

        paths = renderer.write(report, output_dir, ["markdown", "json"])

        assert paths == [output_dir / "qa-report.md", output_dir / "qa-report.json"]
        assert all(p.is_file() for p in paths)
        assert json.loads(paths[1].read_text())["project_name"] == "demo"
