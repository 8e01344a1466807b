"""Report renderer.

Renders an AggregateReport to Markdown with a Jinja2 template shipped in the
package, and to JSON via AggregateReport.to_dict().
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from qarun.models.result import AggregateReport, PassStatus

logger = logging.getLogger(__name__)

REPORT_BASENAME = "qa-report"
FORMAT_SUFFIXES = {"markdown": ".md", "json": ".json"}


def format_datetime(dt: datetime | str | None) -> str:
    """Format a timestamp for display.

    Args:
        dt: Datetime object or ISO string

    Returns:
        Formatted date string
    """
    if dt is None:
        return "N/A"

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt)
        except ValueError:
            return dt

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_duration(seconds: float | None) -> str:
    """Format a duration as 1.2s or 3m 04s."""
    if seconds is None:
        return "-"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(int(round(seconds)), 60)
    return f"{minutes}m {rest:02d}s"


def status_glyph(status: PassStatus | str) -> str:
    """Marker for a status value."""
    if isinstance(status, str):
        status = PassStatus(status)
    return status.glyph


class ReportRenderer:
    """Renders aggregate reports.

    Usage:
        renderer = ReportRenderer()
        paths = renderer.write(report, project.path / "qa-reports", ["markdown", "json"])
    """

    def __init__(self) -> None:
        """Initialize the Jinja2 environment with package templates."""
        self._env = Environment(
            loader=PackageLoader("qarun", "templates"),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["format_datetime"] = format_datetime
        self._env.filters["format_duration"] = format_duration
        self._env.filters["status_glyph"] = status_glyph

    def render_markdown(
        self,
        report: AggregateReport,
        template_name: str = "report.md.j2",
    ) -> str:
        """Render a report to Markdown.

        Args:
            report: Aggregate report
            template_name: Template file to use

        Returns:
            Rendered Markdown

        Raises:
            ValueError: If the template is missing or fails to render
        """
        try:
            template = self._env.get_template(template_name)
        except TemplateError as e:
            logger.error("Failed to load template %s: %s", template_name, e)
            raise ValueError(f"Template not found: {template_name}") from e

        try:
            rendered = template.render(**self._build_context(report))
        except TemplateError as e:
            logger.error("Template rendering failed: %s", e)
            raise ValueError(f"Template rendering failed: {e}") from e

        logger.debug("Rendered Markdown report (%d characters)", len(rendered))
        return rendered

    def render_json(self, report: AggregateReport) -> str:
        """Render a report to indented JSON."""
        return json.dumps(report.to_dict(), indent=2, ensure_ascii=False) + "\n"

    def render(self, report: AggregateReport, fmt: str) -> str:
        """Render a report in the named format.

        Raises:
            ValueError: If the format is unknown
        """
        if fmt == "markdown":
            return self.render_markdown(report)
        if fmt == "json":
            return self.render_json(report)
        raise ValueError(f"Unknown report format: {fmt}")

    def write(
        self,
        report: AggregateReport,
        output_dir: Path,
        formats: list[str],
    ) -> list[Path]:
        """Render and write a report in each requested format.

        Args:
            report: Aggregate report
            output_dir: Directory for report files (created if missing)
            formats: Formats to write (markdown, json)

        Returns:
            Paths of the written files, in format order
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        for fmt in formats:
            if fmt not in FORMAT_SUFFIXES:
                raise ValueError(f"Unknown report format: {fmt}")
            path = output_dir / f"{REPORT_BASENAME}{FORMAT_SUFFIXES[fmt]}"
            path.write_text(self.render(report, fmt), encoding="utf-8")
            logger.info("Wrote %s report to %s", fmt, path)
            written.append(path)

        return written

    def _build_context(self, report: AggregateReport) -> dict[str, Any]:
        """Build the template rendering context."""
        return {
            "project_name": report.project_name,
            "project_path": str(report.project_path),
            "status": report.status.value,
            "started_at": report.started_at,
            "metrics": report.metrics,
            "results": [r.to_dict() for r in report.results],
            "summary": report.summary,
            "run_metrics": report.run_metrics.to_dict() if report.run_metrics else None,
        }
