"""Pass and report result entities.

This module contains the normalized outcome types shared by every analysis pass:
- PassStatus: Outcome of a single pass
- Violation: One finding reported by a pass
- PassResult: Normalized result of a single pass
- AggregateReport: Whole-run result combining every pass
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from qarun.models.metrics import RunMetrics


class PassStatus(Enum):
    """Status of a single analysis pass."""

    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"
    ERROR = "error"

    @property
    def is_failing(self) -> bool:
        """Return True if this status fails an aggregate run."""
        return self in (PassStatus.FAIL, PassStatus.ERROR)

    @property
    def glyph(self) -> str:
        """Short marker used in progress lines and reports."""
        return {
            PassStatus.PASS: "✓",
            PassStatus.FAIL: "✗",
            PassStatus.SKIPPED: "-",
            PassStatus.ERROR: "✗",
        }[self]


SEVERITY_RANKS = {
    "error": 1,
    "warning": 2,
    "info": 3,
}
UNKNOWN_SEVERITY_RANK = 4


def severity_rank(severity: str) -> int:
    """Rank a severity label (lower is more severe).

    Args:
        severity: Severity label such as "error" or "warning"

    Returns:
        1 for error, 2 for warning, 3 for info, 4 for anything else
    """
    return SEVERITY_RANKS.get(severity.strip().lower(), UNKNOWN_SEVERITY_RANK)


@dataclass(frozen=True)
class Violation:
    """A single finding reported by a pass.

    Attributes:
        severity: Severity label (error, warning, info, ...)
        file: File the finding refers to (empty if project-wide)
        line: Line number (0 if not applicable)
        message: Human-readable description
        category: Finding type (structure, testing, security, ...)
    """

    severity: str
    file: str
    line: int
    message: str
    category: str = ""

    @property
    def rank(self) -> int:
        """Severity rank used for ordering."""
        return severity_rank(self.severity)

    @property
    def is_error(self) -> bool:
        """Return True for error-severity findings."""
        return self.rank == SEVERITY_RANKS["error"]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "severity": self.severity,
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "category": self.category,
        }


@dataclass
class PassResult:
    """Normalized result of one analysis pass.

    Attributes:
        name: Pass name
        category: Pass category tag
        status: Outcome of the pass
        score: Score in 0..100 (None when the pass was skipped or has no score)
        summary: Narrative text for the report
        metrics: Metric name to value
        violations: Findings reported by the pass
        duration: Execution time in seconds

    Validation Rules:
        - status must be a PassStatus
        - skipped results carry no score
        - score, when present, lies in 0..100
    """

    name: str
    category: str
    status: PassStatus
    score: int | None = None
    summary: str = ""
    metrics: dict[str, Any] = field(default_factory=dict)
    violations: list[Violation] = field(default_factory=list)
    duration: float = 0.0

    def __post_init__(self) -> None:
        """Validate result invariants."""
        if not isinstance(self.status, PassStatus):
            raise ValueError(f"Invalid pass status: {self.status!r}")

        if self.status == PassStatus.SKIPPED and self.score is not None:
            raise ValueError(f"Skipped pass {self.name} cannot carry a score")

        if self.score is not None and not 0 <= self.score <= 100:
            raise ValueError(f"Score out of range for {self.name}: {self.score}")

    @classmethod
    def skipped(cls, name: str, category: str, reason: str) -> "PassResult":
        """Create a skipped result.

        Args:
            name: Pass name
            category: Pass category
            reason: Why the pass did not run

        Returns:
            PassResult with status SKIPPED
        """
        return cls(
            name=name,
            category=category,
            status=PassStatus.SKIPPED,
            summary=f"Skipped: {reason}",
            metrics={"skipped_reason": reason},
        )

    @classmethod
    def error(
        cls,
        name: str,
        category: str,
        message: str,
        duration: float = 0.0,
    ) -> "PassResult":
        """Create an error result for a pass that raised.

        Args:
            name: Pass name
            category: Pass category
            message: Error description
            duration: Time spent before the failure

        Returns:
            PassResult with status ERROR
        """
        return cls(
            name=name,
            category=category,
            status=PassStatus.ERROR,
            summary=f"Analysis failed: {message}",
            metrics={"error": message},
            duration=duration,
        )

    @property
    def has_error_violation(self) -> bool:
        """Return True if any finding has error severity."""
        return any(v.is_error for v in self.violations)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "category": self.category,
            "status": self.status.value,
            "score": self.score,
            "summary": self.summary,
            "metrics": dict(self.metrics),
            "violations": [v.to_dict() for v in self.violations],
            "duration_seconds": round(self.duration, 3),
        }


@dataclass
class AggregateReport:
    """Whole-run result combining every pass outcome.

    Attributes:
        project_name: Name of the analyzed project
        project_path: Absolute path of the analyzed project
        results: Pass results in execution order
        status: Overall status (PASS or FAIL)
        summary: Combined narrative with per-pass headers
        metrics: Combined metrics (counts, durations, category scores)
        started_at: Run start time in UTC
        run_metrics: Assistant usage metrics recorded during the run
    """

    project_name: str
    project_path: Path
    results: list[PassResult]
    status: PassStatus
    summary: str
    metrics: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    run_metrics: "RunMetrics | None" = None

    @classmethod
    def from_results(
        cls,
        project_name: str,
        project_path: Path,
        results: list[PassResult],
        started_at: datetime | None = None,
        run_metrics: "RunMetrics | None" = None,
    ) -> "AggregateReport":
        """Build a report from ordered pass results.

        Args:
            project_name: Name of the analyzed project
            project_path: Path of the analyzed project
            results: Pass results in execution order
            started_at: Run start time (defaults to now)
            run_metrics: Metrics recorded during the run

        Returns:
            AggregateReport with derived status and narrative
        """
        results = list(results)
        status = (
            PassStatus.FAIL
            if any(r.status.is_failing for r in results)
            else PassStatus.PASS
        )

        return cls(
            project_name=project_name,
            project_path=project_path,
            results=results,
            status=status,
            summary=_combine_narratives(project_name, results, status),
            metrics=_combine_metrics(results),
            started_at=started_at or datetime.now(UTC),
            run_metrics=run_metrics,
        )

    def count(self, status: PassStatus) -> int:
        """Count results with the given status."""
        return sum(1 for r in self.results if r.status == status)

    @property
    def passed(self) -> bool:
        """Return True if the run passed overall."""
        return self.status == PassStatus.PASS

    @property
    def total_duration(self) -> float:
        """Sum of pass durations in seconds."""
        return sum(r.duration for r in self.results)

    def get_result(self, name: str) -> PassResult | None:
        """Find a pass result by name."""
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "project_name": self.project_name,
            "project_path": str(self.project_path),
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "summary": self.summary,
            "metrics": dict(self.metrics),
            "results": [r.to_dict() for r in self.results],
            "run_metrics": self.run_metrics.to_dict() if self.run_metrics else None,
        }


def _combine_narratives(
    project_name: str,
    results: list[PassResult],
    status: PassStatus,
) -> str:
    """Concatenate pass narratives under per-pass headers."""
    total = len(results)
    lines = [
        f"Quality analysis for {project_name}: {status.value.upper()}",
        (
            f"{total} passes: "
            f"{sum(1 for r in results if r.status == PassStatus.PASS)} passed, "
            f"{sum(1 for r in results if r.status == PassStatus.FAIL)} failed, "
            f"{sum(1 for r in results if r.status == PassStatus.ERROR)} errored, "
            f"{sum(1 for r in results if r.status == PassStatus.SKIPPED)} skipped"
        ),
    ]

    for index, result in enumerate(results, start=1):
        score = f" {result.score}/100" if result.score is not None else ""
        lines.append("")
        lines.append(
            f"=== [{index}/{total}] {result.name} ({result.category}) "
            f"{result.status.glyph} {result.status.value}{score} ==="
        )
        if result.summary:
            lines.append(result.summary)

    return "\n".join(lines)


def _combine_metrics(results: list[PassResult]) -> dict[str, Any]:
    """Count outcomes and average scores per category."""
    scores: dict[str, list[int]] = {}
    for result in results:
        if result.score is not None:
            scores.setdefault(result.category, []).append(result.score)

    return {
        "total_passes": len(results),
        "passed": sum(1 for r in results if r.status == PassStatus.PASS),
        "failed": sum(1 for r in results if r.status == PassStatus.FAIL),
        "errored": sum(1 for r in results if r.status == PassStatus.ERROR),
        "skipped": sum(1 for r in results if r.status == PassStatus.SKIPPED),
        "total_duration_seconds": round(sum(r.duration for r in results), 3),
        "category_scores": {
            category: round(sum(values) / len(values))
            for category, values in scores.items()
        },
    }
