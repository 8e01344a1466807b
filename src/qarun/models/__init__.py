"""qarun data models.

This module exports the core entities used throughout the application:
- Project: Source tree being analyzed
- AnalysisPass: One unit of analysis work
- PassStatus / Violation / PassResult: Normalized pass outcome
- AggregateReport: Whole-run result
- RunMetrics: Assistant usage counters for one run
"""

from qarun.models.analysis_pass import AnalysisPass, PromptBuilder
from qarun.models.metrics import PromptStats, RunMetrics
from qarun.models.project import Project
from qarun.models.result import (
    AggregateReport,
    PassResult,
    PassStatus,
    Violation,
    severity_rank,
)

__all__ = [
    "Project",
    "AnalysisPass",
    "PromptBuilder",
    "PassStatus",
    "Violation",
    "PassResult",
    "AggregateReport",
    "RunMetrics",
    "PromptStats",
    "severity_rank",
]
