"""Sequential analysis pipeline.

Runs the passes of a catalog strictly one after another. Each pass is
isolated: whatever goes wrong inside it becomes that pass's PassResult and
the loop moves on. The assistant is checked once before the first pass; if
it is unavailable the whole run uses the fallback analyzer (or skips AI
passes when configured to).
"""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from qarun.analyzers.base import Analyzer
from qarun.analyzers.multistage import MultiStageAggregator
from qarun.analyzers.structure import FallbackHeuristicAnalyzer
from qarun.assistant.client import AssistantClient
from qarun.assistant.errors import (
    AssistantError,
    ProcessTimeoutError,
    ToolUnavailableError,
    UnextractablePayloadError,
)
from qarun.assistant.extractor import ResponseExtractor
from qarun.assistant.interpreter import ResultInterpreter
from qarun.config import QaConfig
from qarun.models.analysis_pass import AnalysisPass
from qarun.models.metrics import RunMetrics
from qarun.models.project import Project
from qarun.models.result import AggregateReport, PassResult, PassStatus
from qarun.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AssistantState:
    """Outcome of the per-run pre-flight check.

    Attributes:
        available: Whether AI passes may invoke the assistant
        version: Version string reported by the assistant
        reason: Why the assistant is unavailable
    """

    available: bool
    version: str | None = None
    reason: str | None = None


class AnalysisPipeline:
    """Runs analysis passes sequentially and aggregates their results.

    Per-pass failure handling:
    - disabled pass: skipped
    - timeout: fail with score 0
    - empty output, spawn failure, other assistant errors: fallback analyzer
    - unextractable payload: fallback analyzer fed with the raw text
    - anything else: error result carrying the message

    Usage:
        pipeline = AnalysisPipeline(config)
        report = pipeline.run(Project.from_path("."), build_catalog(config, path))
    """

    def __init__(
        self,
        config: QaConfig | None = None,
        client: AssistantClient | None = None,
        fallback: FallbackHeuristicAnalyzer | None = None,
        extractor: ResponseExtractor | None = None,
        interpreter: ResultInterpreter | None = None,
        aggregator: MultiStageAggregator | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: qarun configuration (uses defaults if None)
            client: Assistant client (built from config if None)
            fallback: Heuristic analyzer (built from config if None)
            extractor: Payload extractor
            interpreter: Payload interpreter
            aggregator: Multi-stage aggregator
        """
        self.config = config or QaConfig()
        self._client = client or AssistantClient(self.config.assistant)
        self._fallback = fallback or FallbackHeuristicAnalyzer(self.config.fallback)
        self._extractor = extractor or ResponseExtractor()
        self._interpreter = interpreter or ResultInterpreter()
        self._aggregator = aggregator or MultiStageAggregator()

    def run(
        self,
        project: Project,
        passes: Sequence[AnalysisPass],
        metrics: RunMetrics | None = None,
    ) -> AggregateReport:
        """Execute every pass in order.

        Args:
            project: Project to analyze
            passes: Passes in execution order
            metrics: Accumulator to record into (a fresh one if None)

        Returns:
            AggregateReport with one result per pass, in order

        Raises:
            ValueError: If the project path is unusable (before any pass runs)
        """
        for warning in project.validate():
            logger.warning("Project warning: %s", warning)

        metrics = metrics if metrics is not None else RunMetrics()
        started_at = datetime.now(UTC)
        total = len(passes)

        logger.info("Starting quality analysis of %s (%d passes)", project.name, total)
        assistant = self._preflight(project, passes)

        results: list[PassResult] = []
        for index, analysis_pass in enumerate(passes, start=1):
            logger.structured(
                logging.INFO,
                f"[{index}/{total}] {analysis_pass.name}...",
                pass_name=analysis_pass.name,
                index=index,
                total=total,
                event="pass_started",
            )
            started = time.monotonic()

            result = self._run_isolated(project, analysis_pass, assistant, metrics)
            if result.duration == 0.0 and result.status != PassStatus.SKIPPED:
                result.duration = time.monotonic() - started
            results.append(result)

            score = f" {result.score}/100" if result.score is not None else ""
            logger.structured(
                logging.INFO,
                f"[{index}/{total}] {analysis_pass.name} {result.status.glyph} "
                f"{result.status.value}{score} ({result.duration:.1f}s)",
                pass_name=analysis_pass.name,
                index=index,
                total=total,
                event="pass_finished",
                status=result.status.value,
                score=result.score,
                duration=round(result.duration, 3),
            )

        report = AggregateReport.from_results(
            project_name=project.name,
            project_path=project.path,
            results=results,
            started_at=started_at,
            run_metrics=metrics,
        )

        logger.info(
            "Analysis of %s finished: %s (%d passed, %d failed, %d errored, %d skipped)",
            project.name,
            report.status.value.upper(),
            report.metrics["passed"],
            report.metrics["failed"],
            report.metrics["errored"],
            report.metrics["skipped"],
        )
        return report

    # =========================================================================
    # Pre-flight
    # =========================================================================

    def _preflight(self, project: Project, passes: Sequence[AnalysisPass]) -> AssistantState:
        """Check the assistant once, if any enabled pass needs it."""
        if not any(p.enabled and p.uses_assistant for p in passes):
            return AssistantState(available=False, reason="no assistant passes enabled")

        try:
            version = self._client.require_available(project.path)
        except ToolUnavailableError as e:
            action = (
                "skipping AI passes"
                if self.config.analysis.skip_unavailable
                else "using heuristic fallback for every AI pass"
            )
            logger.warning("%s; %s", e.message, action)
            return AssistantState(available=False, reason=e.message)

        logger.info("Assistant available: %s %s", self._client.name, version)
        return AssistantState(available=True, version=version)

    # =========================================================================
    # Pass execution
    # =========================================================================

    def _run_isolated(
        self,
        project: Project,
        analysis_pass: AnalysisPass,
        assistant: AssistantState,
        metrics: RunMetrics,
    ) -> PassResult:
        """Run one pass, converting any exception into an error result."""
        if not analysis_pass.enabled:
            return PassResult.skipped(analysis_pass.name, analysis_pass.category, "disabled")

        started = time.monotonic()
        try:
            if analysis_pass.analyzer is not None:
                return self._run_analyzer(project, analysis_pass, analysis_pass.analyzer)

            if not assistant.available:
                return self._unavailable_result(project, analysis_pass, assistant, metrics)

            if analysis_pass.is_multistage:
                return self._run_multistage(project, analysis_pass, metrics)

            return self._run_assistant(project, analysis_pass, metrics)
        except Exception as e:
            logger.error("Pass %s failed: %s", analysis_pass.name, e, exc_info=True)
            return PassResult.error(
                analysis_pass.name,
                analysis_pass.category,
                str(e) or type(e).__name__,
                duration=time.monotonic() - started,
            )

    def _run_analyzer(
        self,
        project: Project,
        analysis_pass: AnalysisPass,
        analyzer: Analyzer,
    ) -> PassResult:
        """Run a tool pass through the Analyzer contract."""

        if not analyzer.is_available():
            return PassResult.skipped(
                analysis_pass.name, analysis_pass.category, f"{analyzer.name} not available"
            )

        result = analyzer.analyze(project.path)
        result.name = analysis_pass.name
        return result

    def _unavailable_result(
        self,
        project: Project,
        analysis_pass: AnalysisPass,
        assistant: AssistantState,
        metrics: RunMetrics,
    ) -> PassResult:
        """Result for an AI pass when the assistant failed pre-flight."""
        reason = assistant.reason or "assistant unavailable"
        if self.config.analysis.skip_unavailable:
            return PassResult.skipped(analysis_pass.name, analysis_pass.category, reason)

        metrics.record_fallback()
        return self._fallback.analyze_structure(
            project.path,
            name=analysis_pass.name,
            category=analysis_pass.category,
            reason=reason,
        )

    def _run_assistant(
        self,
        project: Project,
        analysis_pass: AnalysisPass,
        metrics: RunMetrics,
    ) -> PassResult:
        """Run a single-prompt pass."""
        try:
            return self._invoke_and_interpret(project, analysis_pass, metrics)
        except ProcessTimeoutError as e:
            return self._timeout_result(analysis_pass, e)
        except UnextractablePayloadError as e:
            metrics.record_fallback()
            return self._fallback.analyze_structure(
                project.path,
                raw_text=e.raw_text,
                name=analysis_pass.name,
                category=analysis_pass.category,
                reason=e.message,
            )
        except AssistantError as e:
            logger.warning("Pass %s falling back to heuristics: %s", analysis_pass.name, e.message)
            metrics.record_fallback()
            return self._fallback.analyze_structure(
                project.path,
                name=analysis_pass.name,
                category=analysis_pass.category,
                reason=e.message,
            )

    def _invoke_and_interpret(
        self,
        project: Project,
        analysis_pass: AnalysisPass,
        metrics: RunMetrics,
    ) -> PassResult:
        """Build the prompt, call the assistant, and interpret the answer.

        Raises:
            AssistantError: Any assistant failure, for the caller to map
        """
        prompt = analysis_pass.build_prompt(project.path)
        started = time.monotonic()

        try:
            response = self._client.complete(prompt, project.path, analysis_pass.timeout)
        except AssistantError as e:
            if isinstance(e, ProcessTimeoutError):
                metrics.record_timeout()
            metrics.record_invocation(
                analysis_pass.category, len(prompt), 0, time.monotonic() - started, success=False
            )
            raise

        payload = self._extractor.extract(response.text)
        metrics.record_extraction(payload.strategy.value, parsed=not payload.is_default)

        try:
            result = self._interpreter.interpret(
                payload, analysis_pass.name, analysis_pass.category
            )
        except UnextractablePayloadError as e:
            metrics.record_invocation(
                analysis_pass.category,
                len(prompt),
                len(response.text),
                response.duration,
                success=False,
            )
            raise UnextractablePayloadError(e.reason, raw_text=response.text) from e

        metrics.record_invocation(
            analysis_pass.category,
            len(prompt),
            len(response.text),
            response.duration,
            success=True,
        )
        if result.score is not None:
            metrics.record_score(analysis_pass.category, result.score)

        result.duration = response.duration
        return result

    def _run_multistage(
        self,
        project: Project,
        analysis_pass: AnalysisPass,
        metrics: RunMetrics,
    ) -> PassResult:
        """Run each stage in turn and fold them with the aggregator."""
        outcomes: dict[str, tuple[PassResult | None, float]] = {}
        total = len(analysis_pass.stages)

        for index, stage in enumerate(analysis_pass.stages, start=1):
            logger.info("  stage %d/%d: %s", index, total, stage.category)
            stage_result: PassResult | None = None

            if not stage.enabled:
                logger.info("  stage %s disabled", stage.category)
            else:
                try:
                    stage_result = self._invoke_and_interpret(project, stage, metrics)
                except ProcessTimeoutError as e:
                    logger.warning("  stage %s timed out: %s", stage.category, e.message)
                except AssistantError as e:
                    logger.warning("  stage %s failed: %s", stage.category, e.message)
                except Exception as e:
                    logger.error("  stage %s raised: %s", stage.category, e, exc_info=True)

            outcomes[stage.category] = (stage_result, stage.weight)

        return self._aggregator.aggregate(
            outcomes, name=analysis_pass.name, category=analysis_pass.category
        )

    def _timeout_result(self, analysis_pass: AnalysisPass, error: ProcessTimeoutError) -> PassResult:
        """Fail result for a pass killed by its timeout."""
        return PassResult(
            name=analysis_pass.name,
            category=analysis_pass.category,
            status=PassStatus.FAIL,
            score=0,
            summary=(
                f"Score: 0/100\n\nPass timed out after {error.timeout:g}s; "
                "the assistant process was terminated."
            ),
            metrics={"ai_score": 0, "timed_out": True, "timeout_seconds": error.timeout},
            duration=error.invocation.duration,
        )
