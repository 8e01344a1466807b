"""Weighted aggregation of multi-stage analysis results.

One logical review is split into category stages (code quality,
architecture, testing, security) that run one after another. Stages that
failed outright are excluded from the weighted average instead of counting
as zero.
"""

import logging
from collections.abc import Mapping
from typing import Any

from qarun.models.result import PassResult, PassStatus

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 70

STAGE_WEIGHTS: dict[str, float] = {
    "code_quality": 0.4,
    "architecture": 0.3,
    "testing": 0.2,
    "security": 0.1,
}

# stage category -> (result, weight); result is None when the stage produced nothing
WeightedResults = Mapping[str, tuple[PassResult | None, float]]


def stage_failed(result: PassResult | None) -> bool:
    """Return True if a stage failed outright (no result or no score)."""
    return result is None or result.status == PassStatus.ERROR or result.score is None


class MultiStageAggregator:
    """Folds weighted stage results into one PassResult."""

    def aggregate(
        self,
        weighted_results: WeightedResults,
        name: str = "multistage",
        category: str = "general",
    ) -> PassResult:
        """Combine stage results.

        Args:
            weighted_results: Stage category to (result or None, weight)
            name: Name of the combined pass
            category: Category of the combined pass

        Returns:
            Combined PassResult
        """
        total_stages = len(weighted_results)
        completed = {
            stage: (result, weight)
            for stage, (result, weight) in weighted_results.items()
            if not stage_failed(result)
        }
        failed_stages = total_stages - len(completed)
        duration = sum(
            result.duration for result, _ in weighted_results.values() if result is not None
        )

        metrics: dict[str, Any] = {
            "completed_stages": len(completed),
            "failed_stages": failed_stages,
            "total_stages": total_stages,
        }

        weight_sum = sum(weight for _, weight in completed.values())
        if not completed or weight_sum <= 0:
            logger.warning("All %d stages of %s failed", total_stages, name)
            metrics["ai_score"] = 0
            return PassResult(
                name=name,
                category=category,
                status=PassStatus.FAIL,
                score=0,
                summary=f"Score: 0/100\n\nAll {total_stages} analysis stages failed.",
                metrics=metrics,
                duration=duration,
            )

        weighted = sum(
            result.score * weight  # type: ignore[operator]
            for result, weight in completed.values()
        )
        score = max(0, min(100, round(weighted / weight_sum)))

        violations = sorted(
            (
                violation
                for result, _ in weighted_results.values()
                if result is not None
                for violation in result.violations
            ),
            key=lambda v: v.rank,
        )

        for stage, (result, _) in completed.items():
            metrics[f"{stage}_score"] = result.score  # type: ignore[union-attr]
        metrics["ai_score"] = score
        metrics["violations_found"] = len(violations)

        if failed_stages * 2 > total_stages:
            status = PassStatus.FAIL
        elif score < PASS_THRESHOLD or any(v.is_error for v in violations):
            status = PassStatus.FAIL
        else:
            status = PassStatus.PASS

        return PassResult(
            name=name,
            category=category,
            status=status,
            score=score,
            summary=self._narrative(score, weighted_results, failed_stages),
            metrics=metrics,
            violations=violations,
            duration=duration,
        )

    def _narrative(
        self,
        score: int,
        weighted_results: WeightedResults,
        failed_stages: int,
    ) -> str:
        total = len(weighted_results)
        parts = [
            f"Score: {score}/100 (weighted over {total - failed_stages} of {total} stages)"
        ]

        for stage, (result, weight) in weighted_results.items():
            header = f"--- {stage} (weight {weight:.0%})"
            if stage_failed(result):
                detail = result.summary if result is not None else "No result"
                parts.append(f"{header}: FAILED ---\n{detail}")
            else:
                parts.append(f"{header}: {result.score}/100 ---\n{result.summary}")  # type: ignore[union-attr]

        return "\n\n".join(parts)
