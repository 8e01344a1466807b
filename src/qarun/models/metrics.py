"""Assistant usage metrics for a single run.

RunMetrics is an explicit accumulator: the pipeline records into the value it
is given (or a fresh one) and returns it on the AggregateReport. Callers that
want history across runs combine values with merge().
"""

from dataclasses import dataclass, field
from typing import Any

# Inclusive score ranges used for the distribution histogram
SCORE_BUCKETS: tuple[tuple[int, int, str], ...] = (
    (0, 20, "0-20"),
    (21, 40, "21-40"),
    (41, 60, "41-60"),
    (61, 80, "61-80"),
    (81, 100, "81-100"),
)


def score_bucket(score: int) -> str:
    """Return the histogram bucket label for a score."""
    for low, high, label in SCORE_BUCKETS:
        if low <= score <= high:
            return label
    raise ValueError(f"Score out of range: {score}")


@dataclass
class PromptStats:
    """Effectiveness of one prompt type.

    Attributes:
        invocations: Times the prompt type was sent
        successes: Invocations whose response was parsed
        total_score: Sum of recorded scores
        scored: Number of recorded scores
    """

    invocations: int = 0
    successes: int = 0
    total_score: int = 0
    scored: int = 0

    @property
    def success_rate(self) -> float:
        """Fraction of invocations that produced a parsed response."""
        return self.successes / self.invocations if self.invocations else 0.0

    @property
    def average_score(self) -> float:
        """Mean recorded score."""
        return self.total_score / self.scored if self.scored else 0.0

    def merged(self, other: "PromptStats") -> "PromptStats":
        """Return the sum of two stats."""
        return PromptStats(
            invocations=self.invocations + other.invocations,
            successes=self.successes + other.successes,
            total_score=self.total_score + other.total_score,
            scored=self.scored + other.scored,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "invocations": self.invocations,
            "successes": self.successes,
            "success_rate": round(self.success_rate, 3),
            "average_score": round(self.average_score, 1),
        }


@dataclass
class RunMetrics:
    """Counters describing how the assistant behaved during a run.

    Attributes:
        total_invocations: Assistant calls attempted
        successful_invocations: Calls whose output was parsed into a result
        failed_invocations: Calls that did not yield output
        timeouts: Calls terminated by the timeout
        fallbacks_used: Passes answered by the heuristic analyzer
        json_parsing_failures: Responses that needed the default structure
        total_execution_time: Seconds spent inside assistant calls
        total_prompt_chars: Characters sent in prompts
        total_response_chars: Characters received in responses
        score_distribution: Bucket label to count
        strategy_counts: Extraction strategy to count
        prompt_stats: Prompt type to PromptStats
    """

    total_invocations: int = 0
    successful_invocations: int = 0
    failed_invocations: int = 0
    timeouts: int = 0
    fallbacks_used: int = 0
    json_parsing_failures: int = 0
    total_execution_time: float = 0.0
    total_prompt_chars: int = 0
    total_response_chars: int = 0
    score_distribution: dict[str, int] = field(
        default_factory=lambda: {label: 0 for _, _, label in SCORE_BUCKETS}
    )
    strategy_counts: dict[str, int] = field(default_factory=dict)
    prompt_stats: dict[str, PromptStats] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def _stats(self, prompt_type: str) -> PromptStats:
        return self.prompt_stats.setdefault(prompt_type, PromptStats())

    def record_invocation(
        self,
        prompt_type: str,
        prompt_length: int,
        response_length: int,
        duration: float,
        success: bool,
    ) -> None:
        """Record one assistant call.

        Args:
            prompt_type: Category of the prompt (pass category)
            prompt_length: Characters in the prompt
            response_length: Characters in the captured output
            duration: Seconds spent in the call
            success: Whether the response was turned into a result
        """
        self.total_invocations += 1
        self.total_prompt_chars += prompt_length
        self.total_response_chars += response_length
        self.total_execution_time += duration

        stats = self._stats(prompt_type)
        stats.invocations += 1
        if success:
            self.successful_invocations += 1
            stats.successes += 1
        else:
            self.failed_invocations += 1

    def record_timeout(self) -> None:
        """Record a call terminated by its timeout."""
        self.timeouts += 1

    def record_fallback(self) -> None:
        """Record a pass answered by the heuristic analyzer."""
        self.fallbacks_used += 1

    def record_extraction(self, strategy: str, parsed: bool = True) -> None:
        """Record which extraction strategy produced the payload.

        Args:
            strategy: Extraction strategy name
            parsed: False when the response needed the default structure
        """
        self.strategy_counts[strategy] = self.strategy_counts.get(strategy, 0) + 1
        if not parsed:
            self.json_parsing_failures += 1

    def record_score(self, prompt_type: str, score: int) -> None:
        """Record a score in the histogram and the prompt stats."""
        label = score_bucket(score)
        self.score_distribution[label] = self.score_distribution.get(label, 0) + 1
        stats = self._stats(prompt_type)
        stats.total_score += score
        stats.scored += 1

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def success_rate(self) -> float:
        """Fraction of calls that produced a parsed result."""
        if not self.total_invocations:
            return 0.0
        return self.successful_invocations / self.total_invocations

    @property
    def average_execution_time(self) -> float:
        """Mean seconds per call."""
        if not self.total_invocations:
            return 0.0
        return self.total_execution_time / self.total_invocations

    @property
    def average_response_length(self) -> float:
        """Mean characters per response."""
        if not self.total_invocations:
            return 0.0
        return self.total_response_chars / self.total_invocations

    def merge(self, other: "RunMetrics") -> "RunMetrics":
        """Combine two runs into a new value (neither input is modified).

        Args:
            other: Metrics from another run

        Returns:
            New RunMetrics holding the sums
        """
        distribution = dict(self.score_distribution)
        for label, count in other.score_distribution.items():
            distribution[label] = distribution.get(label, 0) + count

        strategies = dict(self.strategy_counts)
        for name, count in other.strategy_counts.items():
            strategies[name] = strategies.get(name, 0) + count

        prompt_stats = {
            name: stats.merged(PromptStats()) for name, stats in self.prompt_stats.items()
        }
        for name, stats in other.prompt_stats.items():
            prompt_stats[name] = prompt_stats.get(name, PromptStats()).merged(stats)

        return RunMetrics(
            total_invocations=self.total_invocations + other.total_invocations,
            successful_invocations=self.successful_invocations + other.successful_invocations,
            failed_invocations=self.failed_invocations + other.failed_invocations,
            timeouts=self.timeouts + other.timeouts,
            fallbacks_used=self.fallbacks_used + other.fallbacks_used,
            json_parsing_failures=self.json_parsing_failures + other.json_parsing_failures,
            total_execution_time=self.total_execution_time + other.total_execution_time,
            total_prompt_chars=self.total_prompt_chars + other.total_prompt_chars,
            total_response_chars=self.total_response_chars + other.total_response_chars,
            score_distribution=distribution,
            strategy_counts=strategies,
            prompt_stats=prompt_stats,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total_invocations": self.total_invocations,
            "successful_invocations": self.successful_invocations,
            "failed_invocations": self.failed_invocations,
            "success_rate": round(self.success_rate, 3),
            "timeouts": self.timeouts,
            "fallbacks_used": self.fallbacks_used,
            "json_parsing_failures": self.json_parsing_failures,
            "total_execution_time_seconds": round(self.total_execution_time, 3),
            "average_execution_time_seconds": round(self.average_execution_time, 3),
            "average_response_length": round(self.average_response_length, 1),
            "total_prompt_chars": self.total_prompt_chars,
            "score_distribution": dict(self.score_distribution),
            "strategy_counts": dict(self.strategy_counts),
            "prompt_stats": {
                name: stats.to_dict() for name, stats in sorted(self.prompt_stats.items())
            },
        }

    def format_summary(self) -> str:
        """Render a short human-readable summary."""
        lines = [
            f"Assistant calls: {self.total_invocations} "
            f"({self.successful_invocations} parsed, {self.failed_invocations} failed, "
            f"{self.success_rate:.0%} success)",
            f"Timeouts: {self.timeouts}, fallbacks: {self.fallbacks_used}, "
            f"unparsed responses: {self.json_parsing_failures}",
            f"Average call time: {self.average_execution_time:.1f}s",
        ]
        scored = {k: v for k, v in self.score_distribution.items() if v}
        if scored:
            lines.append(
                "Score distribution: " + ", ".join(f"{k}: {v}" for k, v in scored.items())
            )
        return "\n".join(lines)
