"""AnalysisPass entity: one unit of analysis work.

Passes are created once per run by the catalog and never mutated afterwards.
A pass is executed in exactly one of three ways:
- prompt_builder: a single assistant invocation
- stages: several assistant invocations folded by the multi-stage aggregator
- analyzer: an external tool behind the Analyzer contract
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qarun.analyzers.base import Analyzer

# (project_path, context) -> prompt text
PromptBuilder = Callable[[Path, str], str]


@dataclass(frozen=True)
class AnalysisPass:
    """Immutable description of one analysis pass.

    Attributes:
        name: Unique pass name
        category: Category tag (general, code_quality, security, ...)
        order: Position in the catalog
        prompt_builder: Builds the assistant prompt for a project
        timeout: Hard bound in seconds for one assistant invocation
        enabled: Whether the pass runs at all
        context: Contextual text handed to the prompt builder
        weight: Weight used when this pass is a multi-stage sub-pass
        stages: Sub-passes for multi-stage mode
        analyzer: External analyzer for tool passes
    """

    name: str
    category: str
    order: int = 0
    prompt_builder: PromptBuilder | None = None
    timeout: float = 600.0
    enabled: bool = True
    context: str = ""
    weight: float = 1.0
    stages: tuple["AnalysisPass", ...] = ()
    analyzer: "Analyzer | None" = None

    def __post_init__(self) -> None:
        """Validate pass definition."""
        if not self.name:
            raise ValueError("Analysis pass name must not be empty")

        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive for {self.name} (got {self.timeout})")

        if self.weight < 0:
            raise ValueError(f"Weight must not be negative for {self.name} (got {self.weight})")

        if self.prompt_builder is None and not self.stages and self.analyzer is None:
            raise ValueError(f"Analysis pass {self.name} has nothing to execute")

    @property
    def is_multistage(self) -> bool:
        """Return True if the pass folds several stages."""
        return bool(self.stages)

    @property
    def uses_assistant(self) -> bool:
        """Return True if the pass invokes the AI assistant."""
        return self.analyzer is None

    def build_prompt(self, project_path: Path) -> str:
        """Build the prompt for this pass.

        Raises:
            ValueError: If the pass has no prompt builder
        """
        if self.prompt_builder is None:
            raise ValueError(f"Analysis pass {self.name} has no prompt builder")
        return self.prompt_builder(project_path, self.context)
