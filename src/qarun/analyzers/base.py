"""Abstract base class for analyzers.

An analyzer is anything that turns a project path into a PassResult without
going through the assistant: wrapped static-analysis tools, and the
heuristic fallback analyzer. The pipeline only relies on this contract.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from qarun.models.result import PassResult


class Analyzer(ABC):
    """Narrow contract for non-assistant analysis passes.

    Attributes:
        name: Analyzer identifier (used as the pass name)
        category: Category tag for the produced result
    """

    def __init__(self, name: str, category: str) -> None:
        """Initialize the analyzer.

        Args:
            name: Analyzer identifier
            category: Category tag
        """
        self.name = name
        self.category = category

    def is_available(self) -> bool:
        """Return True if the analyzer can run in this environment."""
        return True

    @abstractmethod
    def analyze(self, project_path: Path) -> PassResult:
        """Analyze a project.

        Args:
            project_path: Project root

        Returns:
            PassResult for this analyzer
        """

    def get_metadata(self) -> dict[str, Any]:
        """Get analyzer metadata for logging and debugging."""
        return {
            "name": self.name,
            "category": self.category,
            "available": self.is_available(),
        }
