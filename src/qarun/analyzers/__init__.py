"""Non-assistant analyzers.

- base: Analyzer contract (analyze(project_path) -> PassResult)
- structure: Heuristic fallback scoring from project structure
- multistage: Weighted aggregation of multi-stage results
"""

from qarun.analyzers.base import Analyzer
from qarun.analyzers.multistage import STAGE_WEIGHTS, MultiStageAggregator
from qarun.analyzers.structure import FallbackHeuristicAnalyzer, StructureSignals

__all__ = [
    "Analyzer",
    "FallbackHeuristicAnalyzer",
    "StructureSignals",
    "MultiStageAggregator",
    "STAGE_WEIGHTS",
]
