"""qarun - Resilient AI-assisted code quality analysis.

qarun runs independent analysis passes against a project by invoking a
locally installed AI assistant CLI, one pass at a time, and folds the
results into one report.

Core principles:
- Sequential: passes never run concurrently; each has a hard timeout
- Resilient: structured findings are recovered from messy text output
- Isolated: one failing pass never aborts the run
- Degradable: heuristic structure analysis stands in for the assistant
"""

__version__ = "0.1.0"
__author__ = "qarun Contributors"
