"""qarun utility modules.

- logging: Standardized logging with human/verbose/JSON modes
- preflight: Project and assistant availability checks
"""

from qarun.utils.logging import get_logger, setup_logging
from qarun.utils.preflight import PreflightChecker, PreflightResult

__all__ = [
    "get_logger",
    "setup_logging",
    "PreflightChecker",
    "PreflightResult",
]
