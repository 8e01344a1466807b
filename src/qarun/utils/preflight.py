"""Preflight checks for a qarun run.

Reports whether the project can be analyzed and whether the assistant CLI
answers its version check. A missing assistant is a warning, not an error:
the run still completes through the heuristic fallback (or skips AI passes).
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from qarun.assistant.client import AssistantClient
from qarun.config import QaConfig
from qarun.passes.catalog import discover_guides


@dataclass
class ToolCheck:
    """Result of checking a single prerequisite.

    Attributes:
        name: Prerequisite name
        available: Whether it is usable
        version: Version string if applicable
        required: Whether the run cannot proceed without it
        path: Resolved path (executable or directory)
        message: Human-readable context
    """

    name: str
    available: bool
    version: str | None = None
    required: bool = True
    path: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "name": self.name,
            "available": self.available,
            "version": self.version,
            "required": self.required,
            "path": self.path,
            "message": self.message,
        }


@dataclass
class PreflightResult:
    """Result of preflight validation.

    Attributes:
        success: Whether every required check passed
        checks: Individual check results
        errors: Messages for failed required checks
        warnings: Messages for failed optional checks
    """

    success: bool = True
    checks: list[ToolCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_check(self, check: ToolCheck) -> None:
        """Add a check result."""
        self.checks.append(check)

        if not check.available:
            detail = f": {check.message}" if check.message else ""
            if check.required:
                self.success = False
                self.errors.append(f"{check.name} unavailable{detail}")
            else:
                self.warnings.append(f"{check.name} unavailable{detail}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "checks": [c.to_dict() for c in self.checks],
            "errors": self.errors,
            "warnings": self.warnings,
        }


class PreflightChecker:
    """Validates prerequisites before analysis.

    Usage:
        checker = PreflightChecker(config)
        result = checker.check_all(project_path)
        if not result.success:
            raise typer.Exit(1)
    """

    def __init__(
        self,
        config: QaConfig | None = None,
        client: AssistantClient | None = None,
    ) -> None:
        """Initialize preflight checker.

        Args:
            config: qarun configuration (uses defaults if None)
            client: Assistant client (built from config if None)
        """
        self.config = config or QaConfig()
        self.client = client or AssistantClient(self.config.assistant)

    def check_project(self, project_path: Path) -> ToolCheck:
        """Check that the project directory exists."""
        resolved = project_path.resolve()
        if not resolved.is_dir():
            return ToolCheck(
                name="project",
                available=False,
                path=str(resolved),
                message="Project path is not a directory",
            )
        return ToolCheck(name="project", available=True, path=str(resolved))

    def check_assistant(self, project_path: Path | None = None) -> ToolCheck:
        """Run the assistant version check.

        Args:
            project_path: Directory to run the check in

        Returns:
            Optional ToolCheck for the assistant command
        """
        command = self.config.assistant.command
        path = shutil.which(command)

        if not self.config.assistant.enabled:
            return ToolCheck(
                name=command,
                available=False,
                required=False,
                path=path,
                message="Disabled in configuration; heuristic fallback will be used",
            )

        version = self.client.get_version(project_path)
        if version is None:
            return ToolCheck(
                name=command,
                available=False,
                required=False,
                path=path,
                message=(
                    f"No answer to '{' '.join(self.config.assistant.version_args)}' within "
                    f"{self.config.assistant.preflight_timeout:g}s; "
                    "heuristic fallback will be used"
                ),
            )

        return ToolCheck(
            name=command,
            available=True,
            version=version or None,
            required=False,
            path=path,
            message=f"model: {self.config.assistant.model or 'default'}",
        )

    def check_guides(self, project_path: Path) -> ToolCheck:
        """Check that guide mode has documents to work with."""
        guides_dir = project_path / self.config.analysis.guides_dir
        guides = discover_guides(guides_dir)
        return ToolCheck(
            name="guides",
            available=bool(guides),
            required=False,
            path=str(guides_dir),
            message=(
                f"{len(guides)} guide document(s)"
                if guides
                else "No guide documents; a unified review will run instead"
            ),
        )

    def check_all(self, project_path: Path) -> PreflightResult:
        """Run all checks relevant to the configuration.

        Args:
            project_path: Project root

        Returns:
            PreflightResult with every check
        """
        result = PreflightResult()

        project_check = self.check_project(project_path)
        result.add_check(project_check)

        working_dir = project_path if project_check.available else None
        result.add_check(self.check_assistant(working_dir))

        if self.config.analysis.mode == "guides" and project_check.available:
            result.add_check(self.check_guides(project_path))

        return result
