"""Project entity representing the source tree being analyzed.

The Project entity carries the root path handed to every pass (the assistant
runs with it as working directory) and validates that the path is usable.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass
class Project:
    """Source tree being analyzed.

    Attributes:
        path: Absolute path to project root
        name: Project name (derived from the directory name)

    Validation Rules:
        - path must exist and be a directory
        - path should contain a .git directory (warning if not)
    """

    path: Path
    name: str

    def __post_init__(self) -> None:
        """Normalize the project path."""
        if isinstance(self.path, str):
            self.path = Path(self.path)

        self.path = self.path.resolve()

    def validate(self) -> list[str]:
        """Validate the project location.

        Returns:
            List of validation warning messages (empty if valid)

        Raises:
            ValueError: If path does not exist or is not a directory
        """
        warnings: list[str] = []

        if not self.path.exists():
            raise ValueError(f"Project path does not exist: {self.path}")

        if not self.path.is_dir():
            raise ValueError(f"Project path is not a directory: {self.path}")

        if not (self.path / ".git").exists():
            warnings.append(f"Not a git repository (no .git directory): {self.path}")

        return warnings

    @classmethod
    def from_path(cls, path: Path | str, name: str | None = None) -> "Project":
        """Create a Project from a path.

        Args:
            path: Path to the project root
            name: Optional name override (defaults to directory name)

        Returns:
            Project instance
        """
        path = Path(path).resolve()
        return cls(path=path, name=name or path.name)
