"""Test fixtures for qarun.

Sample projects and the fake assistant CLI used by integration tests.

Sample Projects:
- sample_projects/python_project: small package with pytest tests and a CLAUDE.md
"""

from pathlib import Path

FIXTURES_DIR = Path(__file__).parent

SAMPLE_PROJECTS_DIR = FIXTURES_DIR / "sample_projects"

PYTHON_PROJECT_PATH = SAMPLE_PROJECTS_DIR / "python_project"

FAKE_ASSISTANT_PATH = FIXTURES_DIR / "fake_assistant.py"


def get_sample_project(name: str) -> Path:
    """Get path to a sample project.

    Args:
        name: Name of the sample project

    Returns:
        Path to the sample project

    Raises:
        ValueError: If the project doesn't exist
    """
    project_path = SAMPLE_PROJECTS_DIR / name
    if not project_path.exists():
        raise ValueError(f"Sample project not found: {name}")
    return project_path
