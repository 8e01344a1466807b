"""Shared pytest fixtures for qarun tests.

Fixtures are organized by category:
- Path fixtures: fixture directories and the fake assistant script
- Project fixtures: throwaway project trees in tmp_path
- Configuration fixtures: configs wired to the fake assistant
"""

import logging
import shutil
import sys
from pathlib import Path
from typing import Any

import pytest

from qarun.config import AssistantConfig, QaConfig, load_config_from_dict
from qarun.utils.logging import ROOT_LOGGER
from tests.fixtures import FAKE_ASSISTANT_PATH, PYTHON_PROJECT_PATH

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def fake_assistant() -> Path:
    """Return the path to the fake assistant script."""
    return FAKE_ASSISTANT_PATH


# =============================================================================
# Project Fixtures
# =============================================================================


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """Copy the sample Python project into tmp_path."""
    target = tmp_path / "python_project"
    shutil.copytree(PYTHON_PROJECT_PATH, target)
    (target / ".git").mkdir()
    return target


@pytest.fixture
def empty_project(tmp_path: Path) -> Path:
    """Create an empty project directory."""
    project = tmp_path / "empty_project"
    project.mkdir()
    return project


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create files (relative path -> content) under root."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def make_project(tmp_path: Path):
    """Factory creating a project tree from a mapping of files."""

    def factory(files: dict[str, str], name: str = "project") -> Path:
        root = tmp_path / name
        root.mkdir(exist_ok=True)
        return write_files(root, files)

    return factory


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def fake_assistant_config(fake_assistant: Path) -> AssistantConfig:
    """Assistant config that runs the fake assistant with this interpreter."""
    return AssistantConfig(
        command=sys.executable,
        model="fake-model",
        extra_args=[str(fake_assistant)],
        preflight_timeout=10,
        pass_timeout=20,
        guide_timeout=20,
        stage_timeout=20,
    )


@pytest.fixture
def fake_config(fake_assistant_config: AssistantConfig) -> QaConfig:
    """Full config wired to the fake assistant."""
    config = QaConfig()
    config.assistant = fake_assistant_config
    return config


@pytest.fixture
def full_config_dict(fake_assistant: Path) -> dict[str, Any]:
    """Return a complete configuration dictionary with all sections."""
    return {
        "assistant": {
            "command": sys.executable,
            "model": "fake-model",
            "extra_args": [str(fake_assistant)],
            "preflight_timeout": 10,
            "pass_timeout": 20,
            "guide_timeout": 15,
            "stage_timeout": 12,
        },
        "analysis": {
            "mode": "multistage",
            "skip_unavailable": False,
            "guides_dir": "docs/guides",
            "disabled_passes": [],
            "structure_pass": True,
        },
        "fallback": {
            "guide_documents": ["CLAUDE.md"],
        },
        "report": {
            "output_dir": "reports",
            "formats": ["json"],
        },
    }


@pytest.fixture
def full_config(full_config_dict: dict[str, Any]) -> QaConfig:
    """Load the complete configuration dictionary."""
    return load_config_from_dict(full_config_dict)


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_qarun_logging():
    """Drop handlers the CLI attaches to the qarun logger."""
    yield
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
