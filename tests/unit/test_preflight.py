"""Unit tests for preflight checks."""

from pathlib import Path

import pytest

from qarun.config import QaConfig, load_config_from_dict
from qarun.utils.preflight import PreflightChecker, PreflightResult, ToolCheck


class TestPreflightResult:
    """Tests for PreflightResult bookkeeping."""

    def test_required_failure(self) -> None:
        """Test that a failed required check fails the result."""
        result = PreflightResult()

        result.add_check(ToolCheck(name="project", available=False, message="missing"))

        assert result.success is False
        assert result.errors == ["project unavailable: missing"]

    def test_optional_failure(self) -> None:
        """Test that a failed optional check only warns."""
        result = PreflightResult()

        result.add_check(ToolCheck(name="gemini", available=False, required=False))

        assert result.success is True
        assert result.warnings == ["gemini unavailable"]

    def test_to_dict(self) -> None:
        """Test JSON serialization."""
        result = PreflightResult()
        result.add_check(ToolCheck(name="project", available=True, path="/p"))

        data = result.to_dict()

        assert data["success"] is True
        assert data["checks"][0]["path"] == "/p"


class TestPreflightChecker:
    """Tests for PreflightChecker."""

    def test_all_available(self, fake_config: QaConfig, sample_project: Path) -> None:
        """Test a project with a responsive assistant."""
        result = PreflightChecker(fake_config).check_all(sample_project)

        assert result.success is True
        assert result.warnings == []
        assistant = result.checks[1]
        assert assistant.available is True
        assert assistant.version == "fake-assistant 1.0.0"
        assert assistant.message == "model: fake-model"

    def test_missing_project(self, fake_config: QaConfig, tmp_path: Path) -> None:
        """Test that a missing project is an error."""
        result = PreflightChecker(fake_config).check_all(tmp_path / "missing")

        assert result.success is False
        assert "project unavailable" in result.errors[0]

    def test_unresponsive_assistant_is_warning(
        self,
        fake_config: QaConfig,
        sample_project: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that a failing version check only warns."""
        monkeypatch.setenv("FAKE_ASSISTANT_UNAVAILABLE", "1")

        result = PreflightChecker(fake_config).check_all(sample_project)

        assert result.success is True
        assert len(result.warnings) == 1
        assert "heuristic fallback will be used" in result.warnings[0]

    def test_disabled_assistant(self, sample_project: Path) -> None:
        """Test the disabled-assistant message."""
        config = load_config_from_dict({"assistant": {"enabled": False}})

        check = PreflightChecker(config).check_assistant(sample_project)

        assert check.available is False
        assert check.required is False
        assert "Disabled in configuration" in check.message

    def test_guides_checked_in_guides_mode(self, fake_config: QaConfig, make_project) -> None:
        """Test the guides check."""
        fake_config.analysis.mode = "guides"
        project = make_project({".qarun/guides/security.md": "rules"})

        result = PreflightChecker(fake_config).check_all(project)

        guides = result.checks[-1]
        assert guides.name == "guides"
        assert guides.available is True
        assert guides.message == "1 guide document(s)"

    def test_no_guides_warns(self, fake_config: QaConfig, sample_project: Path) -> None:
        """Test the empty guides directory warning."""
        fake_config.analysis.mode = "guides"

        result = PreflightChecker(fake_config).check_all(sample_project)

        assert any("a unified review will run instead" in w for w in result.warnings)
