"""Unit tests for the pass catalog and prompt builders."""

from pathlib import Path

import pytest

from qarun.analyzers.multistage import STAGE_WEIGHTS
from qarun.analyzers.structure import FallbackHeuristicAnalyzer
from qarun.assistant.prompts import (
    GUIDE_TEXT_LIMIT,
    STAGE_PROMPTS,
    build_guide_prompt,
    build_unified_prompt,
    response_format,
)
from qarun.config import QaConfig, load_config_from_dict
from qarun.passes.catalog import (
    CONTEXT_DOCUMENT_LIMIT,
    build_catalog,
    build_project_context,
    discover_guides,
    infer_guide_category,
)


def config_for(**analysis: object) -> QaConfig:
    """Build a config with the given analysis settings."""
    return load_config_from_dict({"analysis": analysis})


class TestPrompts:
    """Tests for prompt builders."""

    def test_unified_prompt(self, tmp_path: Path) -> None:
        """Test the unified prompt carries context and the compliance block."""
        prompt = build_unified_prompt(tmp_path, "Project: demo")

        assert "=== Project context ===\nProject: demo" in prompt
        assert str(tmp_path) in prompt
        assert '"guideline_compliance"' in prompt
        assert prompt.endswith(response_format(with_compliance=True))

    def test_empty_context_omitted(self, tmp_path: Path) -> None:
        """Test that blank context adds no section."""
        assert "Project context" not in build_unified_prompt(tmp_path, "  ")

    @pytest.mark.parametrize("stage", list(STAGE_PROMPTS))
    def test_stage_prompts_share_response_format(self, stage: str, tmp_path: Path) -> None:
        """Test that every stage prompt ends with the response format."""
        prompt = STAGE_PROMPTS[stage](tmp_path, "")

        assert prompt.endswith(response_format())
        assert "guideline_compliance" not in prompt

    def test_stage_prompts_match_weights(self) -> None:
        """Test that every weighted stage has a prompt."""
        assert set(STAGE_PROMPTS) == set(STAGE_WEIGHTS)

    def test_guide_prompt(self, tmp_path: Path) -> None:
        """Test that the guide text is embedded."""
        prompt = build_guide_prompt(
            tmp_path, "", guide_name="security", guide_text="Never log tokens."
        )

        assert "=== Guide: security ===\nNever log tokens." in prompt

    def test_guide_prompt_truncated(self, tmp_path: Path) -> None:
        """Test that long guides are truncated."""
        prompt = build_guide_prompt(tmp_path, "", guide_name="g", guide_text="x" * 20_000)

        assert "x" * GUIDE_TEXT_LIMIT in prompt
        assert "x" * (GUIDE_TEXT_LIMIT + 1) not in prompt
        assert "[... guide truncated ...]" in prompt


class TestGuides:
    """Tests for guide discovery."""

    @pytest.mark.parametrize(
        ("name", "category"),
        [
            ("security-rules", "security"),
            ("TDD", "tdd"),
            ("testing-guide", "testing"),
            ("code-quality", "quality"),
            ("architecture", "general"),
        ],
    )
    def test_infer_category(self, name: str, category: str) -> None:
        """Test category inference from file names."""
        assert infer_guide_category(name) == category

    def test_discover_sorted_markdown(self, make_project) -> None:
        """Test that only markdown files are found, in name order."""
        project = make_project(
            {"guides/b-style.md": "b", "guides/a-security.md": "a", "guides/notes.txt": "n"}
        )

        guides = discover_guides(project / "guides")

        assert [g.name for g in guides] == ["a-security", "b-style"]
        assert guides[0].category == "security"

    def test_missing_directory(self, tmp_path: Path) -> None:
        """Test a guides directory that does not exist."""
        assert discover_guides(tmp_path / "missing") == []


class TestProjectContext:
    """Tests for build_project_context."""

    def test_layout_and_guide_document(self, sample_project: Path) -> None:
        """Test that layout and CLAUDE.md are included."""
        context = build_project_context(sample_project, QaConfig())

        assert context.startswith("Project: python_project")
        assert "Top-level entries: CLAUDE.md, pyproject.toml, src/, tests/" in context
        assert "--- CLAUDE.md ---" in context
        assert ".git" not in context

    def test_long_document_truncated(self, make_project) -> None:
        """Test that guide documents are truncated."""
        project = make_project({"AGENTS.md": "y" * (CONTEXT_DOCUMENT_LIMIT + 100)})

        context = build_project_context(project, QaConfig())

        assert "y" * (CONTEXT_DOCUMENT_LIMIT + 1) not in context
        assert "[... truncated ...]" in context


class TestBuildCatalog:
    """Tests for build_catalog."""

    def test_unified_mode(self, sample_project: Path) -> None:
        """Test the default single pass."""
        passes = build_catalog(QaConfig(), sample_project)

        assert [p.name for p in passes] == ["ai-review"]
        assert passes[0].timeout == 600
        assert "CLAUDE.md" in passes[0].context

    def test_multistage_mode(self, sample_project: Path, full_config: QaConfig) -> None:
        """Test weighted stages."""
        full_config.analysis.structure_pass = False

        passes = build_catalog(full_config, sample_project)

        assert len(passes) == 1
        multistage = passes[0]
        assert multistage.is_multistage is True
        assert [s.category for s in multistage.stages] == list(STAGE_WEIGHTS)
        assert [s.weight for s in multistage.stages] == list(STAGE_WEIGHTS.values())
        assert all(s.timeout == 12 for s in multistage.stages)
        assert multistage.stages[0].name == "multistage-review:code_quality"

    def test_guides_mode(self, make_project) -> None:
        """Test one pass per guide document."""
        project = make_project(
            {
                ".qarun/guides/security.md": "Validate input.",
                ".qarun/guides/tdd.md": "Test first.",
            }
        )

        passes = build_catalog(config_for(mode="guides"), project)

        assert [p.name for p in passes] == ["guide:security", "guide:tdd"]
        assert [p.category for p in passes] == ["security", "tdd"]
        assert passes[0].timeout == 300
        assert "Validate input." in passes[0].build_prompt(project)

    def test_guides_mode_without_guides(self, sample_project: Path) -> None:
        """Test that guide mode falls back to a unified review."""
        passes = build_catalog(config_for(mode="guides"), sample_project)

        assert [p.name for p in passes] == ["ai-review"]

    def test_structure_pass_appended(self, sample_project: Path) -> None:
        """Test the optional heuristic pass."""
        passes = build_catalog(config_for(structure_pass=True), sample_project)

        assert [p.name for p in passes] == ["ai-review", "structure"]
        assert isinstance(passes[1].analyzer, FallbackHeuristicAnalyzer)
        assert passes[1].uses_assistant is False

    def test_disabled_passes(self, sample_project: Path) -> None:
        """Test that disabled passes stay in the catalog, marked disabled."""
        passes = build_catalog(
            config_for(structure_pass=True, disabled_passes=["ai-review", "nope"]),
            sample_project,
        )

        assert [(p.name, p.enabled) for p in passes] == [("ai-review", False), ("structure", True)]
