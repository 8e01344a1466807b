"""Pass catalog: builds the ordered list of passes for a run.

Modes:
- unified: one full-project review
- multistage: one review split into weighted category stages
- guides: one review per guide document found in the guides directory
"""

import logging
from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path

from qarun.analyzers.multistage import STAGE_WEIGHTS
from qarun.analyzers.structure import FallbackHeuristicAnalyzer
from qarun.assistant.prompts import STAGE_PROMPTS, build_guide_prompt, build_unified_prompt
from qarun.config import QaConfig
from qarun.models.analysis_pass import AnalysisPass

logger = logging.getLogger(__name__)

# Characters of each guide document copied into the shared project context
CONTEXT_DOCUMENT_LIMIT = 4_000

# Guide file-name keywords mapped to categories, first match wins
GUIDE_CATEGORY_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("security", "security"),
    ("tdd", "tdd"),
    ("test", "testing"),
    ("quality", "quality"),
)

UNIFIED_PASS_NAME = "ai-review"
MULTISTAGE_PASS_NAME = "multistage-review"
STRUCTURE_PASS_NAME = "structure"


@dataclass(frozen=True)
class GuideDocument:
    """A guide document discovered on disk.

    Attributes:
        name: Guide name (file stem)
        path: Path to the markdown file
        category: Category inferred from the file name
    """

    name: str
    path: Path
    category: str


def infer_guide_category(name: str) -> str:
    """Infer a guide category from its file name."""
    lower = name.lower()
    for keyword, category in GUIDE_CATEGORY_KEYWORDS:
        if keyword in lower:
            return category
    return "general"


def discover_guides(guides_dir: Path) -> list[GuideDocument]:
    """Find guide documents (*.md) in a directory, sorted by name.

    Args:
        guides_dir: Directory to search

    Returns:
        Guide documents (empty if the directory does not exist)
    """
    if not guides_dir.is_dir():
        logger.debug("Guides directory not found: %s", guides_dir)
        return []

    return [
        GuideDocument(name=path.stem, path=path, category=infer_guide_category(path.stem))
        for path in sorted(guides_dir.glob("*.md"))
        if path.is_file()
    ]


def build_project_context(project_path: Path, config: QaConfig) -> str:
    """Collect contextual text shared by every prompt.

    Includes the top-level layout and the project's assistant guide
    documents (CLAUDE.md and friends), truncated.

    Args:
        project_path: Project root
        config: Loaded configuration

    Returns:
        Context text (may be empty)
    """
    excluded = set(config.fallback.excluded_dirs)
    entries = sorted(
        f"{p.name}/" if p.is_dir() else p.name
        for p in project_path.iterdir()
        if p.name not in excluded and not p.name.startswith(".")
    )

    parts = [f"Project: {project_path.name}"]
    if entries:
        parts.append("Top-level entries: " + ", ".join(entries))

    for name in config.fallback.guide_documents:
        document = project_path / name
        if not document.is_file():
            continue
        try:
            text = document.read_text(encoding="utf-8", errors="replace").strip()
        except OSError as e:
            logger.warning("Could not read %s: %s", document, e)
            continue
        if len(text) > CONTEXT_DOCUMENT_LIMIT:
            text = text[:CONTEXT_DOCUMENT_LIMIT] + "\n[... truncated ...]"
        parts.append(f"--- {name} ---\n{text}")

    return "\n".join(parts)


def _unified_pass(config: QaConfig, context: str, order: int) -> AnalysisPass:
    return AnalysisPass(
        name=UNIFIED_PASS_NAME,
        category="general",
        order=order,
        prompt_builder=build_unified_prompt,
        timeout=config.assistant.pass_timeout,
        context=context,
    )


def _multistage_pass(config: QaConfig, context: str, order: int) -> AnalysisPass:
    stages = tuple(
        AnalysisPass(
            name=f"{MULTISTAGE_PASS_NAME}:{stage}",
            category=stage,
            order=index,
            prompt_builder=STAGE_PROMPTS[stage],
            timeout=config.assistant.stage_timeout,
            context=context,
            weight=weight,
        )
        for index, (stage, weight) in enumerate(STAGE_WEIGHTS.items())
    )
    return AnalysisPass(
        name=MULTISTAGE_PASS_NAME,
        category="general",
        order=order,
        timeout=config.assistant.stage_timeout,
        context=context,
        stages=stages,
    )


def _guide_passes(config: QaConfig, guides: list[GuideDocument], context: str) -> list[AnalysisPass]:
    passes: list[AnalysisPass] = []
    for index, guide in enumerate(guides):
        try:
            guide_text = guide.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read guide %s: %s", guide.path, e)
            continue

        passes.append(
            AnalysisPass(
                name=f"guide:{guide.name}",
                category=guide.category,
                order=index,
                prompt_builder=partial(
                    build_guide_prompt, guide_name=guide.name, guide_text=guide_text
                ),
                timeout=config.assistant.guide_timeout,
                context=context,
            )
        )
    return passes


def build_catalog(config: QaConfig, project_path: Path) -> list[AnalysisPass]:
    """Build the ordered passes for the configured mode.

    Args:
        config: Loaded configuration
        project_path: Project root

    Returns:
        Passes in execution order
    """
    context = build_project_context(project_path, config)
    mode = config.analysis.mode

    if mode == "multistage":
        passes = [_multistage_pass(config, context, 0)]
    elif mode == "guides":
        guides = discover_guides(project_path / config.analysis.guides_dir)
        passes = _guide_passes(config, guides, context)
        if not passes:
            logger.warning(
                "No guide documents in %s, falling back to a unified review",
                config.analysis.guides_dir,
            )
            passes = [_unified_pass(config, context, 0)]
    else:
        passes = [_unified_pass(config, context, 0)]

    if config.analysis.structure_pass:
        passes.append(
            AnalysisPass(
                name=STRUCTURE_PASS_NAME,
                category="structure",
                order=len(passes),
                analyzer=FallbackHeuristicAnalyzer(
                    config.fallback, name=STRUCTURE_PASS_NAME, category="structure"
                ),
            )
        )

    disabled = set(config.analysis.disabled_passes)
    unknown = disabled - {p.name for p in passes}
    if unknown:
        logger.warning("Unknown pass names in disabled_passes: %s", ", ".join(sorted(unknown)))

    catalog = [replace(p, enabled=p.name not in disabled) for p in passes]

    logger.debug("Catalog for mode %s: %s", mode, [p.name for p in catalog])
    return sorted(catalog, key=lambda p: p.order)
