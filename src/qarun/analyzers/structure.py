"""Heuristic project-structure analyzer.

Used whenever the assistant cannot produce a usable answer. The score is
built from static signals of the source tree; when partial assistant text
exists, keyword counts and any score found in the text nudge it.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from qarun.analyzers.base import Analyzer
from qarun.config import FallbackConfig
from qarun.models.result import PassResult, PassStatus, Violation

logger = logging.getLogger(__name__)

PASS_THRESHOLD = 70
BASE_SCORE = 40

# Weights for structural (x7) and salvaged textual (x3) scores
STRUCTURE_WEIGHT = 7
TEXT_WEIGHT = 3

LOW_TEST_RATIO = 0.3

POSITIVE_KEYWORDS = ("clean", "quality", "best", "good", "excellent", "well-structured")
NEGATIVE_KEYWORDS = ("issue", "problem", "error", "warning", "violation", "bad", "poor")
IMPROVEMENT_KEYWORDS = ("recommend", "suggest", "improve", "should", "consider", "refactor")

SCORE_PATTERNS = (
    re.compile(r"(\d{1,3})\s*/\s*100"),
    re.compile(r"score[:\s]+(\d{1,3})", re.IGNORECASE),
)

TEST_DIR_NAMES = {"test", "tests", "__tests__", "spec", "specs", "testing"}
_TEST_FILE_PATTERN = re.compile(
    r"(^test_.+)|(.+_test$)|(.+Tests?$)|(.+\.(test|spec)$)|(^Test[A-Z].*)"
)


@dataclass
class StructureSignals:
    """Static signals collected from a project tree.

    Attributes:
        source_files: Non-test source files
        test_files: Test source files
        has_build_descriptor: A build descriptor sits in the project root
        has_guide_document: An assistant guide document sits in the project root
        package_depth: Deepest directory nesting of a non-test source file
    """

    source_files: int = 0
    test_files: int = 0
    has_build_descriptor: bool = False
    has_guide_document: bool = False
    package_depth: int = 0

    @property
    def test_ratio(self) -> float:
        """Test files per source file."""
        return self.test_files / self.source_files if self.source_files else 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "source_files": self.source_files,
            "test_files": self.test_files,
            "test_ratio": round(self.test_ratio, 2),
            "has_build_descriptor": self.has_build_descriptor,
            "has_guide_document": self.has_guide_document,
            "package_depth": self.package_depth,
        }


@dataclass
class TextSignals:
    """Signals salvaged from unparseable assistant output.

    Attributes:
        positive: Positive keywords present
        negative: Negative keywords present
        suggests_improvements: Any improvement keyword present
        extracted_score: Score found in the text, if any
    """

    positive: int = 0
    negative: int = 0
    suggests_improvements: bool = False
    extracted_score: int | None = None


def is_test_file(relative: Path) -> bool:
    """Return True if a source path looks like a test.

    Args:
        relative: Path relative to the project root
    """
    if any(part.lower() in TEST_DIR_NAMES for part in relative.parts[:-1]):
        return True
    return bool(_TEST_FILE_PATTERN.match(relative.stem))


def scan_text(raw_text: str) -> TextSignals:
    """Count keyword families and look for a score in free text."""
    lower = raw_text.lower()
    signals = TextSignals(
        positive=sum(1 for word in POSITIVE_KEYWORDS if word in lower),
        negative=sum(1 for word in NEGATIVE_KEYWORDS if word in lower),
        suggests_improvements=any(word in lower for word in IMPROVEMENT_KEYWORDS),
    )

    for pattern in SCORE_PATTERNS:
        match = pattern.search(raw_text)
        if match:
            value = int(match.group(1))
            if 0 <= value <= 100:
                signals.extracted_score = value
                break

    return signals


def _clamp(score: int) -> int:
    return max(0, min(100, score))


class FallbackHeuristicAnalyzer(Analyzer):
    """Scores a project from its structure alone.

    Usage:
        analyzer = FallbackHeuristicAnalyzer(config.fallback)
        result = analyzer.analyze_structure(project.path, raw_text=output)
    """

    def __init__(
        self,
        config: FallbackConfig | None = None,
        name: str = "structure",
        category: str = "structure",
    ) -> None:
        """Initialize the analyzer.

        Args:
            config: File classification settings (uses defaults if None)
            name: Pass name used by analyze()
            category: Category used by analyze()
        """
        super().__init__(name=name, category=category)
        self.config = config or FallbackConfig()
        self._extensions = {ext.lower() for ext in self.config.source_extensions}
        self._excluded = set(self.config.excluded_dirs)

    def analyze(self, project_path: Path) -> PassResult:
        """Analyze a project as a standalone structure pass."""
        return self.analyze_structure(project_path, name=self.name, category=self.category)

    # =========================================================================
    # Signals
    # =========================================================================

    def collect_signals(self, project_path: Path) -> StructureSignals:
        """Walk the project tree and collect structure signals.

        Args:
            project_path: Project root

        Returns:
            StructureSignals for the tree

        Raises:
            OSError: If the project root cannot be read
        """
        root = Path(project_path)
        if not root.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        signals = StructureSignals(
            has_build_descriptor=any(
                (root / name).is_file() for name in self.config.build_descriptors
            ),
            has_guide_document=any(
                (root / name).is_file() for name in self.config.guide_documents
            ),
        )

        def on_error(error: OSError) -> None:
            logger.debug("Skipping unreadable directory: %s", error)

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in self._excluded)
            relative_dir = Path(dirpath).relative_to(root)

            for filename in filenames:
                if Path(filename).suffix.lower() not in self._extensions:
                    continue

                relative = relative_dir / filename
                if is_test_file(relative):
                    signals.test_files += 1
                else:
                    signals.source_files += 1
                    signals.package_depth = max(signals.package_depth, len(relative.parts) - 1)

        return signals

    # =========================================================================
    # Scoring
    # =========================================================================

    def structure_score(self, signals: StructureSignals) -> int:
        """Additive structural score, clamped to 0..100."""
        score = BASE_SCORE

        if signals.source_files > 0:
            score += 20
            if signals.source_files >= 10:
                score += 10
            if signals.source_files >= 50:
                score += 5

        if signals.test_files > 0:
            score += 15
            if signals.test_ratio >= 0.5:
                score += 10
            if signals.test_ratio >= 0.8:
                score += 5

        if signals.has_build_descriptor:
            score += 5

        if signals.has_guide_document:
            score += 5

        if 2 <= signals.package_depth <= 5:
            score += 5

        return _clamp(score)

    def adjust_for_text(self, score: int, text: TextSignals) -> int:
        """Nudge a structural score with salvaged text signals.

        Args:
            score: Structural score
            text: Signals from the raw assistant output

        Returns:
            Adjusted score, blended 70/30 with any score found in the text
        """
        adjusted = score + text.positive * 3 - text.negative * 5
        if text.suggests_improvements:
            adjusted += 2
        adjusted = _clamp(adjusted)

        if text.extracted_score is not None:
            adjusted = (adjusted * STRUCTURE_WEIGHT + text.extracted_score * TEXT_WEIGHT) // (
                STRUCTURE_WEIGHT + TEXT_WEIGHT
            )

        return _clamp(adjusted)

    def missing_fundamentals(self, signals: StructureSignals) -> list[Violation]:
        """Violations for clearly missing project fundamentals."""
        violations: list[Violation] = []

        if signals.source_files == 0:
            violations.append(
                Violation("error", "", 0, "No source files found", category="structure")
            )

        if signals.test_files == 0:
            violations.append(
                Violation("warning", "", 0, "No test files found", category="testing")
            )
        elif signals.source_files and signals.test_ratio < LOW_TEST_RATIO:
            violations.append(
                Violation(
                    "info",
                    "",
                    0,
                    f"Low test-to-source ratio ({signals.test_ratio:.2f})",
                    category="testing",
                )
            )

        if not signals.has_build_descriptor:
            violations.append(
                Violation("warning", "", 0, "No build descriptor found", category="structure")
            )

        return violations

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze_structure(
        self,
        project_path: Path,
        raw_text: str | None = None,
        name: str = "fallback",
        category: str = "general",
        reason: str | None = None,
    ) -> PassResult:
        """Produce a PassResult from structure (and optional raw text).

        Args:
            project_path: Project root
            raw_text: Unparseable assistant output to salvage signals from
            name: Pass name for the result
            category: Category for the result
            reason: Why the fallback was used (included in the narrative)

        Returns:
            PassResult; a minimal fail result if the tree cannot be scanned
        """
        try:
            signals = self.collect_signals(project_path)
        except OSError as e:
            logger.error("Fallback analysis could not scan %s: %s", project_path, e)
            return PassResult(
                name=name,
                category=category,
                status=PassStatus.FAIL,
                score=0,
                summary=f"Fallback analysis failed: {e}",
                metrics={"ai_score": 0, "fallback_analysis_used": True, "error": str(e)},
            )

        structural = self.structure_score(signals)
        score = structural
        text_signals: TextSignals | None = None
        if raw_text and raw_text.strip():
            text_signals = scan_text(raw_text)
            score = self.adjust_for_text(structural, text_signals)

        violations = self.missing_fundamentals(signals)
        has_error = any(v.is_error for v in violations)
        status = PassStatus.FAIL if score < PASS_THRESHOLD or has_error else PassStatus.PASS

        metrics: dict[str, Any] = {
            "ai_score": score,
            "fallback_analysis_used": True,
            "structure_score": structural,
            "text_analysis_used": text_signals is not None,
            **signals.to_dict(),
        }
        if text_signals is not None and text_signals.extracted_score is not None:
            metrics["extracted_score"] = text_signals.extracted_score

        logger.info(
            "Fallback analysis for %s: score %d (structure %d, %d source, %d test files)",
            name,
            score,
            structural,
            signals.source_files,
            signals.test_files,
        )

        return PassResult(
            name=name,
            category=category,
            status=status,
            score=score,
            summary=self._narrative(score, signals, text_signals, reason),
            metrics=metrics,
            violations=violations,
        )

    def _narrative(
        self,
        score: int,
        signals: StructureSignals,
        text: TextSignals | None,
        reason: str | None,
    ) -> str:
        lines = [f"Score: {score}/100 (heuristic fallback)"]
        if reason:
            lines.append(f"Fallback used because: {reason}")
        lines.append("")
        lines.append(
            f"Source files: {signals.source_files}, test files: {signals.test_files} "
            f"(ratio {signals.test_ratio:.2f})"
        )
        lines.append(f"Build descriptor: {'yes' if signals.has_build_descriptor else 'no'}")
        lines.append(f"Guide document: {'yes' if signals.has_guide_document else 'no'}")
        lines.append(f"Package depth: {signals.package_depth}")
        if text is not None:
            lines.append(
                f"Salvaged text signals: {text.positive} positive, {text.negative} negative"
                + (f", score {text.extracted_score}" if text.extracted_score is not None else "")
            )
        return "\n".join(lines)
