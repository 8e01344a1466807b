"""Maps extracted payloads to normalized PassResults.

Every recognized field has a safe default so partial responses still produce
a usable result. Unknown fields are ignored.
"""

import logging
import math
from typing import Any

from qarun.assistant.errors import UnextractablePayloadError
from qarun.assistant.extractor import ExtractedPayload
from qarun.models.result import PassResult, PassStatus, Violation

logger = logging.getLogger(__name__)

# Scores below this fail the pass
PASS_THRESHOLD = 70

# Used when the payload has no score field
DEFAULT_SCORE = 100

# Used when the payload had to be synthesized
NEUTRAL_SCORE = 50

# Nested per-category score maps, in the order they are reported
COMPLIANCE_FIELDS = ("guideline_compliance", "category_scores")
COMPLIANCE_LABELS = {
    "tdd_score": "TDD",
    "architecture_score": "Architecture",
    "security_score": "Security",
    "quality_score": "Code quality",
    "testing_score": "Testing",
}

REQUIRED_VIOLATION_FIELDS = ("severity", "file", "line", "message")


def coerce_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    """Convert a score field to an int in 0..100.

    Args:
        value: Raw field value (number, numeric string, or None)
        default: Returned when the field is absent

    Returns:
        Clamped integer score; 0 if the value cannot be read as a number
    """
    if value is None:
        return default

    if isinstance(value, bool):
        logger.warning("Boolean score %r treated as 0", value)
        return 0

    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().removesuffix("/100").strip())
        except ValueError:
            logger.warning("Unparseable score %r treated as 0", value)
            return 0
    else:
        logger.warning("Unsupported score type %s treated as 0", type(value).__name__)
        return 0

    if math.isnan(number):
        return 0
    if not math.isfinite(number):
        return 100 if number > 0 else 0
    return max(0, min(100, round(number)))


def _coerce_line(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_violations(entries: Any, default_category: str = "") -> list[Violation]:
    """Parse the violations array, skipping malformed entries.

    Args:
        entries: Raw "violations" field
        default_category: Category used when an entry has no "type"

    Returns:
        Parsed violations in payload order
    """
    if not isinstance(entries, list):
        if entries is not None:
            logger.debug("Ignoring non-list violations field: %r", entries)
        return []

    violations: list[Violation] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.debug("Skipping malformed violation entry: %r", entry)
            continue

        missing = [key for key in REQUIRED_VIOLATION_FIELDS if key not in entry]
        if missing:
            logger.debug("Skipping violation missing %s: %r", ", ".join(missing), entry)
            continue

        violations.append(
            Violation(
                severity=str(entry["severity"]).strip().lower() or "info",
                file=str(entry["file"] or ""),
                line=_coerce_line(entry["line"]),
                message=str(entry["message"]),
                category=str(entry.get("type") or default_category),
            )
        )

    return violations


def _text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def parse_compliance(data: dict[str, Any]) -> dict[str, int]:
    """Read the nested per-category compliance score map.

    Args:
        data: Parsed payload

    Returns:
        Category key to score (empty if the payload has no map)
    """
    for field_name in COMPLIANCE_FIELDS:
        value = data.get(field_name)
        if isinstance(value, dict):
            return {
                str(key): coerce_score(score, default=0)
                for key, score in value.items()
                if score is not None
            }
    return {}


def compliance_label(key: str) -> str:
    """Human-readable label for a compliance key."""
    if key in COMPLIANCE_LABELS:
        return COMPLIANCE_LABELS[key]
    return key.removesuffix("_score").replace("_", " ").capitalize()


def build_narrative(
    score: int,
    summary: str,
    compliance: dict[str, int],
    strengths: list[str],
    recommendations: list[str],
) -> str:
    """Assemble the pass narrative.

    Order: score line, summary, compliance scores, strengths,
    recommendations. Empty sections are omitted.
    """
    sections = [f"Score: {score}/100"]

    if summary:
        sections.append(summary)

    if compliance:
        lines = ["Compliance scores:"]
        lines.extend(f"  - {compliance_label(k)}: {v}/100" for k, v in compliance.items())
        sections.append("\n".join(lines))

    if strengths:
        sections.append("\n".join(["Strengths:", *(f"  - {s}" for s in strengths)]))

    if recommendations:
        sections.append(
            "\n".join(["Recommendations:", *(f"  - {r}" for r in recommendations)])
        )

    return "\n\n".join(sections)


class ResultInterpreter:
    """Turns a validated payload into a PassResult.

    Status rule: fail if the score is below PASS_THRESHOLD or the payload
    reports any violation, otherwise pass.
    """

    def interpret(
        self,
        payload: ExtractedPayload,
        name: str,
        category: str,
    ) -> PassResult:
        """Interpret one payload.

        Args:
            payload: Output of ResponseExtractor.extract
            name: Pass name
            category: Pass category

        Returns:
            Normalized PassResult

        Raises:
            UnextractablePayloadError: If the payload is not valid
        """
        if not payload.valid or payload.data is None:
            raise UnextractablePayloadError(
                payload.reason or "payload failed validation", payload.raw_text
            )

        if payload.is_default:
            return self._neutral_result(payload, name, category)

        data = payload.data
        score = coerce_score(data.get("score"))
        summary = str(data.get("summary") or "").strip()
        violations = parse_violations(data.get("violations"), default_category=category)
        strengths = _text_list(data.get("strengths"))
        recommendations = _text_list(data.get("recommendations"))
        compliance = parse_compliance(data)

        status = PassStatus.FAIL if score < PASS_THRESHOLD or violations else PassStatus.PASS

        metrics: dict[str, Any] = {
            "ai_score": score,
            "violations_found": len(violations),
            "strengths_count": len(strengths),
            "recommendations_count": len(recommendations),
            "extraction_strategy": payload.strategy.value,
        }
        metrics.update(compliance)

        return PassResult(
            name=name,
            category=category,
            status=status,
            score=score,
            summary=build_narrative(score, summary, compliance, strengths, recommendations),
            metrics=metrics,
            violations=violations,
        )

    def _neutral_result(
        self,
        payload: ExtractedPayload,
        name: str,
        category: str,
    ) -> PassResult:
        """Informational pass result for a synthesized payload."""
        data = payload.data or {}
        excerpt = str(data.get("raw_output") or "").strip()

        summary = str(data.get("summary") or "")
        if excerpt:
            summary += f"\n\nRaw output excerpt:\n{excerpt}"

        return PassResult(
            name=name,
            category=category,
            status=PassStatus.PASS,
            score=NEUTRAL_SCORE,
            summary=build_narrative(NEUTRAL_SCORE, summary, {}, [], []),
            metrics={
                "ai_score": NEUTRAL_SCORE,
                "violations_found": 0,
                "extraction_strategy": payload.strategy.value,
                "json_parsing_failed": True,
            },
        )
