"""Structured payload extraction from free-form assistant output.

Assistant CLIs wrap their JSON in prose, markdown fences, credential banners
and log lines. The extractor tries four strategies in priority order and
returns the first candidate that validates:

1. Fenced block: a ```json fence, else the first balanced {...} span
2. Filtered lines: drop noise lines, then take the first balanced span
3. Naive span: everything from the first "{" to the last "}"
4. Default structure: a synthesized payload that records the failure

Strategy 4 cannot fail, so extract() always returns a valid payload.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

# Score carried by the synthesized default payload
DEFAULT_PAYLOAD_SCORE = 50

# Characters of raw output kept in the default payload for diagnostics
RAW_EXCERPT_LIMIT = 500

# Lines starting with any of these are log/system noise, not payload
NOISE_PREFIXES: tuple[str, ...] = (
    "Loaded",
    "WARNING",
    "INFO",
    "ERROR",
    "DEBUG",
    "I will",
    "Let me",
    "Using cached credentials",
    "Authentication successful",
    "Connected to",
    "Model initialized",
)

_FENCE_PATTERN = re.compile(r"```json[^\n]*\n(.*?)```", re.DOTALL | re.IGNORECASE)


class ExtractionStrategy(Enum):
    """Algorithm that produced a payload candidate."""

    FENCED_BLOCK = "fenced_block"
    FILTERED_LINES = "filtered_lines"
    NAIVE_SPAN = "naive_span"
    DEFAULT_STRUCTURE = "default_structure"


@dataclass(frozen=True)
class ExtractedPayload:
    """Tagged outcome of one extraction attempt.

    Attributes:
        raw_text: Candidate text the strategy produced
        strategy: Strategy that produced the candidate
        valid: Whether the candidate parsed as a JSON object
        reason: Diagnostic message (why it failed, or what failed before it)
        data: Parsed object when valid
    """

    raw_text: str
    strategy: ExtractionStrategy
    valid: bool
    reason: str | None = None
    data: dict[str, Any] | None = field(default=None, compare=False, hash=False)

    @classmethod
    def ok(
        cls,
        raw_text: str,
        strategy: ExtractionStrategy,
        data: dict[str, Any],
        reason: str | None = None,
    ) -> "ExtractedPayload":
        """Create a valid payload."""
        return cls(raw_text=raw_text, strategy=strategy, valid=True, reason=reason, data=data)

    @classmethod
    def invalid(
        cls,
        raw_text: str,
        strategy: ExtractionStrategy,
        reason: str,
    ) -> "ExtractedPayload":
        """Create an invalid payload carrying its diagnostic."""
        return cls(raw_text=raw_text, strategy=strategy, valid=False, reason=reason)

    @property
    def is_default(self) -> bool:
        """Return True if the payload was synthesized by strategy 4."""
        return self.strategy == ExtractionStrategy.DEFAULT_STRUCTURE


# =============================================================================
# Strategy helpers
# =============================================================================


def _balanced_span(text: str, start: int) -> str | None:
    """Return text[start:end] where brace depth first returns to zero.

    Plain depth counting: braces inside JSON strings are counted too.
    """
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def is_noise_line(line: str) -> bool:
    """Return True for blank lines and known log/banner lines."""
    stripped = line.strip()
    return not stripped or stripped.startswith(NOISE_PREFIXES)


def extract_fenced_block(text: str) -> str | None:
    """Strategy 1: fenced ```json block, else the first balanced span.

    Args:
        text: Raw assistant output

    Returns:
        Candidate text, or None if nothing brace-delimited was found
    """
    match = _FENCE_PATTERN.search(text)
    if match:
        return match.group(1).strip()

    start = text.find("{")
    if start == -1:
        return None
    return _balanced_span(text, start)


def extract_filtered_lines(text: str) -> str | None:
    """Strategy 2: skip noise lines, then balance braces line by line.

    Args:
        text: Raw assistant output

    Returns:
        Candidate text, or None if no balanced block survives filtering
    """
    collected: list[str] = []
    depth = 0
    started = False

    for line in text.splitlines():
        if is_noise_line(line):
            continue

        if not started:
            brace = line.find("{")
            if brace == -1:
                continue
            line = line[brace:]
            started = True

        collected.append(line.strip())
        depth += line.count("{") - line.count("}")
        if depth <= 0:
            return _balanced_span("\n".join(collected), 0)

    return None


def extract_naive_span(text: str) -> str | None:
    """Strategy 3: first "{" to last "}", regardless of balance.

    Args:
        text: Raw assistant output

    Returns:
        Candidate text, or None if the text lacks either brace
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def build_default_payload(raw_text: str) -> str:
    """Strategy 4: synthesize a payload that records the parse failure.

    The raw output is truncated before json.dumps escapes it.

    Args:
        raw_text: Raw assistant output

    Returns:
        JSON object text that always validates
    """
    return json.dumps(
        {
            "violations": [],
            "score": DEFAULT_PAYLOAD_SCORE,
            "summary": (
                "The assistant response could not be parsed as JSON; "
                "review the raw output for details."
            ),
            "raw_output": raw_text[:RAW_EXCERPT_LIMIT],
        },
        ensure_ascii=False,
    )


def validate_candidate(candidate: str | None, strategy: ExtractionStrategy) -> ExtractedPayload:
    """Check that a candidate is a well-formed JSON object.

    Args:
        candidate: Text produced by a strategy (None if it found nothing)
        strategy: Strategy that produced the candidate

    Returns:
        Valid payload with parsed data, or an invalid one with a reason
    """
    if candidate is None:
        return ExtractedPayload.invalid("", strategy, "no brace-delimited block found")

    text = candidate.strip()
    if not text.startswith("{") or not text.endswith("}"):
        return ExtractedPayload.invalid(text, strategy, "candidate is not delimited by braces")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return ExtractedPayload.invalid(
            text, strategy, f"malformed JSON at line {e.lineno} column {e.colno}: {e.msg}"
        )
    except RecursionError:
        return ExtractedPayload.invalid(text, strategy, "JSON nested too deeply")

    if not isinstance(data, dict):
        return ExtractedPayload.invalid(text, strategy, "JSON value is not an object")

    return ExtractedPayload.ok(text, strategy, data)


# =============================================================================
# Extractor
# =============================================================================


class ResponseExtractor:
    """Locates the structured payload inside raw assistant output.

    Usage:
        extractor = ResponseExtractor()
        payload = extractor.extract(invocation.output_text)
        if payload.is_default:
            ...
    """

    _STRATEGIES = (
        (ExtractionStrategy.FENCED_BLOCK, extract_fenced_block),
        (ExtractionStrategy.FILTERED_LINES, extract_filtered_lines),
        (ExtractionStrategy.NAIVE_SPAN, extract_naive_span),
    )

    def extract(self, raw_text: str) -> ExtractedPayload:
        """Run the strategies in order and return the first valid payload.

        Never raises; falls back to the default structure.

        Args:
            raw_text: Raw assistant output

        Returns:
            A valid ExtractedPayload
        """
        failures: list[str] = []

        for strategy, extract_candidate in self._STRATEGIES:
            payload = validate_candidate(extract_candidate(raw_text), strategy)
            if payload.valid:
                logger.debug("Payload extracted with %s strategy", strategy.value)
                return payload
            failures.append(f"{strategy.value}: {payload.reason}")
            logger.debug("Extraction strategy %s failed: %s", strategy.value, payload.reason)

        logger.warning("No JSON payload found in assistant output, using default structure")
        default = validate_candidate(
            build_default_payload(raw_text), ExtractionStrategy.DEFAULT_STRUCTURE
        )
        return ExtractedPayload.ok(
            default.raw_text,
            ExtractionStrategy.DEFAULT_STRUCTURE,
            default.data or {},
            reason="; ".join(failures),
        )
