"""Prompt builders for assistant passes.

Every builder takes (project_path, context) and returns the full prompt text.
All prompts end with the same response-format block so the extractor and
interpreter see one response shape regardless of pass type.
"""

from pathlib import Path

# Maximum characters of a guide document embedded in a prompt
GUIDE_TEXT_LIMIT = 12_000

RESPONSE_FORMAT = """Respond with a single JSON object and nothing else:

```json
{
  "score": <integer 0-100>,
  "summary": "<two or three sentence overall assessment>",
  "violations": [
    {"severity": "error|warning|info", "file": "<relative path>", "line": <integer>,
     "message": "<what is wrong>", "type": "<category>"}
  ],
  "strengths": ["<what the project does well>"],
  "recommendations": ["<concrete improvement>"]%(compliance)s
}
```

Report only findings you can point to in the code. Use line 0 for project-wide findings."""

COMPLIANCE_BLOCK = """,
  "guideline_compliance": {
    "quality_score": <0-100>, "architecture_score": <0-100>,
    "tdd_score": <0-100>, "security_score": <0-100>
  }"""


def response_format(with_compliance: bool = False) -> str:
    """Return the response-format block appended to every prompt."""
    return RESPONSE_FORMAT % {"compliance": COMPLIANCE_BLOCK if with_compliance else ""}


def _context_block(context: str) -> str:
    if not context.strip():
        return ""
    return f"=== Project context ===\n{context.strip()}\n\n"


def build_unified_prompt(project_path: Path, context: str) -> str:
    """Single-shot review covering all quality areas."""
    return (
        "You are an expert code quality reviewer.\n\n"
        f"{_context_block(context)}"
        "=== Request ===\n"
        f"Review the project rooted at {project_path} as a whole.\n\n"
        "Evaluate:\n"
        "1. Code quality: naming, complexity, duplication\n"
        "2. Architecture: layering, dependency direction, patterns\n"
        "3. Testing: coverage of important logic, test quality, TDD evidence\n"
        "4. Security: input validation, authentication, handling of secrets\n\n"
        f"{response_format(with_compliance=True)}"
    )


def build_code_quality_prompt(project_path: Path, context: str) -> str:
    """Stage prompt: code quality."""
    return (
        "Analyze the code quality of this project.\n\n"
        f"{_context_block(context)}"
        f"Target: {project_path}\n\n"
        "Criteria:\n"
        "1. Naming: clarity and consistency of modules, classes, functions, variables\n"
        "2. Complexity: function length, branching, single responsibility\n"
        "3. Duplication: repeated logic that should be shared\n"
        "4. Readability: structure and comment quality\n\n"
        f"{response_format()}"
    )


def build_architecture_prompt(project_path: Path, context: str) -> str:
    """Stage prompt: architecture."""
    return (
        "Analyze how well this project follows its architecture.\n\n"
        f"{_context_block(context)}"
        f"Target: {project_path}\n\n"
        "Criteria:\n"
        "1. Layer separation: domain, application and infrastructure are distinct\n"
        "2. Dependency direction: outer layers depend on inner layers only\n"
        "3. Abstractions: implementations hidden behind interfaces where it matters\n"
        "4. Package structure: cohesive modules grouped by feature or domain\n"
        "5. Cycles: no circular imports between packages\n\n"
        f"{response_format()}"
    )


def build_testing_prompt(project_path: Path, context: str) -> str:
    """Stage prompt: testing."""
    return (
        "Analyze the test suite of this project.\n\n"
        f"{_context_block(context)}"
        f"Target: {project_path}\n\n"
        "Criteria:\n"
        "1. Coverage: important business logic is exercised\n"
        "2. Quality: tests assert meaningful behavior and are reliable\n"
        "3. Structure: arrange/act/assert is easy to follow\n"
        "4. Naming: test names state the expected behavior\n"
        "5. Isolation: tests do not depend on each other or on ordering\n\n"
        f"{response_format()}"
    )


def build_security_prompt(project_path: Path, context: str) -> str:
    """Stage prompt: security."""
    return (
        "Analyze this project for security weaknesses.\n\n"
        f"{_context_block(context)}"
        f"Target: {project_path}\n\n"
        "Criteria:\n"
        "1. Input validation on every external input\n"
        "2. Authentication and authorization checks\n"
        "3. Secrets: no hard-coded credentials or tokens\n"
        "4. Error handling that does not leak sensitive details\n"
        "5. Logging that never records sensitive values\n"
        "6. Injection: parameterized queries, escaped output\n\n"
        f"{response_format()}"
    )


def build_guide_prompt(
    project_path: Path,
    context: str,
    guide_name: str = "",
    guide_text: str = "",
) -> str:
    """Review the project against one guide document.

    Bind guide_name and guide_text with functools.partial to get a
    (project_path, context) builder.
    """
    text = guide_text.strip()
    if len(text) > GUIDE_TEXT_LIMIT:
        text = text[:GUIDE_TEXT_LIMIT] + "\n[... guide truncated ...]"

    return (
        f"Review the project rooted at {project_path} strictly against the "
        f'guide "{guide_name}" below. Ignore concerns the guide does not cover.\n\n'
        f"{_context_block(context)}"
        f"=== Guide: {guide_name} ===\n{text}\n\n"
        "Score how closely the project follows this guide and list each departure "
        "from it as a violation.\n\n"
        f"{response_format()}"
    )


STAGE_PROMPTS = {
    "code_quality": build_code_quality_prompt,
    "architecture": build_architecture_prompt,
    "testing": build_testing_prompt,
    "security": build_security_prompt,
}
