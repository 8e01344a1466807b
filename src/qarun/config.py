"""qarun configuration system.

Configuration is YAML-based with minimal CLI overrides (--mode, --output, --format).
Supports environment variable substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.qarun/config.yaml
3. ./qarun.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_MODEL = "gemini-2.0-flash-thinking-exp"

VALID_MODES = {"unified", "multistage", "guides"}
VALID_FORMATS = {"markdown", "json"}

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class AssistantConfig:
    """AI assistant CLI configuration.

    The assistant is invoked as:
    <command> [extra_args...] <model_flag> <model> <prompt_flag> <prompt>

    Attributes:
        command: Assistant executable
        model: Model identifier passed with model_flag (omitted if empty)
        model_flag: Flag that selects the model
        prompt_flag: Flag that carries the prompt text
        extra_args: Arguments inserted right after the command
        version_args: Arguments for the pre-flight version check
        preflight_timeout: Seconds allowed for the version check
        pass_timeout: Seconds allowed for a full-project pass
        guide_timeout: Seconds allowed for a guide-specific pass
        stage_timeout: Seconds allowed for one multi-stage sub-pass
        enabled: Whether AI passes may invoke the assistant at all
    """

    command: str = "gemini"
    model: str = DEFAULT_MODEL
    model_flag: str = "-m"
    prompt_flag: str = "-p"
    extra_args: list[str] = field(default_factory=list)
    version_args: list[str] = field(default_factory=lambda: ["--version"])
    preflight_timeout: float = 5.0
    pass_timeout: float = 600.0
    guide_timeout: float = 300.0
    stage_timeout: float = 180.0
    enabled: bool = True

    def __post_init__(self) -> None:
        """Validate assistant configuration."""
        if not self.command:
            raise ValueError("Assistant command must not be empty")

        for name in ("preflight_timeout", "pass_timeout", "guide_timeout", "stage_timeout"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"Assistant {name} must be positive (got {value})")


@dataclass
class AnalysisConfig:
    """Pass selection configuration.

    Attributes:
        mode: unified (one pass), multistage (weighted stages), guides (one pass per guide)
        skip_unavailable: Skip AI passes instead of using the fallback when the assistant is missing
        guides_dir: Directory of guide documents, relative to the project
        disabled_passes: Pass names that are reported as skipped
        structure_pass: Append a heuristic project-structure pass
    """

    mode: str = "unified"
    skip_unavailable: bool = False
    guides_dir: str = ".qarun/guides"
    disabled_passes: list[str] = field(default_factory=list)
    structure_pass: bool = False

    def __post_init__(self) -> None:
        """Validate analysis configuration."""
        if self.mode not in VALID_MODES:
            raise ValueError(f"Invalid analysis mode: {self.mode}. Valid: {sorted(VALID_MODES)}")


@dataclass
class FallbackConfig:
    """Heuristic analyzer configuration.

    Attributes:
        source_extensions: File suffixes counted as source files
        build_descriptors: File names that mark a build setup
        guide_documents: File names that mark a project guide for assistants
        excluded_dirs: Directory names never scanned
    """

    source_extensions: list[str] = field(
        default_factory=lambda: [
            ".py", ".java", ".kt", ".scala", ".go", ".rs", ".js", ".jsx",
            ".ts", ".tsx", ".rb", ".php", ".cs", ".c", ".cc", ".cpp", ".h",
            ".hpp", ".swift",
        ]
    )
    build_descriptors: list[str] = field(
        default_factory=lambda: [
            "pyproject.toml", "setup.py", "setup.cfg", "requirements.txt",
            "pom.xml", "build.gradle", "build.gradle.kts", "package.json",
            "Cargo.toml", "go.mod", "Gemfile", "composer.json", "Makefile",
            "CMakeLists.txt",
        ]
    )
    guide_documents: list[str] = field(
        default_factory=lambda: ["CLAUDE.md", "GEMINI.md", "AGENTS.md"]
    )
    excluded_dirs: list[str] = field(
        default_factory=lambda: [
            ".git", ".hg", ".svn", "node_modules", "__pycache__", ".venv",
            "venv", "build", "dist", "target", ".tox", ".qarun",
        ]
    )


@dataclass
class ReportConfig:
    """Report output configuration.

    Attributes:
        output_dir: Directory for written reports, relative to the project
        formats: Report formats to write (markdown, json)
    """

    output_dir: str = "qa-reports"
    formats: list[str] = field(default_factory=lambda: ["markdown", "json"])

    def __post_init__(self) -> None:
        """Validate report configuration."""
        invalid = set(self.formats) - VALID_FORMATS
        if invalid:
            raise ValueError(
                f"Invalid report format(s): {sorted(invalid)}. Valid: {sorted(VALID_FORMATS)}"
            )


@dataclass
class QaConfig:
    """Top-level qarun configuration.

    Attributes:
        assistant: Assistant CLI settings
        analysis: Pass selection
        fallback: Heuristic analyzer settings
        report: Report output
    """

    assistant: AssistantConfig = field(default_factory=AssistantConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    report: ReportConfig = field(default_factory=ReportConfig)

    # Set by load_config
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def substitute_env_vars(value: Any) -> Any:
    """Substitute ${VAR} references in config values.

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return _ENV_PATTERN.sub(replace_var, value)

    if isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    if isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.qarun/config.yaml
    2. ./qarun.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    start_path = (start_path or Path.cwd()).resolve()

    for candidate in (start_path / ".qarun" / "config.yaml", start_path / "qarun.yaml"):
        if candidate.is_file():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return section


def _string_list(section: dict[str, Any], key: str, default: list[str]) -> list[str]:
    value = section.get(key, default)
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def load_config_from_dict(data: dict[str, Any]) -> QaConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        QaConfig instance

    Raises:
        ValueError: If a value is invalid or a referenced variable is unset
    """
    data = substitute_env_vars(data)
    config = QaConfig()

    if "assistant" in data:
        section = _section(data, "assistant")
        defaults = config.assistant
        config.assistant = AssistantConfig(
            command=str(section.get("command", defaults.command)),
            model=str(section.get("model", defaults.model) or ""),
            model_flag=str(section.get("model_flag", defaults.model_flag)),
            prompt_flag=str(section.get("prompt_flag", defaults.prompt_flag)),
            extra_args=_string_list(section, "extra_args", defaults.extra_args),
            version_args=_string_list(section, "version_args", defaults.version_args),
            preflight_timeout=float(section.get("preflight_timeout", defaults.preflight_timeout)),
            pass_timeout=float(section.get("pass_timeout", defaults.pass_timeout)),
            guide_timeout=float(section.get("guide_timeout", defaults.guide_timeout)),
            stage_timeout=float(section.get("stage_timeout", defaults.stage_timeout)),
            enabled=bool(section.get("enabled", defaults.enabled)),
        )

    if "analysis" in data:
        section = _section(data, "analysis")
        defaults_analysis = config.analysis
        config.analysis = AnalysisConfig(
            mode=str(section.get("mode", defaults_analysis.mode)),
            skip_unavailable=bool(section.get("skip_unavailable", False)),
            guides_dir=str(section.get("guides_dir", defaults_analysis.guides_dir)),
            disabled_passes=_string_list(section, "disabled_passes", []),
            structure_pass=bool(section.get("structure_pass", False)),
        )

    if "fallback" in data:
        section = _section(data, "fallback")
        defaults_fallback = config.fallback
        config.fallback = FallbackConfig(
            source_extensions=_string_list(
                section, "source_extensions", defaults_fallback.source_extensions
            ),
            build_descriptors=_string_list(
                section, "build_descriptors", defaults_fallback.build_descriptors
            ),
            guide_documents=_string_list(
                section, "guide_documents", defaults_fallback.guide_documents
            ),
            excluded_dirs=_string_list(section, "excluded_dirs", defaults_fallback.excluded_dirs),
        )

    if "report" in data:
        section = _section(data, "report")
        config.report = ReportConfig(
            output_dir=str(section.get("output_dir", config.report.output_dir)),
            formats=_string_list(section, "formats", config.report.formats),
        )

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
    start_path: Path | None = None,
) -> QaConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified
        start_path: Directory to search from (defaults to cwd)

    Returns:
        QaConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path: Path | None = config_path
    elif auto_discover:
        found_path = find_config_file(start_path)
    else:
        found_path = None

    if found_path is None:
        return QaConfig()

    with open(found_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {found_path}")

    config = load_config_from_dict(data)
    config._config_path = found_path
    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return f'''# qarun configuration

# AI assistant CLI (invoked once per pass, never in parallel)
assistant:
  command: "gemini"
  model: "{DEFAULT_MODEL}"
  # extra_args: ["--yolo"]
  preflight_timeout: 5     # seconds for "<command> --version"
  pass_timeout: 600        # full-project pass
  guide_timeout: 300       # one guide document
  stage_timeout: 180       # one multi-stage sub-pass
  enabled: true

# Pass selection
analysis:
  mode: "unified"          # unified, multistage, guides
  skip_unavailable: false  # true: skip AI passes when the assistant is missing
  guides_dir: ".qarun/guides"
  disabled_passes: []
  structure_pass: false    # add a heuristic project-structure pass

# Reports
report:
  output_dir: "qa-reports"
  formats: ["markdown", "json"]
'''
