"""qarun CLI interface.

Commands:
- analyze: Run the quality analysis passes and write reports
- check: Validate project and assistant availability
- init: Initialize qarun configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines for CI/CD
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from qarun import __version__
from qarun.config import VALID_FORMATS, VALID_MODES, QaConfig, create_default_config, load_config
from qarun.utils.logging import configure_from_cli, get_logger

app = typer.Typer(
    name="qarun",
    help="Resilient AI-assisted code quality analysis",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: QaConfig | None = None
_config_path: Path | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"qarun {__version__}")
        raise typer.Exit()


def _load(project: Path) -> QaConfig:
    """Return the configuration for a project.

    An explicit --config wins; otherwise the project directory is searched.
    """
    if _config_path is not None and _config is not None:
        return _config

    try:
        return load_config(config_path=_config_path, start_path=project)
    except (FileNotFoundError, ValueError) as e:
        _logger.error("Failed to load config: %s", e)
        raise typer.Exit(1)


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Enable CI mode with JSON log lines"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """qarun - Resilient AI-assisted code quality analysis.

    Runs AI review passes one at a time against a project, falls back to
    heuristics when the assistant cannot help, and writes one combined report.
    """
    global _config, _config_path

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    _config_path = config
    _config = None
    if config is not None:
        try:
            _config = load_config(config_path=config)
            _logger.debug("Loaded config from: %s", config)
        except (FileNotFoundError, ValueError) as e:
            _logger.error("Failed to load config: %s", e)
            raise typer.Exit(1)


# =============================================================================
# analyze command
# =============================================================================


@app.command()
def analyze(
    project: Annotated[
        Path,
        typer.Option(
            "--project",
            "-p",
            help="Project root to analyze",
            exists=True,
            file_okay=False,
        ),
    ] = Path("."),
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Pass mode: unified, multistage, guides"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Report directory (default from config)"),
    ] = None,
    formats: Annotated[
        list[str] | None,
        typer.Option("--format", "-f", help="Report format (repeatable): markdown, json"),
    ] = None,
    skip_unavailable: Annotated[
        bool,
        typer.Option(
            "--skip-unavailable",
            help="Skip AI passes instead of using heuristics when the assistant is missing",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Print the report as JSON instead of the summary"),
    ] = False,
) -> None:
    """Run quality analysis on a project.

    Exit codes:
        0: All passes passed (skipped passes do not count)
        1: At least one pass failed or errored, or configuration is invalid
    """
    from qarun.models import Project
    from qarun.passes import build_catalog
    from qarun.pipeline import AnalysisPipeline
    from qarun.templates import ReportRenderer

    project_path = project.resolve()
    config = _load(project_path)

    if mode is not None:
        if mode not in VALID_MODES:
            _logger.error("Invalid mode: %s. Valid: %s", mode, ", ".join(sorted(VALID_MODES)))
            raise typer.Exit(1)
        config.analysis.mode = mode

    if skip_unavailable:
        config.analysis.skip_unavailable = True

    report_formats = formats or config.report.formats
    invalid = set(report_formats) - VALID_FORMATS
    if invalid:
        _logger.error("Invalid report format(s): %s", ", ".join(sorted(invalid)))
        raise typer.Exit(1)

    passes = build_catalog(config, project_path)
    pipeline = AnalysisPipeline(config)
    report = pipeline.run(Project.from_path(project_path), passes)

    output_dir = output or project_path / config.report.output_dir
    written = ReportRenderer().write(report, output_dir, report_formats)

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        icon = "✅" if report.passed else "❌"
        typer.echo(f"\n{icon} Quality analysis {report.status.value.upper()}\n")
        for index, result in enumerate(report.results, start=1):
            score = f" {result.score}/100" if result.score is not None else ""
            typer.echo(
                f"  {result.status.glyph} [{index}/{len(report.results)}] "
                f"{result.name} ({result.category}): {result.status.value}{score}"
            )
        typer.echo()
        if report.run_metrics and report.run_metrics.total_invocations:
            typer.echo(report.run_metrics.format_summary())
            typer.echo()
        for path in written:
            typer.echo(f"📄 {path}")

    if not report.passed:
        raise typer.Exit(1)


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project root", file_okay=False),
    ] = Path("."),
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Validate project and assistant availability.

    Exit codes:
        0: Everything available
        1: A required check failed (project path)
        2: Assistant or guides missing (heuristic fallback will be used)
    """
    from qarun.utils.preflight import PreflightChecker

    project_path = project.resolve()
    config = _load(project_path) if project_path.is_dir() else (_config or QaConfig())
    result = PreflightChecker(config).check_all(project_path)

    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        typer.echo("\n🔍 Preflight Check Results\n")
        for item in result.checks:
            status = "✅" if item.available else "❌"
            version_str = f" ({item.version})" if item.version else ""
            required_str = " [required]" if item.required else " [optional]"
            typer.echo(f"  {status} {item.name}{version_str}{required_str}")
            if item.message:
                typer.echo(f"     └─ {item.message}")
        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("❌ Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"   • {error}")
        raise typer.Exit(1)

    if result.warnings:
        if not json_output:
            typer.echo("⚠️  Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"   • {warning}")
        raise typer.Exit(2)

    if not json_output:
        typer.echo("✅ Preflight check PASSED")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    project: Annotated[
        Path,
        typer.Option(
            "--project",
            "-p",
            help="Project root",
            exists=True,
            file_okay=False,
        ),
    ] = Path("."),
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing configuration"),
    ] = False,
) -> None:
    """Create .qarun/config.yaml and the guides directory."""
    config_dir = project.resolve() / ".qarun"
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        typer.echo(f"❌ Configuration already exists: {config_file} (use --force to overwrite)")
        raise typer.Exit(1)

    (config_dir / "guides").mkdir(parents=True, exist_ok=True)
    config_file.write_text(create_default_config(), encoding="utf-8")

    typer.echo(f"✅ Created {config_file}")
    typer.echo(f"   Add guide documents (*.md) to {config_dir / 'guides'} for guides mode")
