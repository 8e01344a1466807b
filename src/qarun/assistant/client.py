"""AI assistant CLI client.

Wraps ProcessInvoker with the assistant's command-line contract and maps
process outcomes onto the error taxonomy:
- timeout -> ProcessTimeoutError
- nothing on either stream -> EmptyOutputError
- cannot start -> ProcessSpawnError
A non-zero exit code with usable output is logged and returned.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from qarun.assistant.errors import (
    EmptyOutputError,
    ProcessSpawnError,
    ProcessTimeoutError,
    ToolUnavailableError,
)
from qarun.assistant.invoker import ProcessInvoker
from qarun.config import AssistantConfig

logger = logging.getLogger(__name__)


@dataclass
class AssistantResponse:
    """Text returned by one assistant call.

    Attributes:
        text: Analysis text (stdout, or stderr when stdout was blank)
        exit_code: Process exit code
        duration: Seconds the call took
        prompt_length: Characters in the prompt that was sent
    """

    text: str
    exit_code: int | None
    duration: float
    prompt_length: int = 0


class AssistantClient:
    """Invokes the configured assistant CLI one prompt at a time.

    Usage:
        client = AssistantClient(config.assistant)
        if client.check_available():
            response = client.complete(prompt, project.path, timeout=600)
    """

    def __init__(
        self,
        config: AssistantConfig | None = None,
        invoker: ProcessInvoker | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Assistant configuration (uses defaults if None)
            invoker: Process invoker (created if None)
        """
        self.config = config or AssistantConfig()
        self.invoker = invoker or ProcessInvoker()

    @property
    def name(self) -> str:
        """Assistant command name."""
        return self.config.command

    def build_command(self, prompt: str) -> list[str]:
        """Build the argument vector for a prompt.

        Args:
            prompt: Full prompt text

        Returns:
            Command followed by its arguments
        """
        command = [self.config.command, *self.config.extra_args]
        if self.config.model:
            command.extend([self.config.model_flag, self.config.model])
        command.extend([self.config.prompt_flag, prompt])
        return command

    def get_version(self, working_dir: Path | None = None) -> str | None:
        """Run the version check.

        Args:
            working_dir: Directory to run in (defaults to cwd)

        Returns:
            First line of the version output, or None if the check failed
        """
        command = [self.config.command, *self.config.extra_args, *self.config.version_args]
        try:
            invocation = self.invoker.invoke(
                command,
                working_dir or Path.cwd(),
                self.config.preflight_timeout,
            )
        except ProcessSpawnError as e:
            logger.debug("Version check could not start: %s", e)
            return None

        if not invocation.succeeded:
            logger.debug(
                "Version check failed: exit=%s timed_out=%s",
                invocation.exit_code,
                invocation.timed_out,
            )
            return None

        lines = invocation.output_text.strip().splitlines()
        return lines[0].strip() if lines else ""

    def check_available(self, working_dir: Path | None = None) -> bool:
        """Return True if the assistant answers its version check in time."""
        if not self.config.enabled:
            logger.debug("Assistant disabled in configuration")
            return False
        return self.get_version(working_dir) is not None

    def require_available(self, working_dir: Path | None = None) -> str:
        """Run the version check and raise if it fails.

        Returns:
            Version string

        Raises:
            ToolUnavailableError: If the assistant is disabled or not answering
        """
        if not self.config.enabled:
            raise ToolUnavailableError(self.name, "Assistant disabled in configuration")

        version = self.get_version(working_dir)
        if version is None:
            raise ToolUnavailableError(
                self.name,
                f"{self.name} did not answer '{' '.join(self.config.version_args)}' "
                f"within {self.config.preflight_timeout:g}s",
            )
        return version

    def complete(self, prompt: str, working_dir: Path, timeout: float) -> AssistantResponse:
        """Send one prompt and wait for the answer.

        Args:
            prompt: Full prompt text
            working_dir: Project root (the assistant reads files from here)
            timeout: Seconds before the process is killed

        Returns:
            AssistantResponse with the analysis text

        Raises:
            ProcessSpawnError: If the assistant cannot be started
            ProcessTimeoutError: If the assistant was killed by the timeout
            EmptyOutputError: If both output streams were blank
        """
        invocation = self.invoker.invoke(self.build_command(prompt), working_dir, timeout)

        if invocation.timed_out:
            raise ProcessTimeoutError(self.name, timeout, invocation)

        if invocation.is_empty:
            raise EmptyOutputError(self.name, invocation)

        if invocation.exit_code != 0:
            logger.warning(
                "%s exited with code %s, interpreting its output anyway",
                self.name,
                invocation.exit_code,
            )

        return AssistantResponse(
            text=invocation.output_text,
            exit_code=invocation.exit_code,
            duration=invocation.duration,
            prompt_length=len(prompt),
        )
