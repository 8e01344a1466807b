"""Error taxonomy for assistant passes.

Every error here is caught at the pass boundary by the pipeline and turned
into a PassResult; none of them escapes a run.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qarun.assistant.invoker import ProcessInvocation


class AssistantError(Exception):
    """Base class for failures while talking to the assistant CLI."""

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        self.message = message
        super().__init__(message)


class ToolUnavailableError(AssistantError):
    """Raised when the pre-flight check finds no usable assistant."""

    def __init__(self, tool_name: str, message: str | None = None) -> None:
        super().__init__(tool_name, message or f"Assistant not available: {tool_name}")


class ProcessSpawnError(AssistantError):
    """Raised when the assistant process cannot be started."""

    def __init__(self, tool_name: str, reason: str) -> None:
        super().__init__(tool_name, f"Could not start {tool_name}: {reason}")


class ProcessTimeoutError(AssistantError):
    """Raised when the assistant was killed for exceeding its timeout."""

    def __init__(self, tool_name: str, timeout: float, invocation: "ProcessInvocation") -> None:
        self.timeout = timeout
        self.invocation = invocation
        super().__init__(
            tool_name,
            f"{tool_name} did not finish within {timeout:g}s and was terminated",
        )


class EmptyOutputError(AssistantError):
    """Raised when the assistant finished without printing anything."""

    def __init__(self, tool_name: str, invocation: "ProcessInvocation") -> None:
        self.invocation = invocation
        message = f"{tool_name} produced no output"
        if invocation.exit_code not in (None, 0):
            message += f" (exit code: {invocation.exit_code})"
        super().__init__(tool_name, message)


class UnextractablePayloadError(AssistantError):
    """Raised when no structured payload could be recovered from a response."""

    def __init__(self, reason: str, raw_text: str = "") -> None:
        self.reason = reason
        self.raw_text = raw_text
        super().__init__("extractor", f"Unextractable payload: {reason}")
