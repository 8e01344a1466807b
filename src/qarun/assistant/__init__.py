"""AI assistant integration.

Modules:
- invoker: Synchronous process execution with hard timeouts
- client: Assistant command-line contract and pre-flight check
- extractor: Multi-strategy JSON payload extraction
- interpreter: Payload to PassResult mapping
- prompts: Prompt builders for each pass type
- errors: Error taxonomy caught at the pass boundary
"""

from qarun.assistant.client import AssistantClient, AssistantResponse
from qarun.assistant.errors import (
    AssistantError,
    EmptyOutputError,
    ProcessSpawnError,
    ProcessTimeoutError,
    ToolUnavailableError,
    UnextractablePayloadError,
)
from qarun.assistant.extractor import ExtractedPayload, ExtractionStrategy, ResponseExtractor
from qarun.assistant.interpreter import ResultInterpreter
from qarun.assistant.invoker import ProcessInvocation, ProcessInvoker

__all__ = [
    "AssistantClient",
    "AssistantResponse",
    "AssistantError",
    "EmptyOutputError",
    "ProcessSpawnError",
    "ProcessTimeoutError",
    "ToolUnavailableError",
    "UnextractablePayloadError",
    "ExtractedPayload",
    "ExtractionStrategy",
    "ResponseExtractor",
    "ResultInterpreter",
    "ProcessInvocation",
    "ProcessInvoker",
]
