"""
Error taxonomy for agentloop.

Every error raised across module boundaries derives from AgentLoopError so
callers can catch the whole family in one place. Each error carries a
machine-readable ``code`` next to its human-readable ``message``.

Recovered locally (turned into Tool messages, the conversation continues):
- ToolNotFoundError
- ToolExecutionError (ArgumentParsingError, ExecutionFailed)

Terminate the current call:
- ProviderError
- BuildError (DuplicateToolError, RemoteDiscoveryError)
- TemplateError

Only from structured-output entry points:
- StructuredOutputError
- DeserializationError

Best-effort signal used by tool loops:
- FlowIterationExhausted
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from agentloop.model.types import Message


class AgentLoopError(Exception):
    """Base class for all agentloop errors.

    Attributes:
        code: Machine-readable error code (e.g. "PROVIDER_ERROR").
        message: Human-readable description.
        extra: Additional context (tool name, server, ...).
    """

    code = "AGENTLOOP_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, **extra: Any):
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra
        super().__init__(message)


class ProviderError(AgentLoopError):
    """Transport, authentication or model failure in the provider client."""

    code = "PROVIDER_ERROR"


class ToolExecutionError(AgentLoopError):
    """A tool executor could not produce a result."""

    code = "TOOL_EXECUTION_ERROR"


class ArgumentParsingError(ToolExecutionError):
    """The arguments supplied by the model do not fit the tool's schema."""

    code = "TOOL_ARGUMENT_PARSING_ERROR"


class ExecutionFailed(ToolExecutionError):
    """The tool ran and failed."""

    code = "TOOL_EXECUTION_FAILED"


class ToolNotFoundError(AgentLoopError):
    """The model requested a tool name that is not registered."""

    code = "TOOL_NOT_FOUND"


class StructuredOutputError(AgentLoopError):
    """The final reply does not satisfy the configured response schema."""

    code = "STRUCTURED_OUTPUT_ERROR"


class DeserializationError(AgentLoopError):
    """Schema-valid output could not be mapped into the requested type."""

    code = "DESERIALIZATION_ERROR"


class BuildError(AgentLoopError):
    """Construction-time misconfiguration; a broken agent is never returned."""

    code = "BUILD_ERROR"


class DuplicateToolError(BuildError):
    """Two tool capabilities were registered under the same name."""

    code = "DUPLICATE_TOOL"


class RemoteDiscoveryError(BuildError):
    """Listing the tools of a remote server failed."""

    code = "REMOTE_DISCOVERY_ERROR"


class TemplateError(AgentLoopError):
    """A template invocation was requested but no template is configured."""

    code = "TEMPLATE_ERROR"


class FlowIterationExhausted(AgentLoopError):
    """The tool loop hit its iteration bound before a tool-free reply.

    Not a failure for the default flow: it returns ``last_message`` as the
    best-effort result.
    """

    code = "FLOW_ITERATION_EXHAUSTED"

    def __init__(self, last_message: "Message", iterations: int):
        self.last_message = last_message
        self.iterations = iterations
        super().__init__(
            f"Tool loop stopped after {iterations} iteration(s) without a final reply",
            iterations=iterations,
        )


__all__ = [
    "AgentLoopError",
    "ProviderError",
    "ToolExecutionError",
    "ArgumentParsingError",
    "ExecutionFailed",
    "ToolNotFoundError",
    "StructuredOutputError",
    "DeserializationError",
    "BuildError",
    "DuplicateToolError",
    "RemoteDiscoveryError",
    "TemplateError",
    "FlowIterationExhausted",
]
