from agentloop.tools.nested import agent_as_tool
from agentloop.tools.registry import ToolRegistry
from agentloop.tools.remote import (
    McpServer,
    McpToolTransport,
    McpTransport,
    RemoteToolSpec,
    RemoteToolTransport,
    discover_remote_tools,
)
from agentloop.tools.tool_executor import ToolCallOutcome, ToolExecutor
from agentloop.tools.types import (
    Tool,
    ToolBuilder,
    ToolParameters,
    ToolProperty,
    format_tool_result,
)

__all__ = [
    "agent_as_tool",
    "ToolRegistry",
    "McpServer",
    "McpToolTransport",
    "McpTransport",
    "RemoteToolSpec",
    "RemoteToolTransport",
    "discover_remote_tools",
    "ToolCallOutcome",
    "ToolExecutor",
    "Tool",
    "ToolBuilder",
    "ToolParameters",
    "ToolProperty",
    "format_tool_result",
]
