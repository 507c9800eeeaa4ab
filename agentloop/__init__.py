"""
agentloop - an LLM agent invocation engine.

Usage:
    from agentloop import Agent, AgentConfig, ToolBuilder

    agent = await Agent.create(AgentConfig(model="gpt-4o-mini"), tools=[...])
    reply = await agent.invoke("What is the weather in Ljubljana?")
"""

from agentloop.agent import Agent, AgentConfig, Flow, History
from agentloop.errors import (
    AgentLoopError,
    ArgumentParsingError,
    BuildError,
    DeserializationError,
    DuplicateToolError,
    ExecutionFailed,
    FlowIterationExhausted,
    ProviderError,
    RemoteDiscoveryError,
    StructuredOutputError,
    TemplateError,
    ToolExecutionError,
    ToolNotFoundError,
)
from agentloop.model import (
    InvocationOptions,
    LangChainProvider,
    Message,
    ProviderClient,
    Role,
    ToolCallRequest,
)
from agentloop.notifications import Notification, NotificationReceiver
from agentloop.templates import StaticDataSource, Template, TemplateDataSource
from agentloop.tools import McpServer, Tool, ToolBuilder, ToolRegistry, agent_as_tool

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentConfig",
    "Flow",
    "History",
    "AgentLoopError",
    "ArgumentParsingError",
    "BuildError",
    "DeserializationError",
    "DuplicateToolError",
    "ExecutionFailed",
    "FlowIterationExhausted",
    "ProviderError",
    "RemoteDiscoveryError",
    "StructuredOutputError",
    "TemplateError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "InvocationOptions",
    "LangChainProvider",
    "Message",
    "ProviderClient",
    "Role",
    "ToolCallRequest",
    "Notification",
    "NotificationReceiver",
    "StaticDataSource",
    "Template",
    "TemplateDataSource",
    "McpServer",
    "Tool",
    "ToolBuilder",
    "ToolRegistry",
    "agent_as_tool",
]
