"""
Agent module - the invocation engine.

Core components:
- Agent: owns history, tool registry and notification bus; runs the flow
- AgentConfig / Flow: construction-time configuration and control flow
- flows: building blocks (call_provider, call_tools, run_tool_loop) and
  prebuilt flows for custom control patterns
- History: in-memory conversation record

Usage:
    from agentloop.agent import Agent, AgentConfig

    agent = await Agent.create(AgentConfig(model="your-model"))
    reply = await agent.invoke("Your prompt")
"""

from agentloop.agent.agent import Agent
from agentloop.agent.flows import (
    call_provider,
    call_tools,
    call_tools_flow,
    default_flow,
    reply_flow,
    reply_without_tools_flow,
    run_tool_loop,
    strip_thinking,
)
from agentloop.agent.history import History
from agentloop.agent.types import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_SYSTEM_PROMPT,
    AgentConfig,
    Flow,
    FlowFn,
)

__all__ = [
    "Agent",
    "AgentConfig",
    "Flow",
    "FlowFn",
    "History",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_SYSTEM_PROMPT",
    "call_provider",
    "call_tools",
    "call_tools_flow",
    "default_flow",
    "reply_flow",
    "reply_without_tools_flow",
    "run_tool_loop",
    "strip_thinking",
]
