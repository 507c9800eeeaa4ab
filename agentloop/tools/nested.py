"""
Expose an agent as a tool of another agent.

The nested agent keeps its own history, so calls are serialized behind an
asyncio.Lock even when the outer agent runs several tool calls at once.
"""

import asyncio
from typing import TYPE_CHECKING, Any

from agentloop.errors import ExecutionFailed
from agentloop.tools.types import Tool, ToolParameters, ToolProperty

if TYPE_CHECKING:
    from agentloop.agent.agent import Agent


def agent_as_tool(
    agent: "Agent",
    name: str,
    description: str,
    clear_history: bool = True,
) -> Tool:
    """
    Wrap ``agent`` as a single-argument tool taking a ``prompt``.

    Args:
        agent: The nested agent
        name: Tool name shown to the outer model
        description: Tool description shown to the outer model
        clear_history: Reset the nested agent before each call

    Returns:
        Tool whose output is the nested agent's final reply text
    """
    lock = asyncio.Lock()

    async def executor(args: dict[str, Any]) -> str:
        prompt = args.get("prompt")
        if not isinstance(prompt, str):
            raise ExecutionFailed(f"'{name}' expects a string prompt.", tool=name)
        async with lock:
            if clear_history:
                agent.clear_history()
            reply = await agent.invoke(prompt)
        return reply.content or ""

    return Tool(
        name=name,
        description=description,
        parameters=ToolParameters(
            properties={
                "prompt": ToolProperty(
                    type="string", description="Task for the nested agent."
                )
            },
            required=["prompt"],
        ),
        executor=executor,
    )
