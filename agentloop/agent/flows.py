"""
Flow building blocks and prebuilt flows.

A flow turns one prompt into a terminal assistant Message. It gets the
agent itself and may use its history, registry, provider and bus freely.
The helpers below are what the default flow is made of, so custom flows
can recombine them (bounded retries, plan-and-execute, ...).

Usage:
    async def shout_flow(agent, prompt):
        agent.history.append(Message.user(prompt.upper()))
        return await call_provider(agent, use_tools=False)

    agent = await Agent.create(config, flow=Flow.custom(shout_flow))
"""

from typing import TYPE_CHECKING, AsyncIterator, Optional, Union

from agentloop.errors import FlowIterationExhausted, ProviderError
from agentloop.model.types import Message
from agentloop.notifications.types import TokenChunk, ToolCallCompleted
from agentloop.utils.logger import get_logger

if TYPE_CHECKING:
    from agentloop.agent.agent import Agent

log = get_logger(__name__)

THINK_END_MARKER = "</think>"


# ======================================================================
## Building Blocks
# ======================================================================


def strip_thinking(message: Message) -> Message:
    """Drop a leading ``<think>...</think>`` block from the message content."""
    content = message.content
    if not content or THINK_END_MARKER not in content:
        return message
    _, _, answer = content.partition(THINK_END_MARKER)
    return message.model_copy(update={"content": answer.lstrip()})


async def _collect_stream(
    agent: "Agent", stream: AsyncIterator[Union[str, Message]]
) -> Message:
    final: Optional[Message] = None
    try:
        async for item in stream:
            if isinstance(item, Message):
                final = item
            else:
                agent.bus.publish(TokenChunk(value=item))
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"Provider stream failed: {e}") from e

    if final is None:
        raise ProviderError("Provider stream ended without a final message.")
    return final


async def call_provider(agent: "Agent", use_tools: bool = True) -> Message:
    """
    One provider round-trip over the current history.

    Streamed token fragments are published as TokenChunk notifications in
    the order they arrive. The assistant message is appended to history.

    Args:
        agent: The running agent
        use_tools: Offer the registered tools to the model

    Returns:
        The assistant message

    Raises:
        ProviderError: the call failed, or a stream had no final message
    """
    tools = agent.registry.schemas() if use_tools else []
    log.debug(
        f"[{agent.name}] provider call: history={len(agent.history)} tools={len(tools)}"
    )

    response = await agent.provider.send(agent.history.messages(), agent.options, tools)
    if isinstance(response, Message):
        message = response
    else:
        message = await _collect_stream(agent, response)

    if agent.options.strip_thinking:
        message = strip_thinking(message)

    agent.history.append(message)
    return message


async def call_tools(agent: "Agent", message: Message) -> list[Message]:
    """
    Dispatch the tool calls of ``message`` and append their results.

    Tool messages are appended in request order, each followed by a
    ToolCallCompleted notification. Unknown tools and failing executors
    become Tool messages too.

    Returns:
        The appended Tool messages
    """
    outcomes = await agent.tool_executor.execute_tools(message.tool_calls)
    for outcome in outcomes:
        agent.history.append(outcome.message)
        agent.bus.publish(
            ToolCallCompleted(
                request_id=outcome.request.id,
                tool=outcome.request.name,
                output=outcome.message.content or "",
                success=outcome.success,
            )
        )
    return [outcome.message for outcome in outcomes]


async def run_tool_loop(agent: "Agent", max_iterations: Optional[int] = None) -> Message:
    """
    Call the provider and dispatch tools until a reply without tool calls.

    Args:
        agent: The running agent
        max_iterations: Provider-call bound, defaults to the agent's options.
            At least one call is always made.

    Raises:
        FlowIterationExhausted: the bound was hit; carries the last
            assistant message
    """
    if max_iterations is None:
        max_iterations = agent.options.max_iterations
    limit = max(1, max_iterations)

    message: Optional[Message] = None
    for iteration in range(1, limit + 1):
        message = await call_provider(agent)
        if not message.has_tool_calls:
            return message

        log.info(
            f"[{agent.name}] iteration {iteration}/{limit}: "
            f"{len(message.tool_calls)} tool call(s)"
        )
        await call_tools(agent, message)

    log.warning(f"[{agent.name}] tool loop stopped after {limit} iteration(s)")
    raise FlowIterationExhausted(message, limit)


# ======================================================================
## Prebuilt Flows
# ======================================================================


async def default_flow(agent: "Agent", prompt: str) -> Message:
    """User message, then the tool loop. Exhaustion returns the last reply."""
    agent.history.append(Message.user(prompt))
    try:
        return await run_tool_loop(agent)
    except FlowIterationExhausted as e:
        return e.last_message


async def reply_flow(agent: "Agent", prompt: str) -> Message:
    """One provider call with tools offered; requested calls are left to the caller."""
    agent.history.append(Message.user(prompt))
    return await call_provider(agent)


async def reply_without_tools_flow(agent: "Agent", prompt: str) -> Message:
    agent.history.append(Message.user(prompt))
    return await call_provider(agent, use_tools=False)


async def call_tools_flow(agent: "Agent", prompt: str) -> Message:
    """One provider call, then dispatch whatever tools it requested.

    Returns the assistant message; the tool results are in history for
    the next invoke to pick up.
    """
    agent.history.append(Message.user(prompt))
    message = await call_provider(agent)
    if message.has_tool_calls:
        await call_tools(agent, message)
    return message
