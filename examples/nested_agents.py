"""
A writer agent that delegates research to a nested agent, a local tool
from LangChain's ``@tool`` and remote tools from an MCP server.
"""

from langchain_core.tools import tool

from agentloop import Agent, AgentConfig, McpServer, Template, agent_as_tool
from agentloop.agent import Flow, call_provider, run_tool_loop
from agentloop.errors import FlowIterationExhausted
from agentloop.model import Message
from agentloop.templates import StaticDataSource


@tool
def word_count(text: str) -> int:
    """Count the words in a text."""
    return len(text.split())


async def draft_then_review(agent: Agent, prompt: str) -> Message:
    """Custom flow: run the tool loop, then ask the model to review its draft."""
    agent.history.append(Message.user(prompt))
    try:
        await run_tool_loop(agent, max_iterations=4)
    except FlowIterationExhausted as e:
        return e.last_message

    agent.history.append(Message.user("Review your answer and fix any mistakes."))
    return await call_provider(agent, use_tools=False)


async def main():
    researcher = await Agent.create(
        AgentConfig(
            name="Researcher",
            model="gpt-4o-mini",
            system_prompt="You research facts and answer with short bullet points.",
        )
    )

    writer = await Agent.create(
        AgentConfig(name="Writer", model="gpt-4o-mini", stream=True),
        tools=[
            word_count,
            agent_as_tool(researcher, "researcher", "Looks up facts on a topic"),
        ],
        mcp_servers=[McpServer.stdio("uvx mcp-server-time")],
        flow=Flow.custom(draft_then_review),
        template=Template(
            "Write {{words}} words about {{topic}} for {{audience}}.",
            StaticDataSource({"audience": "curious teenagers"}),
        ),
    )

    receiver = writer.subscribe_notifications()
    writer.forward_notifications(researcher)

    async def log_notifications():
        async for notification in receiver:
            print(f"[{notification.agent}] {notification.content.type}")

    logger_task = asyncio.create_task(log_notifications())

    reply = await writer.invoke_with_template({"topic": "Lake Bled", "words": "120"})
    print(reply.content)

    await writer.aclose()
    await researcher.aclose()
    await logger_task


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
