import asyncio

from agentloop import Agent, AgentConfig, ToolBuilder
from agentloop.notifications import FinalMessage, TokenChunk, ToolCallRequested


async def get_weather(args: dict) -> dict:
    # 示例数据
    return {"location": args["location"], "temp": 18, "unit": "C"}


async def main():
    config = AgentConfig(
        model="gpt-4o-mini",
        system_prompt="You are a helpful assistant. Answer in one sentence.",
        max_iterations=5,
        stream=True,
    )
    weather = (
        ToolBuilder()
        .function_name("get_weather")
        .function_description("Current weather for a city")
        .add_required_property("location", "string", "City name")
        .executor(get_weather)
        .build()
    )

    async with await Agent.create(config, tools=[weather]) as agent:
        print("agentloop 基础示例\n")

        # Example 1: Simple conversation without tools.
        print("示例 1: Say 'Yeah'\n")
        reply = await agent.invoke("Say 'Yeah'")
        print(f"Response: {reply.content}")

        # Example 2: Tool call with streamed tokens printed as they arrive.
        print("\n示例 2: Weather in Ljubljana\n")
        agent.clear_history()
        receiver = agent.subscribe_notifications()

        async def show_progress():
            async for notification in receiver:
                content = notification.content
                if isinstance(content, TokenChunk):
                    print(content.value, end="", flush=True)
                elif isinstance(content, ToolCallRequested):
                    print(f"[tool] {content.request.name}({content.request.arguments})")
                elif isinstance(content, FinalMessage):
                    print()

        progress = asyncio.create_task(show_progress())
        await agent.invoke("What is the weather in Ljubljana?")
        receiver.close()
        await progress

        await agent.save_history("history.json")


if __name__ == "__main__":
    asyncio.run(main())
