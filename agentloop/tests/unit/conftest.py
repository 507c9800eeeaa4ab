"""
共享测试夹具

- ScriptedProvider: 按顺序返回预设回复的 ProviderClient
- make_agent: 构建使用 ScriptedProvider 的 Agent
- 常用的示例工具
"""

import asyncio
from typing import Any, AsyncIterator, Callable, Optional, Sequence, Union

import pytest

from agentloop.agent import Agent, AgentConfig
from agentloop.model.types import InvocationOptions, Message, ToolCallRequest
from agentloop.notifications.bus import NotificationReceiver
from agentloop.notifications.types import Notification
from agentloop.tools.types import Tool, ToolBuilder

# 一条预设回复可以是：
# - Message: 直接返回
# - list: 流式返回（str 片段 + 最后一个 Message）
# - Exception: 调用时抛出
# - callable(history) -> 以上任意一种
ScriptedReply = Union[Message, list, Exception, Callable[[list[Message]], Any]]


class ScriptedProvider:
    """按顺序回放预设回复，并记录每次调用"""

    def __init__(self, replies: Sequence[ScriptedReply] = (), repeat_last: bool = False):
        self.replies = list(replies)
        self.repeat_last = repeat_last
        self.calls: list[dict[str, Any]] = []

    async def send(
        self,
        history: Sequence[Message],
        options: InvocationOptions,
        tools: Sequence[dict[str, Any]] = (),
    ):
        self.calls.append(
            {"history": list(history), "options": options, "tools": list(tools)}
        )
        if not self.replies:
            raise AssertionError("ScriptedProvider ran out of replies")

        if self.repeat_last and len(self.replies) == 1:
            reply = self.replies[0]
        else:
            reply = self.replies.pop(0)
        if callable(reply):
            reply = reply(list(history))
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, list):
            return _stream(reply)
        return reply

    @property
    def call_count(self) -> int:
        return len(self.calls)


async def _stream(items: list) -> AsyncIterator[Union[str, Message]]:
    for item in items:
        await asyncio.sleep(0)
        yield item


def tool_call(name: str, arguments: Optional[dict] = None, call_id: str = "1") -> ToolCallRequest:
    return ToolCallRequest(id=call_id, name=name, arguments=arguments or {})


def drain(receiver: NotificationReceiver) -> list[Notification]:
    """取出接收端中所有已排队的通知"""
    notifications = []
    while (notification := receiver.try_recv()) is not None:
        notifications.append(notification)
    return notifications


def content_types(notifications: list[Notification]) -> list[str]:
    return [n.content.type for n in notifications]


# ======================================================================
# Fixtures
# ======================================================================


@pytest.fixture
def config() -> AgentConfig:
    return AgentConfig(model="test-model", system_prompt="You are a helpful assistant")


@pytest.fixture
def weather_tool() -> Tool:
    async def get_weather(args: dict) -> dict:
        return {"temp": 18}

    return (
        ToolBuilder()
        .function_name("get_weather")
        .function_description("Current weather for a city")
        .add_required_property("location", "string", "City name")
        .executor(get_weather)
        .build()
    )


@pytest.fixture
def failing_tool() -> Tool:
    async def explode(args: dict) -> str:
        raise RuntimeError("sensor offline")

    return (
        ToolBuilder()
        .function_name("read_sensor")
        .function_description("Reads a sensor")
        .executor(explode)
        .build()
    )


@pytest.fixture
def make_agent(config):
    """返回一个异步工厂：await make_agent(provider, tools=[...], **config_overrides)"""

    async def factory(provider: ScriptedProvider, tools=(), **overrides) -> Agent:
        agent_config = config.model_copy(update=overrides) if overrides else config
        return await Agent.create(agent_config, tools=tools, provider=provider)

    return factory
