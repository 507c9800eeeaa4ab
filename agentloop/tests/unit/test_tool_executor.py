import asyncio
import json

import pytest
from conftest import content_types, drain, tool_call

from agentloop.notifications.bus import NotificationBus
from agentloop.tools.registry import ToolRegistry
from agentloop.tools.tool_executor import ToolExecutor, tool_not_found_payload
from agentloop.tools.types import Tool, ToolBuilder


class TestToolExecutor:
    @pytest.fixture
    def bus(self) -> NotificationBus:
        return NotificationBus("executor-test")

    @pytest.fixture
    def tool_executor(self, bus, weather_tool, failing_tool) -> ToolExecutor:
        return ToolExecutor(ToolRegistry([weather_tool, failing_tool]), bus)

    @pytest.mark.asyncio
    async def test_empty_requests(self, tool_executor, bus):
        receiver = bus.subscribe()
        assert await tool_executor.execute_tools([]) == []
        assert drain(receiver) == []

    @pytest.mark.asyncio
    async def test_success(self, tool_executor):
        outcomes = await tool_executor.execute_tools(
            [tool_call("get_weather", {"location": "Ljubljana"}, call_id="w1")]
        )

        assert len(outcomes) == 1
        outcome = outcomes[0]
        assert outcome.success
        assert outcome.message.tool_call_id == "w1"
        assert json.loads(outcome.message.content) == {"temp": 18}
        assert outcome.duration >= 0

    @pytest.mark.asyncio
    async def test_failure_and_unknown_do_not_raise(self, tool_executor):
        outcomes = await tool_executor.execute_tools(
            [
                tool_call("read_sensor", call_id="1"),
                tool_call("teleport", call_id="2"),
            ]
        )

        failed, unknown = outcomes
        assert not failed.success
        assert failed.message.content == "Error: sensor offline"
        assert not unknown.success
        assert unknown.message.content == tool_not_found_payload(
            "teleport", ["get_weather", "read_sensor"]
        )

    @pytest.mark.asyncio
    async def test_requested_published_before_dispatch(self, bus):
        """执行器运行时，所有 ToolCallRequested 通知已经发布"""
        receiver = bus.subscribe()
        seen_during_run: list[int] = []

        async def record(args):
            seen_during_run.append(len(receiver))
            return "ok"

        record_tool = ToolBuilder().function_name("record").executor(record).build()
        executor = ToolExecutor(ToolRegistry([record_tool]), bus)

        await executor.execute_tools(
            [tool_call("record", call_id="1"), tool_call("record", call_id="2")]
        )

        assert seen_during_run == [2, 2]
        assert content_types(drain(receiver)) == [
            "tool_call_requested",
            "tool_call_requested",
        ]

    @pytest.mark.asyncio
    async def test_runs_concurrently(self, bus):
        """同一轮的工具并发执行"""
        running = 0
        peak = 0

        async def sleepy(args):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return "z"

        sleepy_tool = ToolBuilder().function_name("sleepy").executor(sleepy).build()
        executor = ToolExecutor(ToolRegistry([sleepy_tool]), bus)

        await executor.execute_tools(
            [tool_call("sleepy", call_id=str(i)) for i in range(3)]
        )

        assert peak == 3

    @pytest.mark.asyncio
    async def test_unexpected_exception_keeps_siblings(self, bus):
        """execute 本身抛出非工具异常时，同一轮的其他调用照常完成并按请求顺序返回"""

        class CrashingTool(Tool):
            async def execute(self, arguments):
                raise RuntimeError("formatter crashed")

        async def slow_echo(args):
            await asyncio.sleep(0.01)
            return args["text"]

        crashing = CrashingTool(name="crash", executor=slow_echo)
        echo = (
            ToolBuilder()
            .function_name("echo")
            .add_required_property("text", "string")
            .executor(slow_echo)
            .build()
        )
        executor = ToolExecutor(ToolRegistry([echo, crashing]), bus)

        outcomes = await executor.execute_tools(
            [
                tool_call("echo", {"text": "first"}, call_id="1"),
                tool_call("crash", call_id="2"),
                tool_call("echo", {"text": "third"}, call_id="3"),
            ]
        )

        assert [o.message.tool_call_id for o in outcomes] == ["1", "2", "3"]
        assert [o.success for o in outcomes] == [True, False, True]
        assert outcomes[0].message.content == "first"
        assert outcomes[1].message.content == "Error: formatter crashed"
        assert outcomes[2].message.content == "third"
