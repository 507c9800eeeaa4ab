"""
单元测试用于测试 History

测试覆盖：
- 系统提示的保留
- 只读视图
- JSON 保存与加载
"""

import json

import pytest
from conftest import ScriptedProvider

from agentloop.agent.history import History
from agentloop.model.types import Message, Role, ToolCallRequest


class TestHistory:
    """测试 History 的基本操作"""

    def test_starts_with_system_prompt(self):
        history = History("Be brief.")
        assert len(history) == 1
        assert history.system_message == Message.system("Be brief.")

    def test_without_system_prompt(self):
        history = History()
        assert len(history) == 0
        assert history.system_message is None
        assert history.last() is None

    def test_append_and_view(self):
        history = History("sys")
        history.append(Message.user("hi"))
        history.extend([Message.assistant("hello")])

        assert [m.role for m in history.view()] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
        assert history.last() == Message.assistant("hello")
        assert history[1] == Message.user("hi")

    def test_messages_returns_copy(self):
        history = History("sys")
        snapshot = history.messages()
        snapshot.append(Message.user("sneaky"))
        assert len(history) == 1

    def test_clear_keeps_system(self):
        history = History("sys")
        history.extend([Message.user("a"), Message.assistant("b")])

        history.clear()

        assert list(history) == [Message.system("sys")]

    def test_clear_without_system(self):
        history = History()
        history.append(Message.user("a"))
        history.clear()
        assert len(history) == 0


class TestHistoryPersistence:
    """测试保存与加载"""

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path):
        history = History("sys")
        history.append(Message.user("weather?"))
        history.append(
            Message.assistant(
                tool_calls=[
                    ToolCallRequest(id="1", name="get_weather", arguments={"location": "Bled"})
                ]
            )
        )
        history.append(Message.tool('{"temp": 18}', "1"))

        path = await history.save(tmp_path / "nested" / "history.json")
        loaded = await History.load(path)

        assert loaded.view() == history.view()
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data[0] == {
            "role": "system",
            "content": "sys",
            "tool_calls": [],
            "tool_call_id": None,
        }
        assert data[2]["tool_calls"][0]["name"] == "get_weather"

    @pytest.mark.asyncio
    async def test_agent_save_history(self, make_agent, tmp_path):
        agent = await make_agent(ScriptedProvider([Message.assistant("Yeah")]))
        await agent.invoke("Say 'Yeah'")

        path = await agent.save_history(tmp_path / "history.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert [entry["role"] for entry in data] == ["system", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_agent_load_history(self, make_agent, tmp_path):
        """测试保存的历史可以恢复到新的 Agent，并继续对话"""
        first = await make_agent(ScriptedProvider([Message.assistant("Yeah")]))
        await first.invoke("Say 'Yeah'")
        path = await first.save_history(tmp_path / "history.json")

        provider = ScriptedProvider([Message.assistant("Still yeah")])
        second = await make_agent(provider)
        await second.load_history(path)
        assert second.get_history() == first.get_history()

        await second.invoke("Again?")

        assert provider.calls[0]["history"][:3] == list(first.get_history())
        assert len(second.get_history()) == 5
        second.clear_history()
        assert [m.role for m in second.get_history()] == [Role.SYSTEM]
