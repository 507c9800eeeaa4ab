"""
单元测试用于测试 model/llm.py 模块

测试覆盖：
- 消息与 LangChain 消息之间的转换
- LangChainProvider 的普通调用、流式调用与错误包装
- API Key 缺失时的 ProviderError
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from agentloop.errors import ProviderError
from agentloop.model.llm import (
    LangChainProvider,
    _get_chat_llm,
    extract_text_content,
    from_langchain_message,
    to_langchain_messages,
)
from agentloop.model.types import InvocationOptions, Message, Role, ToolCallRequest


@pytest.fixture
def options() -> InvocationOptions:
    return InvocationOptions(model="test-model")


# ======================================================================
# 消息转换测试
# ======================================================================


class TestMessageConversion:
    """测试消息转换"""

    def test_to_langchain_messages(self):
        history = [
            Message.system("sys"),
            Message.user("weather?"),
            Message.assistant(
                tool_calls=[
                    ToolCallRequest(id="1", name="get_weather", arguments={"location": "Bled"})
                ]
            ),
            Message.tool('{"temp": 18}', "1"),
        ]

        converted = to_langchain_messages(history)

        assert [type(m) for m in converted] == [
            SystemMessage,
            HumanMessage,
            AIMessage,
            ToolMessage,
        ]
        assert converted[2].tool_calls[0]["name"] == "get_weather"
        assert converted[2].tool_calls[0]["args"] == {"location": "Bled"}
        assert converted[3].tool_call_id == "1"

    def test_from_langchain_message(self):
        response = AIMessage(
            content="",
            tool_calls=[
                {"name": "a", "args": {"x": 1}, "id": "call_abc"},
                {"name": "b", "args": {}, "id": None},
            ],
        )

        message = from_langchain_message(response)

        assert message.role == Role.ASSISTANT
        assert [c.id for c in message.tool_calls] == ["call_abc", "call_1"]
        assert message.tool_calls[0].arguments == {"x": 1}

    def test_duplicate_ids_are_made_unique(self):
        response = AIMessage(
            content="",
            tool_calls=[
                {"name": "a", "args": {}, "id": "same"},
                {"name": "a", "args": {}, "id": "same"},
            ],
        )

        ids = [c.id for c in from_langchain_message(response).tool_calls]

        assert len(set(ids)) == 2

    def test_extract_text_from_blocks(self):
        response = AIMessage(content=[{"type": "text", "text": "Hel"}, {"type": "text", "text": "lo"}])
        assert extract_text_content(response) == "Hello"


# ======================================================================
# LangChainProvider 测试
# ======================================================================


class TestLangChainProvider:
    """测试使用注入模型的 LangChainProvider"""

    @pytest.mark.asyncio
    async def test_send(self, options):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content="Yeah"))
        provider = LangChainProvider(llm)

        reply = await provider.send([Message.user("Say 'Yeah'")], options)

        assert reply == Message.assistant("Yeah")
        sent = llm.ainvoke.await_args.args[0]
        assert isinstance(sent[0], HumanMessage)

    @pytest.mark.asyncio
    async def test_tools_and_response_format_are_bound(self):
        bound = MagicMock()
        bound.ainvoke = AsyncMock(return_value=AIMessage(content="{}"))
        with_tools = MagicMock()
        with_tools.bind.return_value = bound
        llm = MagicMock()
        llm.bind_tools.return_value = with_tools

        schema = {"type": "object"}
        options = InvocationOptions(
            model="m", response_format=schema, response_format_name="City"
        )
        tools = [{"type": "function", "function": {"name": "t", "parameters": {}}}]

        await LangChainProvider(llm).send([Message.user("x")], options, tools)

        llm.bind_tools.assert_called_once_with(tools)
        response_format = with_tools.bind.call_args.kwargs["response_format"]
        assert response_format["json_schema"] == {"name": "City", "schema": schema}

    @pytest.mark.asyncio
    async def test_error_is_wrapped(self, options):
        llm = MagicMock()
        llm.ainvoke = AsyncMock(side_effect=TimeoutError("read timeout"))

        with pytest.raises(ProviderError, match="read timeout") as exc_info:
            await LangChainProvider(llm).send([Message.user("x")], options)

        assert isinstance(exc_info.value.__cause__, TimeoutError)

    @pytest.mark.asyncio
    async def test_stream(self):
        async def astream(messages):
            for text in ["Hel", "lo"]:
                yield AIMessageChunk(content=text)

        llm = MagicMock()
        llm.astream = astream
        options = InvocationOptions(model="m", stream=True)

        stream = await LangChainProvider(llm).send([Message.user("x")], options)
        items = [item async for item in stream]

        assert items[:2] == ["Hel", "lo"]
        assert items[2] == Message.assistant("Hello")

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        async def astream(messages):
            return
            yield

        llm = MagicMock()
        llm.astream = astream
        options = InvocationOptions(model="m", stream=True)

        stream = await LangChainProvider(llm).send([Message.user("x")], options)
        with pytest.raises(ProviderError):
            [item async for item in stream]


class TestGetChatLlm:
    """测试 ChatOpenAI 的构建"""

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ProviderError) as exc_info:
            _get_chat_llm(InvocationOptions(model="m"))

        assert exc_info.value.code == "PROVIDER_AUTH_ERROR"

    def test_options_are_forwarded(self):
        llm = _get_chat_llm(
            InvocationOptions(
                model="llama3",
                api_key="sk-test",
                base_url="http://localhost:11434/v1",
                temperature=0.2,
                num_ctx=8192,
                num_predict=256,
            )
        )

        assert llm.model_name == "llama3"
        assert llm.temperature == 0.2
        assert llm.max_tokens == 256
        assert llm.extra_body == {"options": {"num_ctx": 8192}}
