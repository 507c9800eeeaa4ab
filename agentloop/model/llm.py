"""
Provider client contract and the LangChain-backed implementation.

The engine only talks to a ProviderClient. ``send`` returns either a single
assistant Message, or an async iterator that yields token fragments (str)
followed by exactly one final Message.
"""

import os
from typing import Any, AsyncIterator, Optional, Protocol, Sequence, Union

from dotenv import load_dotenv
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AIMessageChunk,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_openai import ChatOpenAI

from agentloop.errors import ProviderError
from agentloop.model.types import (
    InvocationOptions,
    Message,
    Role,
    ToolCallRequest,
)
from agentloop.utils.logger import get_logger

load_dotenv()

log = get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = 60

ProviderResponse = Union[Message, AsyncIterator[Union[str, Message]]]


# ======================================================================
## Provider Contract
# ======================================================================


class ProviderClient(Protocol):
    """What the engine requires from a language-model backend.

    Implementations raise ProviderError for transport, authentication or
    model failures. A successful reply with no content is a Message whose
    ``content`` is empty, never an error.
    """

    async def send(
        self,
        history: Sequence[Message],
        options: InvocationOptions,
        tools: Sequence[dict[str, Any]] = (),
    ) -> ProviderResponse:
        ...


# ======================================================================
## Message Conversion
# ======================================================================


def extract_text_content(response: BaseMessage) -> str:
    """Extract text content from a LangChain message or chunk."""
    if isinstance(response.content, str):
        return response.content
    if isinstance(response.content, list):
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in response.content
        )
    return ""


def to_langchain_messages(history: Sequence[Message]) -> list[BaseMessage]:
    """Convert conversation history into LangChain messages."""
    messages: list[BaseMessage] = []
    for message in history:
        content = message.content or ""
        if message.role == Role.SYSTEM:
            messages.append(SystemMessage(content=content))
        elif message.role == Role.USER:
            messages.append(HumanMessage(content=content))
        elif message.role == Role.ASSISTANT:
            messages.append(
                AIMessage(
                    content=content,
                    tool_calls=[
                        {
                            "name": call.name,
                            "args": call.arguments,
                            "id": call.id,
                            "type": "tool_call",
                        }
                        for call in message.tool_calls
                    ],
                )
            )
        else:
            messages.append(
                ToolMessage(content=content, tool_call_id=message.tool_call_id or "")
            )
    return messages


def from_langchain_message(response: AIMessage) -> Message:
    """
    Convert a LangChain AIMessage into an assistant Message.

    Tool calls without an id get a positional one (``call_<index>``) so every
    request in the turn can be referenced by its Tool message.
    """
    requests: list[ToolCallRequest] = []
    seen: set[str] = set()
    for index, tool_call in enumerate(response.tool_calls or []):
        call_id = tool_call.get("id") or f"call_{index}"
        if call_id in seen:
            call_id = f"{call_id}_{index}"
        seen.add(call_id)
        requests.append(
            ToolCallRequest(
                id=call_id,
                name=tool_call["name"],
                arguments=tool_call.get("args") or {},
            )
        )

    content = extract_text_content(response)
    return Message.assistant(content=content, tool_calls=requests)


# ======================================================================
## LangChain Provider
# ======================================================================


def _get_chat_llm(options: InvocationOptions) -> ChatOpenAI:
    """Build a ChatOpenAI instance for one request from the options snapshot."""
    base_url = options.base_url or os.getenv("OPENAI_BASE_URL", DEFAULT_BASE_URL)
    api_key = (
        options.api_key.get_secret_value()
        if options.api_key
        else os.getenv("OPENAI_API_KEY", "")
    )

    if not api_key:
        raise ProviderError(
            "No API key configured (set api_key or OPENAI_API_KEY).",
            code="PROVIDER_AUTH_ERROR",
        )

    kwargs: dict[str, Any] = {
        "model": options.model,
        "api_key": api_key,
        "base_url": base_url,
        "timeout": DEFAULT_TIMEOUT,
    }
    if options.temperature is not None:
        kwargs["temperature"] = options.temperature
    if options.top_p is not None:
        kwargs["top_p"] = options.top_p
    if options.seed is not None:
        kwargs["seed"] = options.seed
    if options.stop is not None:
        kwargs["stop"] = [options.stop]
    if options.num_predict is not None:
        kwargs["max_tokens"] = options.num_predict
    if options.num_ctx is not None:
        # OpenAI-compatible servers that understand it (e.g. Ollama) read it here
        kwargs["extra_body"] = {"options": {"num_ctx": options.num_ctx}}

    return ChatOpenAI(**kwargs)


class LangChainProvider:
    """
    ProviderClient backed by a LangChain chat model.

    By default a ChatOpenAI client is built per request from the options
    snapshot (any OpenAI-compatible endpoint works through ``base_url``).
    Pass ``llm`` to use an already configured BaseChatModel instead; its own
    model settings then take precedence over the snapshot.

    Usage:
        provider = LangChainProvider()
        reply = await provider.send(history, options, tools)
    """

    def __init__(self, llm: Optional[BaseChatModel] = None) -> None:
        self.llm = llm

    def _prepare(
        self,
        options: InvocationOptions,
        tools: Sequence[dict[str, Any]],
    ):
        llm = self.llm if self.llm is not None else _get_chat_llm(options)
        runnable: Any = llm

        # 1. 绑定 Tools
        if tools:
            runnable = llm.bind_tools(list(tools))

        # 2. 声明 Response Schema
        if options.response_format is not None:
            runnable = runnable.bind(
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": options.response_format_name,
                        "schema": options.response_format,
                    },
                }
            )
        return runnable

    async def send(
        self,
        history: Sequence[Message],
        options: InvocationOptions,
        tools: Sequence[dict[str, Any]] = (),
    ) -> ProviderResponse:
        runnable = self._prepare(options, tools)
        messages = to_langchain_messages(history)

        log.debug(
            f"Calling model={options.model} messages={len(messages)} "
            f"tools={len(tools)} stream={options.stream}"
        )

        if options.stream:
            return self._stream(runnable, messages)

        try:
            response: AIMessage = await runnable.ainvoke(messages)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"Model call failed: {e}", model=options.model) from e

        return from_langchain_message(response)

    async def _stream(
        self,
        runnable: Any,
        messages: list[BaseMessage],
    ) -> AsyncIterator[Union[str, Message]]:
        """Yield token fragments as they arrive, then the assembled message."""
        aggregate: Optional[AIMessageChunk] = None
        try:
            async for chunk in runnable.astream(messages):
                text = extract_text_content(chunk)
                if text:
                    yield text
                aggregate = chunk if aggregate is None else aggregate + chunk
        except Exception as e:
            raise ProviderError(f"Model stream failed: {e}") from e

        if aggregate is None:
            raise ProviderError("Model stream ended without producing a message.")

        yield from_langchain_message(aggregate)
