from agentloop.model.types import (
    InvocationOptions,
    Message,
    Role,
    ToolCallRequest,
)
from agentloop.model.llm import (
    LangChainProvider,
    ProviderClient,
    ProviderResponse,
    from_langchain_message,
    to_langchain_messages,
)

__all__ = [
    "InvocationOptions",
    "Message",
    "Role",
    "ToolCallRequest",
    "LangChainProvider",
    "ProviderClient",
    "ProviderResponse",
    "from_langchain_message",
    "to_langchain_messages",
]
