"""
Shared data model between the agent engine and provider clients.

- Role / Message: one role-tagged entry of the conversation history
- ToolCallRequest: a tool invocation requested by the model
- InvocationOptions: immutable per-agent snapshot sent with every request
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCallRequest(BaseModel):
    """A tool call parsed from a provider response.

    ``id`` is only unique among the calls of one assistant message.
    """

    id: str = Field(..., description="Identifier unique within its turn.")
    name: str = Field(..., description="Name of the requested tool.")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Structured arguments for the tool."
    )


class Message(BaseModel):
    role: Role
    content: Optional[str] = None
    # Only on assistant messages that request tools
    tool_calls: list[ToolCallRequest] = Field(default_factory=list)
    # Only on tool messages, back-reference to ToolCallRequest.id
    tool_call_id: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls,
        content: Optional[str] = None,
        tool_calls: Optional[list[ToolCallRequest]] = None,
    ) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "Message":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class InvocationOptions(BaseModel):
    """Immutable options snapshot copied into every provider request.

    The engine does not validate these against any provider; they are
    forwarded verbatim.
    """

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Model identifier.")
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    num_ctx: Optional[int] = Field(None, description="Context window size.")
    seed: Optional[int] = None
    stop: Optional[str] = None
    num_predict: Optional[int] = Field(None, description="Max tokens to generate.")
    stream: bool = False
    response_format: Optional[dict[str, Any]] = Field(
        None, description="JSON schema the final reply must satisfy."
    )
    response_format_name: str = "response"
    max_iterations: int = Field(10, description="Tool-loop iteration bound.")
    base_url: Optional[str] = Field(None, description="Provider endpoint.")
    api_key: Optional[SecretStr] = None
    strip_thinking: bool = True
