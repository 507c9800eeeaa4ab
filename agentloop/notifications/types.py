"""
Notification types published by an agent while it works.

- TokenChunk: a streamed token fragment (ordered within one provider call)
- ToolCallRequested: emitted per request, before dispatch
- ToolCallCompleted: emitted per request, after dispatch (success or failure)
- FinalMessage: emitted once per successful invoke call
- Error: any engine-level failure
"""

import time
from dataclasses import dataclass, field
from typing import Literal, Optional

from agentloop.model.types import Message, ToolCallRequest


@dataclass
class TokenChunk:
    """Emitted for every token fragment of a streamed reply."""

    type: Literal["token"] = "token"
    value: str = ""


@dataclass
class ToolCallRequested:
    """Emitted before a requested tool is dispatched."""

    type: Literal["tool_call_requested"] = "tool_call_requested"
    request: Optional[ToolCallRequest] = None


@dataclass
class ToolCallCompleted:
    """Emitted when the Tool message for a request is appended to history."""

    type: Literal["tool_call_completed"] = "tool_call_completed"
    request_id: str = ""
    tool: str = ""
    output: str = ""
    success: bool = True


@dataclass
class FinalMessage:
    """Emitted once the invoke call has its terminal message."""

    type: Literal["final_message"] = "final_message"
    message: Optional[Message] = None


@dataclass
class Error:
    """Emitted when an invoke call fails."""

    type: Literal["error"] = "error"
    message: str = ""
    code: str = ""


NotificationContent = (
    TokenChunk | ToolCallRequested | ToolCallCompleted | FinalMessage | Error
)


@dataclass
class Notification:
    agent: str
    content: NotificationContent
    timestamp_millis: int = field(default_factory=lambda: int(time.time() * 1000))
