from agentloop.notifications.bus import (
    DEFAULT_SUBSCRIBER_QUEUE_SIZE,
    NotificationBus,
    NotificationReceiver,
)
from agentloop.notifications.types import (
    Error,
    FinalMessage,
    Notification,
    NotificationContent,
    TokenChunk,
    ToolCallCompleted,
    ToolCallRequested,
)

__all__ = [
    "DEFAULT_SUBSCRIBER_QUEUE_SIZE",
    "NotificationBus",
    "NotificationReceiver",
    "Error",
    "FinalMessage",
    "Notification",
    "NotificationContent",
    "TokenChunk",
    "ToolCallCompleted",
    "ToolCallRequested",
]
