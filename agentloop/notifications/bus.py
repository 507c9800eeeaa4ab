"""
Notification bus: fan-out from one agent to any number of subscribers.

Each subscriber owns a bounded queue. ``publish`` is synchronous, never
waits on a subscriber and never raises; when a subscriber's queue is full
the oldest queued notification is dropped to make room for the new one.
Per subscriber, receive order matches publish order.
"""

import asyncio
from collections import deque
from typing import Optional

from agentloop.notifications.types import Notification, NotificationContent
from agentloop.utils.logger import get_logger

log = get_logger(__name__)

DEFAULT_SUBSCRIBER_QUEUE_SIZE = 100


class NotificationReceiver:
    """
    Independent receiving end of a NotificationBus subscription.

    Usage:
        receiver = agent.subscribe_notifications()
        async for notification in receiver:
            print(notification.content)
    """

    def __init__(self, bus: "NotificationBus", maxsize: int) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._bus = bus
        self._queue: deque[Notification] = deque(maxlen=maxsize)
        self._ready = asyncio.Event()
        self._closed = False
        self.dropped = 0

    @property
    def maxsize(self) -> int:
        return self._queue.maxlen or 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _push(self, notification: Notification) -> None:
        if self._closed:
            return
        if len(self._queue) == self._queue.maxlen:
            # deque(maxlen) evicts the oldest entry on append
            self.dropped += 1
            log.debug(
                f"Subscriber queue full on agent={self._bus.agent_name}, "
                f"dropped oldest (total dropped={self.dropped})"
            )
        self._queue.append(notification)
        self._ready.set()

    def try_recv(self) -> Optional[Notification]:
        """Return the next queued notification, or None if nothing is queued."""
        if not self._queue:
            return None
        return self._queue.popleft()

    async def recv(self) -> Optional[Notification]:
        """Wait for the next notification. Returns None once closed and drained."""
        while not self._queue:
            if self._closed:
                return None
            self._ready.clear()
            await self._ready.wait()
        return self._queue.popleft()

    def close(self) -> None:
        """Stop receiving. Already queued notifications can still be drained."""
        if self._closed:
            return
        self._closed = True
        self._bus._unsubscribe(self)
        self._ready.set()

    def __len__(self) -> int:
        return len(self._queue)

    def __aiter__(self) -> "NotificationReceiver":
        return self

    async def __anext__(self) -> Notification:
        notification = await self.recv()
        if notification is None:
            raise StopAsyncIteration
        return notification


class NotificationBus:
    """Fan-out channel owned by exactly one agent."""

    def __init__(self, agent_name: str) -> None:
        self.agent_name = agent_name
        self._receivers: list[NotificationReceiver] = []
        self._forwarders: set[asyncio.Task] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._receivers)

    def subscribe(self, maxsize: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE) -> NotificationReceiver:
        receiver = NotificationReceiver(self, maxsize)
        self._receivers.append(receiver)
        log.debug(
            f"New subscriber on agent={self.agent_name} "
            f"(subscribers={len(self._receivers)})"
        )
        return receiver

    def _unsubscribe(self, receiver: NotificationReceiver) -> None:
        if receiver in self._receivers:
            self._receivers.remove(receiver)

    def publish(self, content: NotificationContent) -> Notification:
        """Deliver ``content`` to every current subscriber without waiting."""
        notification = Notification(agent=self.agent_name, content=content)
        for receiver in tuple(self._receivers):
            receiver._push(notification)
        return notification

    def forward(self, receiver: NotificationReceiver) -> asyncio.Task:
        """
        Re-publish everything ``receiver`` gets on this bus, keeping the
        original agent name. Used to surface a nested agent's notifications.
        """

        async def pump() -> None:
            async for notification in receiver:
                for own in tuple(self._receivers):
                    own._push(notification)

        task = asyncio.create_task(pump())
        self._forwarders.add(task)
        task.add_done_callback(self._forwarders.discard)
        return task

    def close(self) -> None:
        """Close every subscription and stop forwarding."""
        for task in tuple(self._forwarders):
            task.cancel()
        for receiver in tuple(self._receivers):
            receiver.close()
