"""In-process topic bus standing in for Kafka until a broker is deployed.

Producers and consumers keep the Kafka client shape (connect/send/close and
start/stop) so that swapping in a real client only touches the wiring in the
service lifespan.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Sequence

_LOGGER = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]


class InMemoryEventBus:
    """Dispatches published messages to the handlers subscribed to a topic."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[MessageHandler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: MessageHandler) -> None:
        handlers = self._subscribers.get(topic)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                self._subscribers.pop(topic, None)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def publish(self, topic: str, message: dict[str, Any]) -> None:
        # Copy: handlers may unsubscribe while being dispatched.
        for handler in list(self._subscribers.get(topic, [])):
            await handler(message)


class EventProducer:
    """Kafka-shaped producer that publishes onto an :class:`InMemoryEventBus`."""

    def __init__(self, bus: InMemoryEventBus, *, bootstrap_servers: str | None = None) -> None:
        self._bus = bus
        self._bootstrap_servers = bootstrap_servers
        self._connected = False

    async def connect(self) -> None:
        if self._bootstrap_servers:
            _LOGGER.info(
                "Kafka bootstrap servers %s configured; events stay in-process for now.",
                self._bootstrap_servers,
            )
        self._connected = True

    async def send(self, topic: str, value: dict[str, Any]) -> None:
        if not self._connected:
            raise RuntimeError("Producer not connected")
        await self._bus.publish(topic, value)

    async def close(self) -> None:
        self._connected = False


class EventConsumer:
    """Subscribes a ``(topic, payload)`` handler to several topics at once."""

    def __init__(
        self,
        bus: InMemoryEventBus,
        topics: Sequence[str],
        handler: Callable[[str, dict[str, Any]], Awaitable[None]],
    ) -> None:
        self._bus = bus
        self._topics = list(topics)
        self._handler = handler
        self._registrations: list[tuple[str, MessageHandler]] = []

    @property
    def started(self) -> bool:
        return bool(self._registrations)

    async def start(self) -> None:
        if self.started:
            return
        for topic in self._topics:
            async def _callback(message: dict[str, Any], current_topic: str = topic) -> None:
                await self._handler(current_topic, message)

            self._bus.subscribe(topic, _callback)
            self._registrations.append((topic, _callback))

    async def stop(self) -> None:
        for topic, callback in self._registrations:
            self._bus.unsubscribe(topic, callback)
        self._registrations.clear()
