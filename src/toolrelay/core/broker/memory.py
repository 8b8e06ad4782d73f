from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from toolrelay.core.errors import TransportError

from .base import BrokerMessage

logger = logging.getLogger("toolrelay.broker.memory")

_STOP = object()


class _GroupQueue:
    def __init__(self) -> None:
        self.topics: set[str] = set()
        self.queue: asyncio.Queue[object] = asyncio.Queue()


class InMemorySubscription:
    def __init__(self, group: _GroupQueue, topics: list[str], group_id: str) -> None:
        self._group = group
        self.topics = topics
        self.group_id = group_id
        self._stopped = False

    async def __aiter__(self) -> AsyncIterator[BrokerMessage]:
        while not self._stopped:
            item = await self._group.queue.get()
            if item is _STOP:
                break
            assert isinstance(item, BrokerMessage)
            yield item

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._group.queue.put_nowait(_STOP)


class InMemoryBroker:
    """Single-process broker with Kafka-like consumer group fan-out.

    Every consumer group receives each message published after it subscribed;
    subscriptions sharing a group compete for messages. Values round-trip
    through JSON so payloads match what the Kafka broker would carry. With
    `record=True` every published message is also kept in `published`.
    """

    def __init__(self, record: bool = False) -> None:
        self._groups: dict[str, _GroupQueue] = {}
        self._subscriptions: list[InMemorySubscription] = []
        self._closed = False
        self.record = record
        self.published: list[BrokerMessage] = []

    async def start(self) -> None:
        self._closed = False

    async def stop(self) -> None:
        for subscription in self._subscriptions:
            await subscription.stop()
        self._subscriptions.clear()
        self._groups.clear()
        self._closed = True

    async def publish(
        self,
        topic: str,
        key: str,
        value: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        if self._closed:
            raise TransportError(f"Failed to publish to {topic}: broker is stopped")
        try:
            payload = json.loads(json.dumps(value))
        except (TypeError, ValueError) as exc:
            raise TransportError(f"Failed to publish to {topic}: {exc}") from exc

        message = BrokerMessage(topic=topic, key=key, value=payload, headers=dict(headers or {}))
        if self.record:
            self.published.append(message)
        for group in self._groups.values():
            if topic in group.topics:
                group.queue.put_nowait(message)

    async def subscribe(self, topics: list[str], group_id: str) -> InMemorySubscription:
        if self._closed:
            raise TransportError(f"Failed to subscribe {group_id}: broker is stopped")
        group = self._groups.setdefault(group_id, _GroupQueue())
        group.topics.update(topics)
        subscription = InMemorySubscription(group, topics, group_id)
        self._subscriptions.append(subscription)
        logger.debug("In-memory consumer %s subscribed to %s", group_id, ", ".join(topics))
        return subscription

    def messages_for(self, topic: str) -> list[BrokerMessage]:
        return [message for message in self.published if message.topic == topic]
