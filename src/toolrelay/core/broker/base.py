from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from toolrelay.core.logging.context import log_context

logger = logging.getLogger("toolrelay.broker")


@dataclass(slots=True)
class BrokerMessage:
    topic: str
    key: str | None
    value: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class Subscription(Protocol):
    def __aiter__(self) -> AsyncIterator[BrokerMessage]: ...

    async def stop(self) -> None: ...


class Broker(Protocol):
    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def publish(
        self,
        topic: str,
        key: str,
        value: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None: ...

    async def subscribe(self, topics: list[str], group_id: str) -> Subscription: ...


MessageHandler = Callable[[BrokerMessage], Awaitable[None]]


async def consume_forever(subscription: Subscription, handler: MessageHandler, *, component: str) -> None:
    """Feed every message to `handler`; one failing message never stops the loop."""
    with log_context(component=component):
        async for message in subscription:
            with log_context(topic=message.topic, request_id=message.key):
                try:
                    await handler(message)
                except Exception:
                    logger.exception("message_handler_failed")


class ConsumerLoop:
    """One subscription plus the task that drains it into `handler`."""

    def __init__(
        self,
        broker: Broker,
        topics: list[str],
        group_id: str,
        handler: MessageHandler,
        *,
        component: str,
    ) -> None:
        self.broker = broker
        self.topics = topics
        self.group_id = group_id
        self.component = component
        self._handler = handler
        self._subscription: Subscription | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._subscription = await self.broker.subscribe(self.topics, self.group_id)
        self._task = asyncio.create_task(
            consume_forever(self._subscription, self._handler, component=self.component),
            name=f"toolrelay-{self.component}",
        )
        logger.info(
            "consumer_started",
            extra={"extra_fields": {"component": self.component, "group_id": self.group_id, "topics": self.topics}},
        )

    async def stop(self) -> None:
        subscription, task = self._subscription, self._task
        self._subscription = None
        self._task = None
        if subscription is not None:
            await subscription.stop()
        if task is not None:
            task.cancel()
            results = await asyncio.gather(task, return_exceptions=True)
            if results and isinstance(results[0], Exception):
                logger.error("consumer_loop_failed", exc_info=results[0])
        logger.info("consumer_stopped", extra={"extra_fields": {"component": self.component}})
