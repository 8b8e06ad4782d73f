from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from aiokafka.errors import KafkaError

from toolrelay.core.errors import TransportError
from toolrelay.core.logging.redact import redact_credentials

from .base import BrokerMessage

logger = logging.getLogger("toolrelay.broker.kafka")


def _serialize(value: dict[str, Any]) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _deserialize(raw: bytes | None) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


class KafkaSubscription:
    def __init__(self, consumer: AIOKafkaConsumer, topics: list[str], group_id: str) -> None:
        self._consumer = consumer
        self.topics = topics
        self.group_id = group_id
        self._stopped = False

    async def __aiter__(self) -> AsyncIterator[BrokerMessage]:
        try:
            async for record in self._consumer:
                value = _deserialize(record.value)
                if value is None:
                    logger.warning("Dropping empty or non-JSON message on %s at offset %s", record.topic, record.offset)
                    continue
                yield BrokerMessage(
                    topic=record.topic,
                    key=record.key.decode("utf-8") if record.key else None,
                    value=value,
                    headers={name: (raw or b"").decode("utf-8", "replace") for name, raw in (record.headers or ())},
                )
        except KafkaError as exc:
            raise TransportError(f"Kafka consumer for {self.group_id} failed: {exc}") from exc

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            await self._consumer.stop()
        except KafkaError:
            logger.exception("Kafka consumer stop failed for group %s", self.group_id)


class KafkaBroker:
    """aiokafka-backed broker with one shared producer and a consumer per subscription."""

    def __init__(self, brokers: list[str], client_id: str = "toolrelay") -> None:
        self.bootstrap_servers = ",".join(brokers)
        self.client_id = client_id
        self._producer: AIOKafkaProducer | None = None
        self._producer_lock = asyncio.Lock()
        self._subscriptions: list[KafkaSubscription] = []

    async def start(self) -> None:
        await self._ensure_producer()

    async def stop(self) -> None:
        for subscription in self._subscriptions:
            await subscription.stop()
        self._subscriptions.clear()

        async with self._producer_lock:
            if self._producer is not None:
                try:
                    await self._producer.stop()
                except KafkaError:
                    logger.exception("Kafka producer stop failed")
                finally:
                    self._producer = None
        logger.info("Kafka broker stopped")

    async def publish(
        self,
        topic: str,
        key: str,
        value: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        producer = await self._ensure_producer()
        encoded_headers = [(name, str(item).encode("utf-8")) for name, item in (headers or {}).items()]
        try:
            await producer.send_and_wait(
                topic,
                value=_serialize(value),
                key=key.encode("utf-8"),
                headers=encoded_headers or None,
            )
        except KafkaError as exc:
            raise TransportError(f"Failed to publish to {topic}: {exc}") from exc

    async def subscribe(self, topics: list[str], group_id: str) -> KafkaSubscription:
        consumer = AIOKafkaConsumer(
            *topics,
            bootstrap_servers=self.bootstrap_servers,
            client_id=self.client_id,
            group_id=group_id,
            enable_auto_commit=True,
            auto_offset_reset="latest",
        )
        try:
            await consumer.start()
        except KafkaError as exc:
            await consumer.stop()
            raise TransportError(
                f"Failed to subscribe {group_id} to {topics} on {redact_credentials(self.bootstrap_servers)}: {exc}"
            ) from exc
        subscription = KafkaSubscription(consumer, topics, group_id)
        self._subscriptions.append(subscription)
        logger.info("Kafka consumer %s subscribed to %s", group_id, ", ".join(topics))
        return subscription

    async def _ensure_producer(self) -> AIOKafkaProducer:
        if self._producer is not None:
            return self._producer

        async with self._producer_lock:
            if self._producer is None:
                producer = AIOKafkaProducer(
                    bootstrap_servers=self.bootstrap_servers,
                    client_id=self.client_id,
                    acks="all",
                )
                try:
                    await producer.start()
                except KafkaError as exc:
                    await producer.stop()
                    raise TransportError(
                        f"Failed to connect Kafka producer to {redact_credentials(self.bootstrap_servers)}: {exc}"
                    ) from exc
                self._producer = producer
                logger.info("Kafka producer connected")
        return self._producer
