from __future__ import annotations

import asyncio
import uuid

import pytest

from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.errors import TransportError
from toolrelay.core.ingress.gateway import Ingress


class FailingBroker:
    async def publish(self, topic, key, value, headers=None) -> None:  # type: ignore[no-untyped-def]
        raise TransportError(f"Failed to publish to {topic}: broker down")


def test_submit_publishes_normalized_request_keyed_by_id() -> None:
    broker = InMemoryBroker(record=True)
    ingress = Ingress(broker)

    request_id = asyncio.run(ingress.submit("Hey bot: what's up [design v2]", session_id="s1", metadata={"source": "cli"}))

    assert str(uuid.UUID(request_id)) == request_id
    [message] = broker.messages_for("user-requests")
    assert message.key == request_id
    assert message.headers == {"requestId": request_id, "sessionId": "s1"}
    assert message.value["requestId"] == request_id
    assert message.value["normalizedQuery"] == "what is up"
    assert message.value["sessionId"] == "s1"
    assert message.value["metadata"] == {"source": "cli"}
    assert "contextSnapshot" not in message.value
    assert message.value["timestamp"]


def test_each_submit_gets_a_fresh_request_id() -> None:
    ingress = Ingress(InMemoryBroker(record=True))

    first = asyncio.run(ingress.submit("find concerts"))
    second = asyncio.run(ingress.submit("find concerts"))

    assert first != second


def test_blank_query_is_rejected_before_publishing() -> None:
    broker = InMemoryBroker(record=True)
    ingress = Ingress(broker)

    with pytest.raises(ValueError):
        asyncio.run(ingress.submit("   "))

    assert broker.published == []


def test_publish_failure_surfaces_transport_error() -> None:
    ingress = Ingress(FailingBroker())  # type: ignore[arg-type]

    with pytest.raises(TransportError, match="broker down"):
        asyncio.run(ingress.submit("find concerts"))
