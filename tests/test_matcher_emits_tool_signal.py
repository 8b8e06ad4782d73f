from __future__ import annotations

import asyncio

import pytest

from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.events.schemas import RequestEvent
from toolrelay.core.ingress.gateway import Ingress
from toolrelay.core.matching.matcher import Matcher


async def _wait_for_messages(broker: InMemoryBroker, topic: str, count: int = 1) -> None:
    for _ in range(200):
        if len(broker.messages_for(topic)) >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"no message on {topic}")


def test_matcher_consumes_request_and_publishes_signal(registry) -> None:
    broker = InMemoryBroker(record=True)
    matcher = Matcher(broker, registry)
    ingress = Ingress(broker)

    async def scenario() -> str:
        await matcher.start()
        try:
            request_id = await ingress.submit("Hey Gemini, when's Radiohead playing in London?")
            await _wait_for_messages(broker, "tool-signals")
        finally:
            await matcher.stop()
        return request_id

    request_id = asyncio.run(scenario())

    [message] = broker.messages_for("tool-signals")
    assert message.key == request_id
    assert message.headers == {"requestId": request_id, "status": "TOOL_READY"}
    assert message.value["requestId"] == request_id
    assert message.value["toolId"] == "web_search_exa"
    assert message.value["serverId"] == "io.github.exa-labs/exa-mcp-server"
    assert message.value["confidence"] == 0.9
    assert message.value["status"] == "TOOL_READY"
    assert message.value["params"] == {"query": "is Radiohead playing", "location": "London"}
    assert len(matcher.index) == 3


def test_matcher_falls_back_to_catalog_similarity(registry) -> None:
    broker = InMemoryBroker(record=True)
    matcher = Matcher(broker, registry)

    async def scenario():
        await matcher.start()
        try:
            return await matcher.handle_request(RequestEvent(request_id="r-weather", normalized_query="weather forecast"))
        finally:
            await matcher.stop()

    signal = asyncio.run(scenario())

    assert signal is not None
    assert signal.tool_id == "forecast"
    assert signal.server_id == "weather/server"
    assert signal.confidence == pytest.approx(0.74)
    assert signal.params == {"query": "weather forecast"}


def test_matcher_emits_nothing_without_confident_match(registry) -> None:
    broker = InMemoryBroker(record=True)
    matcher = Matcher(broker, registry)

    async def scenario():
        await matcher.start()
        try:
            return await matcher.handle_request(RequestEvent(request_id="r-joke", normalized_query="tell me a joke"))
        finally:
            await matcher.stop()

    assert asyncio.run(scenario()) is None
    assert broker.messages_for("tool-signals") == []
