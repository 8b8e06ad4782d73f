from __future__ import annotations

import asyncio

from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.events.schemas import RequestEvent
from toolrelay.core.matching.matcher import Matcher


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_redelivered_request_yields_a_single_signal(registry) -> None:
    broker = InMemoryBroker(record=True)
    matcher = Matcher(broker, registry)
    event = RequestEvent(request_id="r1", normalized_query="when is Radiohead playing in London?")

    async def scenario():
        first = await matcher.handle_request(event)
        second = await matcher.handle_request(event)
        return first, second

    first, second = asyncio.run(scenario())

    assert first is not None
    assert second is None
    assert len(broker.messages_for("tool-signals")) == 1


def test_signalled_record_expires_and_is_swept(registry) -> None:
    clock = FakeClock()
    broker = InMemoryBroker(record=True)
    matcher = Matcher(broker, registry, signalled_ttl_s=60, clock=clock)
    event = RequestEvent(request_id="r1", normalized_query="when is Radiohead playing in London?")

    asyncio.run(matcher.handle_request(event))
    assert matcher.sweep() == 0

    clock.now += 61
    assert matcher.sweep() == 1
