from __future__ import annotations

import asyncio
import re

from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.events.schemas import RequestEvent
from toolrelay.core.matching.matcher import Matcher
from toolrelay.core.matching.rules import KeywordRule
from toolrelay.core.registry.base import Server, ToolInfo


def _rule(confidence: float) -> KeywordRule:
    return KeywordRule(re.compile(r"\bforecast\b", re.IGNORECASE), "rule_tool", "rule/server", confidence)


def _with_rule_server(registry):
    registry.upsert(Server(server_id="rule/server", name="Rules", tools=[ToolInfo(name="rule_tool")]))
    return registry


def test_confident_rule_skips_catalog_search(registry) -> None:
    matcher = Matcher(InMemoryBroker(record=True), _with_rule_server(registry), rules=(_rule(0.95),))

    async def scenario():
        await matcher.start()
        try:
            return matcher.match("weather forecast")
        finally:
            await matcher.stop()

    match = asyncio.run(scenario())

    assert match is not None
    assert match.tool_id == "rule_tool"
    assert match.confidence == 0.95


def test_weak_rule_falls_through_to_catalog_search(registry) -> None:
    matcher = Matcher(InMemoryBroker(record=True), _with_rule_server(registry), rules=(_rule(0.5),))

    async def scenario():
        await matcher.start()
        try:
            return await matcher.handle_request(RequestEvent(request_id="r1", normalized_query="weather forecast"))
        finally:
            await matcher.stop()

    signal = asyncio.run(scenario())

    assert signal is not None
    assert signal.tool_id == "forecast"
    assert signal.server_id == "weather/server"
