from __future__ import annotations

import asyncio

import pytest

from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.errors import InvocationError, ResultConsumerNotRunning, WaitTimeout
from toolrelay.core.runtime import OrchestratorRuntime


class ScriptedInvoker:
    def __init__(self, result: object = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[str, str, dict]] = []

    async def invoke(self, server_id: str, tool_id: str, arguments: dict) -> object:
        self.calls.append((server_id, tool_id, arguments))
        if self.error is not None:
            raise self.error
        return self.result


def test_radiohead_query_resolves_through_the_pipeline(registry) -> None:
    invoker = ScriptedInvoker(result={"content": [{"type": "text", "text": "Radiohead: O2 Arena, London"}]})
    runtime = OrchestratorRuntime(registry=registry, invoker=invoker)

    async def scenario():
        async with runtime:
            return await runtime.client.submit_and_wait(
                "Hey Gemini, when's Radiohead playing in London?",
                session_id="s1",
                timeout_ms=2000,
            )

    result = asyncio.run(scenario())

    assert result.status == "tool"
    assert result.tool == "web_search_exa"
    assert result.tool_path == "io.github.exa-labs/exa-mcp-server/web_search_exa"
    assert result.result == {"content": [{"type": "text", "text": "Radiohead: O2 Arena, London"}]}
    assert invoker.calls == [
        ("io.github.exa-labs/exa-mcp-server", "web_search_exa", {"query": "is Radiohead playing", "location": "London"})
    ]


def test_unmatched_query_times_out_without_leaking_waits(registry) -> None:
    invoker = ScriptedInvoker(result="unused")
    broker = InMemoryBroker(record=True)
    runtime = OrchestratorRuntime(broker=broker, registry=registry, invoker=invoker)

    async def scenario() -> int:
        async with runtime:
            with pytest.raises(WaitTimeout):
                await runtime.client.submit_and_wait("tell me a joke", timeout_ms=200)
            return runtime.results.pending_count

    assert asyncio.run(scenario()) == 0
    assert invoker.calls == []
    assert broker.messages_for("tool-signals") == []


def test_rate_limited_tool_returns_failed_result(registry) -> None:
    runtime = OrchestratorRuntime(registry=registry, invoker=ScriptedInvoker(error=InvocationError("rate limited")))

    async def scenario():
        async with runtime:
            return await runtime.client.submit_and_wait("find Radiohead concert tickets", timeout_ms=2000)

    result = asyncio.run(scenario())

    assert result.status == "failed"
    assert result.error == "rate limited"
    assert result.tool == "web_search_exa"


def test_submit_and_wait_requires_running_result_consumer(registry) -> None:
    broker = InMemoryBroker(record=True)
    runtime = OrchestratorRuntime(broker=broker, registry=registry, invoker=ScriptedInvoker())

    with pytest.raises(ResultConsumerNotRunning):
        asyncio.run(runtime.client.submit_and_wait("find concerts"))

    assert broker.published == []


def test_caller_only_runtime_skips_matcher_and_coordinator() -> None:
    runtime = OrchestratorRuntime(pipeline=False)

    async def scenario() -> bool:
        async with runtime:
            return runtime.results.is_running

    assert asyncio.run(scenario()) is True
    assert runtime.matcher is None
    assert runtime.coordinator is None
    assert runtime.sweep() == 0
