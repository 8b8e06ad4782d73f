from __future__ import annotations

import asyncio

from toolrelay.apps.worker.worker import Worker
from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.config import Settings
from toolrelay.core.events.schemas import RequestEvent


class RecordingInvoker:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict]] = []

    async def invoke(self, server_id: str, tool_id: str, arguments: dict) -> object:
        self.calls.append((server_id, tool_id, arguments))
        return {"ok": True}


def test_worker_schedules_claim_sweep_and_stops_cleanly(registry) -> None:
    worker = Worker(Settings(broker="memory"), registry=registry, invoker=RecordingInvoker())

    async def scenario() -> tuple[bool, list[str], bool]:
        await worker.start()
        started = worker.matcher.running and worker.coordinator.running
        job_ids = [job.id for job in worker.scheduler.get_jobs()]
        await worker.stop()
        return started, job_ids, worker.matcher.running or worker.coordinator.running

    started, job_ids, still_running = asyncio.run(scenario())

    assert started is True
    assert job_ids == ["maintenance:claim_sweep"]
    assert still_running is False


def test_worker_routes_request_to_tool_result(registry) -> None:
    broker = InMemoryBroker(record=True)
    invoker = RecordingInvoker()
    settings = Settings(broker="memory")
    worker = Worker(settings, broker=broker, registry=registry, invoker=invoker)

    async def scenario() -> list[str]:
        await worker.start()
        event = RequestEvent(request_id="r-worker", normalized_query="find Radiohead concert tickets")
        await broker.publish(settings.kafka.topics.user_requests, event.request_id, event.to_wire())
        for _ in range(100):
            if any(message.topic == settings.kafka.topics.orchestrator_results for message in broker.published):
                break
            await asyncio.sleep(0.01)
        await worker.stop()
        return [message.topic for message in broker.published]

    topics = asyncio.run(scenario())

    assert topics == ["user-requests", "tool-signals", "orchestrator-results"]
    assert invoker.calls == [
        ("io.github.exa-labs/exa-mcp-server", "web_search_exa", {"query": "Radiohead concert tickets"})
    ]


def test_worker_sweep_returns_purged_count(registry) -> None:
    worker = Worker(Settings(broker="memory"), registry=registry, invoker=RecordingInvoker())

    assert worker.sweep() == 0
