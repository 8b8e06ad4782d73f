from __future__ import annotations

import asyncio

from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.config import Settings
from toolrelay.core.runtime import SWEEP_JOB_ID, OrchestratorRuntime


class EchoInvoker:
    async def invoke(self, server_id: str, tool_id: str, arguments: dict) -> object:
        return arguments


def _short_lived_settings() -> Settings:
    return Settings(
        broker="memory",
        matcher={"signalled_ttl_s": 0.05},
        coordinator={"claim_ttl_s": 0.05, "sweep_interval_s": 0.1},
    )


def test_in_process_pipeline_purges_expired_entries(registry) -> None:
    runtime = OrchestratorRuntime(_short_lived_settings(), registry=registry, invoker=EchoInvoker())

    async def scenario() -> tuple[list[str], int, int, int]:
        async with runtime:
            job_ids = [job.id for job in runtime.scheduler.get_jobs()]
            for index in range(10):
                result = await runtime.client.submit_and_wait(f"find Radiohead concert tickets {index}", timeout_ms=2000)
                assert result.status == "tool"
            await asyncio.sleep(0.6)
            # Inspect the raw tables: lazy expiry alone would leave the entries stored.
            stored_claims = len(runtime.coordinator.claims._cache._data)
            stored_signalled = len(runtime.matcher._signalled._data)
            return job_ids, stored_claims, stored_signalled, runtime.results.pending_count

    job_ids, stored_claims, stored_signalled, pending = asyncio.run(scenario())

    assert job_ids == [SWEEP_JOB_ID]
    assert stored_claims == 0
    assert stored_signalled == 0
    assert pending == 0
    assert runtime.scheduler is None


def test_caller_only_runtime_schedules_nothing() -> None:
    runtime = OrchestratorRuntime(pipeline=False)

    async def scenario() -> bool:
        async with runtime:
            return runtime.scheduler is None

    assert asyncio.run(scenario()) is True


def test_memory_broker_keeps_no_history_unless_recording() -> None:
    quiet = InMemoryBroker()
    recording = InMemoryBroker(record=True)

    async def scenario() -> None:
        for broker in (quiet, recording):
            await broker.start()
            await broker.publish("user-requests", "r1", {"requestId": "r1"})
            await broker.stop()

    asyncio.run(scenario())

    assert quiet.published == []
    assert [message.key for message in recording.published] == ["r1"]
