"""Wiring of the pipeline components over one broker."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from toolrelay.core.broker.base import Broker
from toolrelay.core.broker.kafka import KafkaBroker
from toolrelay.core.broker.memory import InMemoryBroker
from toolrelay.core.config import Settings
from toolrelay.core.coordination.claims import ClaimTable
from toolrelay.core.coordination.coordinator import Coordinator
from toolrelay.core.errors import ResultConsumerNotRunning
from toolrelay.core.events.schemas import ResultEvent
from toolrelay.core.ingress.gateway import Ingress
from toolrelay.core.invocation.base import ToolInvoker, UnconfiguredInvoker
from toolrelay.core.invocation.http import HttpToolInvoker
from toolrelay.core.matching.matcher import Matcher
from toolrelay.core.matching.rules import rules_from_settings
from toolrelay.core.registry.base import RegistryLookup, UnconfiguredRegistry
from toolrelay.core.registry.http import HttpRegistry
from toolrelay.core.registry.memory import InMemoryRegistry
from toolrelay.core.results.consumer import ResultConsumer

logger = logging.getLogger("toolrelay.runtime")


SWEEP_JOB_ID = "maintenance:claim_sweep"


def schedule_sweep(scheduler: AsyncIOScheduler, sweep: Callable[[], int], interval_s: float) -> None:
    """Purge expired claims and signalled-request records on an interval."""
    scheduler.add_job(
        sweep,
        trigger="interval",
        id=SWEEP_JOB_ID,
        seconds=interval_s,
        replace_existing=True,
    )


def build_broker(settings: Settings) -> Broker:
    if settings.broker == "memory":
        return InMemoryBroker()
    return KafkaBroker(settings.kafka.brokers, client_id=settings.kafka.client_id)


def build_registry(settings: Settings) -> RegistryLookup:
    if settings.registry.path:
        return InMemoryRegistry.from_yaml(settings.registry.path)
    if settings.registry.url:
        return HttpRegistry(settings.registry.url, http=settings.http)
    logger.warning("registry_not_configured")
    return UnconfiguredRegistry()


def build_invoker(settings: Settings) -> ToolInvoker:
    if settings.invocation.url:
        return HttpToolInvoker(
            settings.invocation.url,
            http=settings.http,
            timeout_s=settings.invocation.timeout_s,
            retries=settings.invocation.retries,
        )
    logger.warning("invocation_not_configured")
    return UnconfiguredInvoker()


def build_matcher(settings: Settings, broker: Broker, registry: RegistryLookup) -> Matcher:
    return Matcher(
        broker,
        registry,
        topics=settings.kafka.topics,
        group_id=settings.kafka.matcher_group,
        threshold=settings.matcher.threshold,
        rules=rules_from_settings(settings.matcher.rules),
        signalled_ttl_s=settings.matcher.signalled_ttl_s,
    )


def build_coordinator(settings: Settings, broker: Broker, invoker: ToolInvoker) -> Coordinator:
    return Coordinator(
        broker,
        invoker,
        ClaimTable(settings.coordinator.claim_ttl_s),
        topics=settings.kafka.topics,
        group_id=settings.kafka.coordinator_group,
    )


def build_result_consumer(settings: Settings, broker: Broker) -> ResultConsumer:
    return ResultConsumer(
        broker,
        topic=settings.kafka.topics.orchestrator_results,
        group_id=settings.kafka.result_group,
        default_timeout_ms=settings.results.timeout_ms,
    )


async def close_collaborator(collaborator: Any) -> None:
    aclose = getattr(collaborator, "aclose", None)
    if aclose is not None:
        await aclose()


class OrchestratorClient:
    """Caller-facing facade: publish a query and wait for its result."""

    def __init__(self, ingress: Ingress, results: ResultConsumer) -> None:
        self.ingress = ingress
        self.results = results

    async def submit_and_wait(
        self,
        query: str,
        session_id: str | None = None,
        context_snapshot: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
    ) -> ResultEvent:
        if not self.results.is_running:
            raise ResultConsumerNotRunning("Result consumer is not running")
        request_id = await self.ingress.submit(query, session_id=session_id, context_snapshot=context_snapshot)
        return await self.results.wait_for(request_id, timeout_ms)


class OrchestratorRuntime:
    """Pipeline components sharing one broker.

    With `pipeline=True` the Matcher and Coordinator run in-process next to
    Ingress and the Result Consumer (single-process mode). With
    `pipeline=False` only the caller-facing half runs and a separate worker
    is expected to consume the requests.

    In-process pipelines also sweep expired claims and signalled-request
    records on `coordinator.sweep_interval_s`.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        broker: Broker | None = None,
        registry: RegistryLookup | None = None,
        invoker: ToolInvoker | None = None,
        pipeline: bool = True,
    ) -> None:
        self.settings = settings or Settings(broker="memory")
        self.broker = broker or build_broker(self.settings)
        self.pipeline = pipeline
        self.registry: RegistryLookup | None = None
        self.invoker: ToolInvoker | None = None
        self.matcher: Matcher | None = None
        self.coordinator: Coordinator | None = None
        if pipeline:
            self.registry = registry or build_registry(self.settings)
            self.invoker = invoker or build_invoker(self.settings)
            self.matcher = build_matcher(self.settings, self.broker, self.registry)
            self.coordinator = build_coordinator(self.settings, self.broker, self.invoker)

        self.ingress = Ingress(self.broker, topic=self.settings.kafka.topics.user_requests)
        self.results = build_result_consumer(self.settings, self.broker)
        self.client = OrchestratorClient(self.ingress, self.results)
        self.scheduler: AsyncIOScheduler | None = None
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        await self.broker.start()
        await self.results.start()
        if self.coordinator is not None:
            await self.coordinator.start()
        if self.matcher is not None:
            await self.matcher.start()
            self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
            schedule_sweep(self.scheduler, self.sweep, self.settings.coordinator.sweep_interval_s)
            self.scheduler.start()
        self._started = True
        logger.info("runtime_started", extra={"extra_fields": {"pipeline": self.pipeline}})

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        if self.scheduler is not None:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.scheduler = None
        if self.matcher is not None:
            await self.matcher.stop()
        if self.coordinator is not None:
            await self.coordinator.stop()
        await self.results.stop()
        await self.broker.stop()
        await close_collaborator(self.registry)
        await close_collaborator(self.invoker)
        logger.info("runtime_stopped")

    def sweep(self) -> int:
        purged = 0
        if self.coordinator is not None:
            purged += self.coordinator.claims.sweep()
        if self.matcher is not None:
            purged += self.matcher.sweep()
        if purged:
            logger.debug("expired_entries_purged", extra={"extra_fields": {"count": purged}})
        return purged

    async def __aenter__(self) -> "OrchestratorRuntime":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
