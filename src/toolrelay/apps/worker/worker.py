from __future__ import annotations

import asyncio
import logging
import signal
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from toolrelay.core.broker.base import Broker
from toolrelay.core.config import Settings, load_settings
from toolrelay.core.invocation.base import ToolInvoker
from toolrelay.core.logging import configure_logging
from toolrelay.core.registry.base import RegistryLookup
from toolrelay.core.runtime import (
    build_broker,
    build_coordinator,
    build_invoker,
    build_matcher,
    build_registry,
    close_collaborator,
    schedule_sweep,
)

logger = logging.getLogger("toolrelay.worker")


class Worker:
    """Runs the Matcher and Coordinator until SIGINT/SIGTERM."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        broker: Broker | None = None,
        registry: RegistryLookup | None = None,
        invoker: ToolInvoker | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.broker = broker or build_broker(self.settings)
        self.registry = registry or build_registry(self.settings)
        self.invoker = invoker or build_invoker(self.settings)
        self.matcher = build_matcher(self.settings, self.broker, self.registry)
        self.coordinator = build_coordinator(self.settings, self.broker, self.invoker)
        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self._stop_requested: asyncio.Event | None = None
        self._started = False

    def sweep(self) -> int:
        purged = self.coordinator.claims.sweep() + self.matcher.sweep()
        if purged:
            logger.debug("expired_entries_purged", extra={"extra_fields": {"count": purged}})
        return purged

    def _schedule_sweep(self) -> None:
        schedule_sweep(self.scheduler, self.sweep, self.settings.coordinator.sweep_interval_s)

    def _handle_signal(self, signum: int) -> None:
        logger.info("worker_signal_received", extra={"extra_fields": {"signal": signum}})
        self.request_stop()

    def request_stop(self) -> None:
        if self._stop_requested is not None:
            self._stop_requested.set()

    async def start(self) -> None:
        if self._started:
            return
        await self.broker.start()
        await self.coordinator.start()
        await self.matcher.start()
        self._schedule_sweep()
        self.scheduler.start()
        self._started = True
        logger.info("worker_started")

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.matcher.stop()
        await self.coordinator.stop()
        await self.broker.stop()
        await close_collaborator(self.registry)
        await close_collaborator(self.invoker)
        logger.info("worker_stopped")

    async def run_forever(self) -> None:
        self._stop_requested = asyncio.Event()
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self._handle_signal, signum)
        try:
            await self.start()
            await self._stop_requested.wait()
        finally:
            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(signum)
            await self.stop()


def run() -> None:
    settings = load_settings()
    configure_logging(settings.log, settings.state_path)
    asyncio.run(Worker(settings).run_forever())


if __name__ == "__main__":
    run()
