from __future__ import annotations

import asyncio
import logging

from toolrelay.core.broker.base import Broker, BrokerMessage, ConsumerLoop
from toolrelay.core.errors import DuplicateWaitError, ResultConsumerNotRunning, WaitTimeout
from toolrelay.core.events.schemas import ResultEvent
from toolrelay.core.logging.context import log_context

logger = logging.getLogger("toolrelay.results")

DEFAULT_TIMEOUT_MS = 20000


class ResultConsumer:
    """Single long-lived subscription that hands results to waiting callers.

    Waits are keyed by request id; at most one may be outstanding per id. The
    pending table is only touched from the event loop.
    """

    def __init__(
        self,
        broker: Broker,
        *,
        topic: str = "orchestrator-results",
        group_id: str = "orchestrator-result-consumer",
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.default_timeout_ms = default_timeout_ms
        self._pending: dict[str, asyncio.Future[ResultEvent]] = {}
        self._loop = ConsumerLoop(broker, [topic], group_id, self._on_message, component="result-consumer")

    @property
    def is_running(self) -> bool:
        return self._loop.running

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        await self._loop.start()

    async def stop(self) -> None:
        await self._loop.stop()
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(ResultConsumerNotRunning("Result consumer is not running"))
        if pending:
            logger.info("pending_waits_failed", extra={"extra_fields": {"count": len(pending)}})

    async def wait_for(self, request_id: str, timeout_ms: int | None = None) -> ResultEvent:
        if not self.is_running:
            raise ResultConsumerNotRunning("Result consumer is not running")
        if request_id in self._pending:
            raise DuplicateWaitError(request_id)

        effective_timeout_ms = self.default_timeout_ms if timeout_ms is None else timeout_ms
        future: asyncio.Future[ResultEvent] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        logger.debug("result_wait_started", extra={"extra_fields": {"pending": len(self._pending)}})
        try:
            return await asyncio.wait_for(future, timeout=effective_timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise WaitTimeout(request_id, effective_timeout_ms) from None
        finally:
            if self._pending.get(request_id) is future:
                del self._pending[request_id]

    def deliver(self, event: ResultEvent) -> bool:
        """Resolve the wait for `event.request_id`; False when nobody is waiting."""
        future = self._pending.pop(event.request_id, None)
        if future is None or future.done():
            logger.debug("result_unmatched", extra={"extra_fields": {"status": event.status}})
            return False
        future.set_result(event)
        logger.info("result_delivered", extra={"extra_fields": {"status": event.status}})
        return True

    async def _on_message(self, message: BrokerMessage) -> None:
        event = ResultEvent.model_validate(message.value)
        with log_context(request_id=event.request_id):
            self.deliver(event)
