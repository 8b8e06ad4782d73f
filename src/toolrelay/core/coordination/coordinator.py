from __future__ import annotations

import logging

from toolrelay.core.broker.base import Broker, BrokerMessage, ConsumerLoop
from toolrelay.core.config import TopicSettings
from toolrelay.core.events.schemas import TOOL_READY, PlanEvent, ResultEvent, ToolSignal, create_result_event
from toolrelay.core.invocation.base import ToolInvoker
from toolrelay.core.logging.context import log_context

from .claims import ClaimTable

logger = logging.getLogger("toolrelay.coordination")


class Coordinator:
    """Resolves each request exactly once from tool signals or plans.

    Whichever event claims the request first decides the outcome; later events
    for the same request are discarded.
    """

    def __init__(
        self,
        broker: Broker,
        invoker: ToolInvoker,
        claims: ClaimTable | None = None,
        *,
        topics: TopicSettings | None = None,
        group_id: str = "orchestrator-coordinator",
    ) -> None:
        self.broker = broker
        self.invoker = invoker
        self.claims = claims or ClaimTable()
        self.topics = topics or TopicSettings()
        self._loop = ConsumerLoop(
            broker,
            [self.topics.tool_signals, self.topics.orchestrator_plans],
            group_id,
            self._on_message,
            component="coordinator",
        )

    @property
    def running(self) -> bool:
        return self._loop.running

    async def start(self) -> None:
        await self._loop.start()

    async def stop(self) -> None:
        await self._loop.stop()
        self.claims.clear()

    async def handle_tool_signal(self, signal: ToolSignal) -> ResultEvent | None:
        if signal.status != TOOL_READY:
            logger.info("tool_signal_skipped", extra={"extra_fields": {"status": signal.status}})
            return None
        if not self.claims.claim(signal.request_id, "tool"):
            logger.info("tool_signal_ignored", extra={"extra_fields": {"claimed_by": self.claims.reason_for(signal.request_id)}})
            return None

        tool_path = f"{signal.server_id}/{signal.tool_id}"
        logger.info("tool_invocation_started", extra={"extra_fields": {"tool_path": tool_path}})
        try:
            result = await self.invoker.invoke(signal.server_id, signal.tool_id, signal.params or {})
        except Exception as exc:
            logger.exception("tool_invocation_failed", extra={"extra_fields": {"tool_path": tool_path}})
            event = create_result_event(
                request_id=signal.request_id,
                status="failed",
                tool=signal.tool_id,
                tool_path=tool_path,
                error=str(exc),
            )
        else:
            event = create_result_event(
                request_id=signal.request_id,
                status="tool",
                tool=signal.tool_id,
                tool_path=tool_path,
                result=result,
            )
        await self._publish_result(event)
        return event

    async def handle_plan(self, plan: PlanEvent) -> ResultEvent | None:
        if not self.claims.claim(plan.request_id, "plan"):
            logger.info("plan_ignored", extra={"extra_fields": {"claimed_by": self.claims.reason_for(plan.request_id)}})
            return None

        logger.info("plan_accepted", extra={"extra_fields": {"step_count": len(plan.plan)}})
        event = create_result_event(request_id=plan.request_id, status="plan", plan=plan)
        await self._publish_result(event)
        return event

    async def _publish_result(self, event: ResultEvent) -> None:
        await self.broker.publish(
            self.topics.orchestrator_results,
            key=event.request_id,
            value=event.to_wire(),
            headers={"requestId": event.request_id, "status": event.status},
        )
        logger.info("result_published", extra={"extra_fields": {"status": event.status}})

    async def _on_message(self, message: BrokerMessage) -> None:
        if message.topic == self.topics.tool_signals:
            signal = ToolSignal.model_validate(message.value)
            with log_context(request_id=signal.request_id):
                await self.handle_tool_signal(signal)
        elif message.topic == self.topics.orchestrator_plans:
            plan = PlanEvent.model_validate(message.value)
            with log_context(request_id=plan.request_id):
                await self.handle_plan(plan)
        else:
            logger.warning("unexpected_topic", extra={"extra_fields": {"topic": message.topic}})
