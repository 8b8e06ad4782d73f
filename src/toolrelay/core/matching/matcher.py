from __future__ import annotations

import logging
import time
from collections.abc import Callable

from toolrelay.core.broker.base import Broker, BrokerMessage, ConsumerLoop
from toolrelay.core.cache.ttl import TTLCache
from toolrelay.core.config import TopicSettings
from toolrelay.core.errors import TransportError
from toolrelay.core.events.schemas import TOOL_READY, RequestEvent, ToolSignal
from toolrelay.core.logging.context import log_context
from toolrelay.core.registry.base import RegistryLookup

from .rules import DEFAULT_RULES, KeywordRule, RuleMatch, extract_search_params, match_keyword_rule
from .similarity import ToolIndexEntry, build_tool_index, find_best_match

logger = logging.getLogger("toolrelay.matching")


class Matcher:
    """Turns request events into at most one TOOL_READY signal each.

    Keyword rules are tried first; the catalog similarity search only runs when
    no rule reaches the threshold. Every accepted match is re-checked against
    the registry before the signal goes out.
    """

    def __init__(
        self,
        broker: Broker,
        registry: RegistryLookup,
        *,
        topics: TopicSettings | None = None,
        group_id: str = "mcp-matcher",
        threshold: float = 0.7,
        rules: tuple[KeywordRule, ...] = DEFAULT_RULES,
        signalled_ttl_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.broker = broker
        self.registry = registry
        self.topics = topics or TopicSettings()
        self.threshold = threshold
        self.rules = rules
        self.index: list[ToolIndexEntry] = []
        self._signalled = TTLCache(signalled_ttl_s, clock=clock)
        self._loop = ConsumerLoop(
            broker,
            [self.topics.user_requests],
            group_id,
            self._on_message,
            component="matcher",
        )

    @property
    def running(self) -> bool:
        return self._loop.running

    async def start(self) -> None:
        self.index = build_tool_index(await self.registry.list_servers())
        await self._loop.start()

    async def stop(self) -> None:
        await self._loop.stop()

    def sweep(self) -> int:
        return self._signalled.purge_expired()

    def match(self, query: str) -> RuleMatch | None:
        rule_match = match_keyword_rule(query, self.rules)
        if rule_match is not None and rule_match.confidence >= self.threshold:
            logger.info(
                "keyword_match",
                extra={"extra_fields": {"tool_path": f"{rule_match.server_id}/{rule_match.tool_id}", "confidence": rule_match.confidence}},
            )
            return rule_match

        best = find_best_match(query, self.index, self.threshold)
        if best is None:
            logger.info(
                "no_match",
                extra={"extra_fields": {"keyword_confidence": rule_match.confidence if rule_match else 0.0}},
            )
            return None

        logger.info(
            "similarity_match",
            extra={"extra_fields": {"tool_path": f"{best.entry.server_id}/{best.entry.tool_id}", "confidence": best.confidence}},
        )
        return RuleMatch(
            tool_id=best.entry.tool_id,
            server_id=best.entry.server_id,
            confidence=min(1.0, best.confidence),
            params=extract_search_params(query),
        )

    async def handle_request(self, event: RequestEvent) -> ToolSignal | None:
        request_id = event.request_id
        if request_id in self._signalled:
            logger.info("duplicate_request_skipped")
            return None

        match = self.match(event.normalized_query)
        if match is None:
            return None

        server = await self.registry.get_server(match.server_id)
        if server is None or not server.has_tool(match.tool_id):
            logger.warning(
                "stale_catalog_match_dropped",
                extra={"extra_fields": {"server_id": match.server_id, "tool_id": match.tool_id, "server_found": server is not None}},
            )
            return None

        if not self._signalled.set_if_absent(request_id, match.tool_id):
            logger.info("duplicate_request_skipped")
            return None

        signal = ToolSignal(
            request_id=request_id,
            tool_id=match.tool_id,
            server_id=match.server_id,
            params=match.params,
            confidence=match.confidence,
            status=TOOL_READY,
        )
        try:
            await self.broker.publish(
                self.topics.tool_signals,
                key=request_id,
                value=signal.to_wire(),
                headers={"requestId": request_id, "status": TOOL_READY},
            )
        except TransportError:
            # A redelivered request may try again.
            self._signalled.pop(request_id)
            raise

        logger.info(
            "tool_signal_emitted",
            extra={"extra_fields": {"tool_path": f"{match.server_id}/{match.tool_id}", "confidence": match.confidence}},
        )
        return signal

    async def _on_message(self, message: BrokerMessage) -> None:
        event = RequestEvent.model_validate(message.value)
        with log_context(request_id=event.request_id, session_id=event.session_id):
            await self.handle_request(event)
