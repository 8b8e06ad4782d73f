from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from toolrelay.core.broker.base import Broker
from toolrelay.core.errors import TransportError
from toolrelay.core.events.schemas import RequestEvent
from toolrelay.core.logging.context import log_context

from .normalize import normalize_query

logger = logging.getLogger("toolrelay.ingress")


class Ingress:
    """Normalizes raw queries and publishes them as request events."""

    def __init__(self, broker: Broker, topic: str = "user-requests") -> None:
        self.broker = broker
        self.topic = topic

    async def submit(
        self,
        query: str,
        session_id: str | None = None,
        context_snapshot: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        if not query or not query.strip():
            raise ValueError("query must be a non-empty string")

        request_id = str(uuid4())
        event = RequestEvent(
            request_id=request_id,
            normalized_query=normalize_query(query),
            session_id=session_id,
            context_snapshot=context_snapshot,
            metadata=metadata,
        )

        with log_context(request_id=request_id, session_id=session_id, component="ingress"):
            try:
                await self.broker.publish(
                    self.topic,
                    key=request_id,
                    value=event.to_wire(),
                    headers={"requestId": request_id, "sessionId": session_id or ""},
                )
            except TransportError:
                logger.exception("user_request_publish_failed", extra={"extra_fields": {"topic": self.topic}})
                raise
            logger.info("user_request_published", extra={"extra_fields": {"query_preview": event.normalized_query[:50]}})
        return request_id
