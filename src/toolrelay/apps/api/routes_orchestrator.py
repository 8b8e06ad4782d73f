from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from toolrelay.core.errors import ResultConsumerNotRunning, TransportError, WaitTimeout
from toolrelay.core.logging.context import log_context
from toolrelay.core.runtime import OrchestratorClient

from .deps import get_orchestrator_client

logger = logging.getLogger("toolrelay.api.orchestrator")

router = APIRouter()

MAX_QUERY_TIMEOUT_MS = 120_000


class QueryRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    query: Any = None
    session_id: str | None = None
    context_snapshot: dict[str, Any] | None = None
    timeout_ms: int | None = Field(default=None, ge=1, le=MAX_QUERY_TIMEOUT_MS)


@router.post("/query")
async def query(request: QueryRequest, client: OrchestratorClient = Depends(get_orchestrator_client)) -> JSONResponse:
    if not isinstance(request.query, str) or not request.query.strip():
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "message": "Query is required and must be a string"},
        )

    with log_context(session_id=request.session_id):
        try:
            result = await client.submit_and_wait(
                request.query,
                session_id=request.session_id,
                context_snapshot=request.context_snapshot,
                timeout_ms=request.timeout_ms,
            )
        except WaitTimeout as exc:
            return JSONResponse(
                status_code=504,
                content={"error": "Timeout", "message": str(exc), "requestId": exc.request_id},
            )
        except (ResultConsumerNotRunning, TransportError) as exc:
            logger.exception("orchestrator_query_unavailable")
            return JSONResponse(status_code=503, content={"error": "Unavailable", "message": str(exc)})

    if result.status == "failed" or result.error:
        return JSONResponse(
            status_code=500,
            content={
                "error": "Orchestration failed",
                "message": result.error or "Unknown error",
                "requestId": result.request_id,
            },
        )

    payload: dict[str, Any] = {
        "success": True,
        "requestId": result.request_id,
        "status": result.status,
        "result": result.result,
        "tool": result.tool,
    }
    if result.plan is not None:
        payload["plan"] = result.plan.to_wire()
    return JSONResponse(status_code=200, content=payload)
