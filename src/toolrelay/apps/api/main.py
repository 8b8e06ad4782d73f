from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request

from toolrelay.core.logging import configure_logging
from toolrelay.core.logging.context import log_context

from . import deps
from .routes_orchestrator import router as orchestrator_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = deps.get_settings()
    configure_logging(settings.log, settings.state_path)
    runtime = deps.get_runtime()
    await runtime.start()
    app.state.runtime = runtime
    try:
        yield
    finally:
        await runtime.stop()


app = FastAPI(title="toolrelay API", lifespan=lifespan)
app.include_router(orchestrator_router, prefix="/orchestrator", tags=["orchestrator"])


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
    with log_context(correlation_id=correlation_id, component="api"):
        response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


@app.get("/healthz")
def healthz(request: Request) -> dict[str, object]:
    runtime = request.app.state.runtime
    return {
        "ok": runtime.results.is_running,
        "broker": runtime.settings.broker,
        "pipeline": runtime.pipeline,
        "pending_waits": runtime.results.pending_count,
    }


def run() -> None:
    settings = deps.get_settings()
    uvicorn.run("toolrelay.apps.api.main:app", host=settings.api.host, port=settings.api.port)


if __name__ == "__main__":
    run()
