from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from toolrelay.core.config import Settings, load_settings
from toolrelay.core.runtime import OrchestratorClient, OrchestratorRuntime


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_runtime() -> OrchestratorRuntime:
    settings = get_settings()
    return OrchestratorRuntime(settings, pipeline=settings.api_pipeline_enabled)


def get_orchestrator_client(request: Request) -> OrchestratorClient:
    return request.app.state.runtime.client
