from __future__ import annotations

import logging
import os

import pytest

from toolrelay.core.registry.base import Server, ToolInfo
from toolrelay.core.registry.memory import InMemoryRegistry

EXA_SERVER_ID = "io.github.exa-labs/exa-mcp-server"
PLAYWRIGHT_SERVER_ID = "com.microsoft.playwright/mcp"


@pytest.fixture(autouse=True)
def clear_toolrelay_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("TOOLRELAY_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_toolrelay_logger():
    yield
    logger = logging.getLogger("toolrelay")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def catalog_servers() -> list[Server]:
    return [
        Server(
            server_id=EXA_SERVER_ID,
            name="Exa Search",
            description="Neural web search",
            tools=[ToolInfo(name="web_search_exa", description="Search the web with Exa")],
        ),
        Server(
            server_id=PLAYWRIGHT_SERVER_ID,
            name="Playwright",
            description="Browser automation",
            tools=[ToolInfo(name="browser_navigate", description="Navigate a browser to a URL")],
        ),
        Server(
            server_id="weather/server",
            name="Weather",
            description="Weather forecasts",
            tools=[ToolInfo(name="forecast", description="Weather forecast lookup")],
        ),
    ]


@pytest.fixture
def registry(catalog_servers: list[Server]) -> InMemoryRegistry:
    return InMemoryRegistry(catalog_servers)
