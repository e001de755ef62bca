"""Shared fixtures for the Craft Docs tests.

Upstream Craft APIs are simulated with httpx.MockTransport, routing each
request to a per-host handler.
"""

from typing import Callable, Dict

import httpx
import pytest

from craft_docs import Config, DocumentConfig
from craft_docs.config import reset_config


def block(block_id: str, content: str = "", **extra) -> dict:
    """Build a Craft-like block."""
    return {"id": block_id, "type": "text", "content": content, "blocks": [], **extra}


def craft_transport(routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> httpx.MockTransport:
    """Mock transport dispatching on request host; unknown hosts refuse the connection."""

    def handler(request: httpx.Request):
        route = routes.get(request.url.host)
        if route is None:
            raise httpx.ConnectError("Connection refused", request=request)
        return route(request)

    return httpx.MockTransport(handler)


@pytest.fixture
def two_documents() -> Config:
    return Config(documents=(
        DocumentConfig(name="A", api_endpoint="http://a"),
        DocumentConfig(name="B", api_endpoint="http://b"),
    ))


@pytest.fixture
def notes_config() -> Config:
    return Config(documents=(
        DocumentConfig(name="Notes", api_endpoint="http://notes/api/v1"),
        DocumentConfig(name="Projects", api_endpoint="http://projects/api/v1/"),
    ))


@pytest.fixture(autouse=True)
def fresh_config_cache():
    reset_config()
    yield
    reset_config()
