"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from lurkbot.health.prober import HealthProber
from lurkbot.nodes.registry import Node, NodeRegistry

LOCAL = Node("127.0.0.1", 8080)
REMOTE = Node("10.0.0.1", 6996)


def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def status(code: int) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code, text="ok" if code == 200 else "nope")
    return handler


def by_host(routes: dict[str, Callable[[httpx.Request], Any]]) -> Callable[[httpx.Request], Any]:
    """Dispatch a mock request to a handler keyed on ``host:port``."""
    def handler(request: httpx.Request) -> Any:
        return routes[f"{request.url.host}:{request.url.port}"](request)
    return handler


@pytest.fixture
def make_prober() -> Callable[..., HealthProber]:
    """Build a HealthProber whose client talks to an httpx.MockTransport."""
    def _make(handler: Callable[[httpx.Request], Any], **kwargs: Any) -> HealthProber:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return HealthProber(client=client, **kwargs)
    return _make


@pytest.fixture
def registry() -> NodeRegistry:
    return NodeRegistry([LOCAL, REMOTE])
