"""Health prober — one bounded HTTP GET against a node's health route.

The prober only reports *whether* a response came back and which status it
carried. Deciding what a status means is left to the formatter.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Union

import httpx

from lurkbot.nodes.registry import Node

logger = logging.getLogger(__name__)

HEALTHCHECK_PATH = "/healthcheck"


# ── Outcomes ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Responded:
    """The node answered with an HTTP status."""

    status_code: int


@dataclass(frozen=True)
class Failed:
    """No response: connect error, timeout, or other I/O failure."""

    reason: str


HealthcheckOutcome = Union[Responded, Failed]


# ── Prober ───────────────────────────────────────────────────────────────────


class HealthProber:
    """Sends healthcheck probes over a shared ``httpx.AsyncClient``.

    Two timeouts apply: ``connect_timeout`` bounds connection setup and
    ``request_timeout`` bounds the whole request.
    """

    def __init__(
        self,
        connect_timeout: float = 1.0,
        request_timeout: float = 1.0,
        scheme: str = "http",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout
        self.scheme = scheme
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout, connect=connect_timeout),
        )

    async def probe(self, node: Node) -> HealthcheckOutcome:
        """Probe ``node`` once. Never raises except on cancellation."""
        url = node.http_uri(HEALTHCHECK_PATH, scheme=self.scheme)
        try:
            logger.debug("Sending GET request to %s", url)
            resp = await asyncio.wait_for(self._get(url), timeout=self.request_timeout)
        except asyncio.TimeoutError:
            logger.warning("Healthcheck %s timed out after %.1fs", url, self.request_timeout)
            return Failed(f"request timed out after {self.request_timeout:g}s")
        except Exception as e:
            logger.warning("Healthcheck %s failed: %s: %s", url, type(e).__name__, e)
            return Failed(_reason(e))

        logger.debug("Healthcheck %s responded %d", url, resp.status_code)
        return Responded(resp.status_code)

    async def _get(self, url: str) -> httpx.Response:
        # Body is irrelevant; stream so it is never buffered.
        async with self._client.stream(
            "GET",
            url,
            timeout=httpx.Timeout(self.request_timeout, connect=self.connect_timeout),
        ) as resp:
            return resp

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HealthProber:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


def _reason(exc: BaseException) -> str:
    """Human-readable failure text for an exception."""
    msg = str(exc).strip()
    return msg or type(exc).__name__
