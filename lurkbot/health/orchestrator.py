"""Healthcheck orchestrator — fans probes out over every visible node.

One task per node, bounded by a semaphore, joined with ``asyncio.gather``.
A node's failure is recorded as its outcome and never aborts the batch.
Report entries follow registry order, not completion order.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from lurkbot.health.prober import Failed, HealthcheckOutcome, HealthProber, Responded
from lurkbot.nodes.registry import Node, NodeRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthcheckEntry:
    """Outcome of probing a single node."""

    node: Node
    outcome: HealthcheckOutcome
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class HealthcheckReport:
    """All outcomes for one healthcheck invocation, in registry order."""

    chat_id: int
    entries: tuple[HealthcheckEntry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(e.node for e in self.entries)

    def count(self, kind: type) -> int:
        return sum(1 for e in self.entries if isinstance(e.outcome, kind))


class HealthcheckOrchestrator:
    """Runs a healthcheck across the nodes visible to a chat."""

    def __init__(
        self,
        registry: NodeRegistry,
        prober: HealthProber,
        max_concurrency: int = 16,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.registry = registry
        self.prober = prober
        self.max_concurrency = max_concurrency

    async def run(self, chat_id: int) -> HealthcheckReport:
        nodes = self.registry.visible_nodes(chat_id)
        logger.debug("There's %d nodes visible for chat_id=%s", len(nodes), chat_id)

        if not nodes:
            return HealthcheckReport(chat_id=chat_id)

        t0 = time.perf_counter()
        semaphore = asyncio.Semaphore(self.max_concurrency)
        entries = await asyncio.gather(
            *(self._probe_one(node, semaphore) for node in nodes)
        )
        report = HealthcheckReport(chat_id=chat_id, entries=tuple(entries))

        logger.info(
            "Healthcheck for chat_id=%s: %d nodes, %d responded, %d failed (%.0fms)",
            chat_id,
            len(report.entries),
            report.count(Responded),
            report.count(Failed),
            (time.perf_counter() - t0) * 1000,
        )
        return report

    async def _probe_one(self, node: Node, semaphore: asyncio.Semaphore) -> HealthcheckEntry:
        async with semaphore:
            t0 = time.perf_counter()
            try:
                outcome = await self.prober.probe(node)
            except Exception as e:
                logger.exception("Probe for %s raised", node)
                outcome = Failed(str(e) or type(e).__name__)
            elapsed = (time.perf_counter() - t0) * 1000

        logger.debug("Node %s: %s (%.0fms)", node, outcome, elapsed)
        return HealthcheckEntry(node=node, outcome=outcome, elapsed_ms=round(elapsed, 1))
