"""Node registry — the fixed set of nodes the bot knows about.

Loaded once at startup (from a YAML file or the built-in defaults) and
read-only afterwards. The orchestrator receives the registry explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_NODES = (
    ("127.0.0.1", 8080),
    ("164.92.219.216", 6996),
)


class NodeRegistryError(Exception):
    """Raised when the registry cannot be built at startup."""


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Node:
    """A remote endpoint exposing a health route."""

    host: str
    port: int

    def __post_init__(self) -> None:
        if not isinstance(self.host, str) or not self.host.strip():
            raise ValueError("Node host must be a non-empty string")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"Node port must be an integer, got {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Node port out of range (1-65535): {self.port}")

    def http_uri(self, path: str, scheme: str = "http") -> str:
        """Build ``scheme://host:port/path`` for this node."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{scheme}://{host}:{self.port}/{path.lstrip('/')}"

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


# ── Registry ─────────────────────────────────────────────────────────────────


class NodeRegistry:
    """Immutable, insertion-ordered set of nodes."""

    def __init__(self, nodes: Iterable[Node] = ()) -> None:
        # dict keys give set semantics while keeping first-seen order
        self._nodes: tuple[Node, ...] = tuple(dict.fromkeys(nodes))

    def visible_nodes(self, chat_id: int) -> tuple[Node, ...]:
        """Nodes visible to ``chat_id``.

        There is no per-chat access list yet, so every chat sees every
        known node and ``chat_id`` is unused.
        """
        return self._nodes

    @property
    def nodes(self) -> tuple[Node, ...]:
        return self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        return node in self._nodes

    def __repr__(self) -> str:
        return f"NodeRegistry({', '.join(str(n) for n in self._nodes)})"


def default_registry() -> NodeRegistry:
    """Registry with the built-in node list."""
    return NodeRegistry(Node(host, port) for host, port in DEFAULT_NODES)


def load_registry(path: Path | str) -> NodeRegistry:
    """Parse a nodes YAML file into a registry.

    Expected shape::

        nodes:
          - host: 127.0.0.1
            port: 8080

    Any problem is a startup failure and raises ``NodeRegistryError``.
    """
    path = Path(path)
    if not path.exists():
        raise NodeRegistryError(f"Nodes file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise NodeRegistryError(f"Failed to parse {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise NodeRegistryError(f"{path}: top level must be a mapping")

    nodes = []
    for i, entry in enumerate(raw.get("nodes") or []):
        try:
            nodes.append(_parse_node(entry))
        except (TypeError, ValueError, KeyError) as e:
            raise NodeRegistryError(f"{path}: malformed node entry #{i}: {e}") from e

    registry = NodeRegistry(nodes)
    logger.info("Loaded %d nodes from %s", len(registry), path)
    return registry


def build_registry(nodes_file: str = "") -> NodeRegistry:
    """Registry from ``nodes_file`` if set, else the defaults."""
    if nodes_file:
        return load_registry(nodes_file)
    registry = default_registry()
    logger.info("Using %d built-in nodes", len(registry))
    return registry


# ── Parsers ──────────────────────────────────────────────────────────────────


def _parse_node(raw: Any) -> Node:
    if isinstance(raw, str):
        # Shorthand: "host:port"
        host, sep, port = raw.rpartition(":")
        if not sep:
            raise ValueError(f"expected 'host:port', got {raw!r}")
        return Node(host=host.strip("[]"), port=int(port))
    if not isinstance(raw, dict):
        raise TypeError(f"expected mapping or 'host:port' string, got {type(raw).__name__}")
    return Node(host=str(raw["host"]), port=int(raw["port"]))
