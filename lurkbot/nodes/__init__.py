from lurkbot.nodes.registry import (
    Node,
    NodeRegistry,
    NodeRegistryError,
    build_registry,
    default_registry,
    load_registry,
)

__all__ = [
    "Node",
    "NodeRegistry",
    "NodeRegistryError",
    "build_registry",
    "default_registry",
    "load_registry",
]
