from .base import RegistryLookup, Server, ToolInfo, UnconfiguredRegistry
from .http import HttpRegistry
from .memory import InMemoryRegistry

__all__ = [
    "HttpRegistry",
    "InMemoryRegistry",
    "RegistryLookup",
    "Server",
    "ToolInfo",
    "UnconfiguredRegistry",
]
