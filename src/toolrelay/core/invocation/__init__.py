from .base import ToolInvoker, UnconfiguredInvoker
from .http import HttpToolInvoker

__all__ = ["HttpToolInvoker", "ToolInvoker", "UnconfiguredInvoker"]
