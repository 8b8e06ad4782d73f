from .gateway import Ingress
from .normalize import normalize_query

__all__ = ["Ingress", "normalize_query"]
