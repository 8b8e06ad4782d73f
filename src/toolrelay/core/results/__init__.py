from .consumer import DEFAULT_TIMEOUT_MS, ResultConsumer

__all__ = ["DEFAULT_TIMEOUT_MS", "ResultConsumer"]
