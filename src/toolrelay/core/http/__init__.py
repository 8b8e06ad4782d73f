from .client import RetryPolicy, create_http_client, request_with_retry

__all__ = ["RetryPolicy", "create_http_client", "request_with_retry"]
