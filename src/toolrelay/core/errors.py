from __future__ import annotations


class ToolRelayError(RuntimeError):
    """Base error for orchestration pipeline operations."""


class TransportError(ToolRelayError):
    """Raised when publishing to or subscribing on the broker fails."""


class InvocationError(ToolRelayError):
    def __init__(self, message: str, server_id: str | None = None, tool_id: str | None = None) -> None:
        super().__init__(message)
        self.server_id = server_id
        self.tool_id = tool_id


class WaitTimeout(ToolRelayError):
    def __init__(self, request_id: str, timeout_ms: int) -> None:
        super().__init__("Request timed out waiting for orchestrator result")
        self.request_id = request_id
        self.timeout_ms = timeout_ms


class ResultConsumerNotRunning(ToolRelayError):
    """Raised when a caller waits while the result subscription is down."""


class DuplicateWaitError(ToolRelayError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"A wait for request {request_id} is already pending")
        self.request_id = request_id


class HttpError(ToolRelayError):
    """Base error for requests to the registry and invoke services."""


class HttpStatusError(HttpError):
    def __init__(self, message: str, status_code: int | None = None, body: object | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class HttpNetworkError(HttpError):
    """Raised when a request cannot reach the service, after retries."""
