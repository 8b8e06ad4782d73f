from .schemas import (
    TOOL_READY,
    PlanEvent,
    PlanStep,
    RequestEvent,
    ResultEvent,
    ResultStatus,
    ToolSignal,
    create_result_event,
    utc_now_iso,
)

__all__ = [
    "TOOL_READY",
    "PlanEvent",
    "PlanStep",
    "RequestEvent",
    "ResultEvent",
    "ResultStatus",
    "ToolSignal",
    "create_result_event",
    "utc_now_iso",
]
