from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TOOL_READY = "TOOL_READY"

ResultStatus = Literal["tool", "plan", "failed"]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RequestEvent(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    request_id: str
    normalized_query: str
    session_id: str | None = None
    context_snapshot: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    timestamp: str = Field(default_factory=utc_now_iso)


class ToolSignal(_WireModel):
    request_id: str
    tool_id: str
    server_id: str
    params: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(ge=0.0, le=1.0)
    status: str = TOOL_READY
    timestamp: str = Field(default_factory=utc_now_iso)


class PlanStep(_WireModel):
    # Unknown keys from planners are forwarded verbatim.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    step_id: str | None = None
    description: str
    tool_id: str | None = None
    server_id: str | None = None
    params: dict[str, Any] | None = None


class PlanEvent(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    request_id: str
    plan: list[PlanStep] = Field(default_factory=list)
    requires_orchestration: bool | None = None
    steps: list[str] | None = None
    confidence: float | None = None
    metadata: dict[str, Any] | None = None
    timestamp: str = Field(default_factory=utc_now_iso)


class ResultEvent(_WireModel):
    request_id: str
    status: ResultStatus
    tool: str | None = None
    tool_path: str | None = None
    result: Any = None
    plan: PlanEvent | None = None
    error: str | None = None
    timestamp: str = Field(default_factory=utc_now_iso)


def create_result_event(**fields: Any) -> ResultEvent:
    fields.pop("timestamp", None)
    return ResultEvent(**fields, timestamp=utc_now_iso())
