"""Configuration loader for the orchestration pipeline."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field


class TopicSettings(BaseModel):
    user_requests: str = "user-requests"
    tool_signals: str = "tool-signals"
    orchestrator_plans: str = "orchestrator-plans"
    orchestrator_results: str = "orchestrator-results"


class KafkaSettings(BaseModel):
    brokers: list[str] = Field(default_factory=lambda: ["localhost:9092"])
    client_id: str = "toolrelay"
    matcher_group: str = "mcp-matcher"
    coordinator_group: str = "orchestrator-coordinator"
    result_group: str = "orchestrator-result-consumer"
    topics: TopicSettings = Field(default_factory=TopicSettings)


class RuleSettings(BaseModel):
    pattern: str
    tool_id: str
    server_id: str
    confidence: float = Field(ge=0.0, le=1.0)


class MatcherSettings(BaseModel):
    threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    rules: list[RuleSettings] | None = None
    signalled_ttl_s: float = Field(default=300.0, gt=0.0)


class CoordinatorSettings(BaseModel):
    claim_ttl_s: float = Field(default=300.0, gt=0.0)
    sweep_interval_s: float = Field(default=60.0, gt=0.0)


class ResultSettings(BaseModel):
    timeout_ms: int = Field(default=20000, ge=1)


class RegistrySettings(BaseModel):
    url: str | None = None
    path: str | None = None


class InvocationSettings(BaseModel):
    url: str | None = None
    timeout_s: float = Field(default=30.0, gt=0.0)
    retries: int = Field(default=0, ge=0)


class HttpSettings(BaseModel):
    timeout_s: float = Field(default=15.0, gt=0.0)
    connect_timeout_s: float = Field(default=5.0, gt=0.0)
    retries: int = Field(default=2, ge=0)
    backoff_base_s: float = Field(default=0.25, ge=0.0)
    backoff_max_s: float = Field(default=2.0, ge=0.0)
    user_agent: str = "toolrelay/0.1"


class LogSettings(BaseModel):
    level: str = "INFO"
    to_file: bool = False
    # Defaults to <state_dir>/logs.
    dir: str | None = None
    max_bytes: int = Field(default=5_000_000, gt=0)
    backup_count: int = Field(default=5, ge=0)


class ApiSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    # None runs the pipeline in-process only for the memory broker.
    pipeline: bool | None = None


class Settings(BaseModel):
    broker: Literal["kafka", "memory"] = "kafka"
    state_dir: str = "~/.toolrelay"
    log: LogSettings = Field(default_factory=LogSettings)
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)
    matcher: MatcherSettings = Field(default_factory=MatcherSettings)
    coordinator: CoordinatorSettings = Field(default_factory=CoordinatorSettings)
    results: ResultSettings = Field(default_factory=ResultSettings)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    invocation: InvocationSettings = Field(default_factory=InvocationSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser()

    @property
    def api_pipeline_enabled(self) -> bool:
        if self.api.pipeline is None:
            return self.broker == "memory"
        return self.api.pipeline


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from an optional YAML file, then apply TOOLRELAY_* overrides."""
    configured = path or os.getenv("TOOLRELAY_CONFIG")
    data: dict[str, Any] = {}
    if configured:
        cfg_path = Path(configured).expanduser()
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    settings = Settings.model_validate(data)
    _apply_env_overrides(settings)
    # Assignment skips field bounds; validate the merged result again.
    return Settings.model_validate(settings.model_dump())


def _apply_env_overrides(settings: Settings) -> None:
    broker = os.getenv("TOOLRELAY_BROKER")
    if broker and broker.strip().casefold() in {"kafka", "memory"}:
        settings.broker = broker.strip().casefold()  # type: ignore[assignment]

    brokers = os.getenv("TOOLRELAY_KAFKA_BROKERS")
    if brokers:
        settings.kafka.brokers = [item.strip() for item in brokers.split(",") if item.strip()]
    settings.kafka.client_id = os.getenv("TOOLRELAY_KAFKA_CLIENT_ID", settings.kafka.client_id)

    settings.state_dir = os.getenv("TOOLRELAY_STATE_DIR", settings.state_dir)
    settings.log.level = os.getenv("TOOLRELAY_LOG_LEVEL", settings.log.level)
    log_to_file = os.getenv("TOOLRELAY_LOG_TO_FILE")
    if log_to_file is not None and log_to_file.strip():
        settings.log.to_file = log_to_file.strip().casefold() == "on"
    settings.log.dir = os.getenv("TOOLRELAY_LOG_DIR", settings.log.dir)
    settings.log.max_bytes = _get_int_env("TOOLRELAY_LOG_MAX_BYTES", settings.log.max_bytes)
    settings.log.backup_count = _get_int_env("TOOLRELAY_LOG_BACKUP_COUNT", settings.log.backup_count)

    settings.http.timeout_s = _get_float_env("TOOLRELAY_HTTP_TIMEOUT_S", settings.http.timeout_s)
    settings.http.retries = _get_int_env("TOOLRELAY_HTTP_RETRIES", settings.http.retries)
    settings.http.user_agent = os.getenv("TOOLRELAY_HTTP_USER_AGENT", settings.http.user_agent)

    settings.registry.url = os.getenv("TOOLRELAY_REGISTRY_URL", settings.registry.url)
    settings.registry.path = os.getenv("TOOLRELAY_REGISTRY_PATH", settings.registry.path)
    settings.invocation.url = os.getenv("TOOLRELAY_INVOKE_URL", settings.invocation.url)

    settings.matcher.threshold = _get_float_env("TOOLRELAY_MATCH_THRESHOLD", settings.matcher.threshold)
    settings.results.timeout_ms = _get_int_env("TOOLRELAY_RESULT_TIMEOUT_MS", settings.results.timeout_ms)
    settings.coordinator.claim_ttl_s = _get_float_env("TOOLRELAY_CLAIM_TTL_S", settings.coordinator.claim_ttl_s)

    settings.api.host = os.getenv("TOOLRELAY_API_HOST", settings.api.host)
    settings.api.port = _get_int_env("TOOLRELAY_API_PORT", settings.api.port)
    pipeline = os.getenv("TOOLRELAY_API_PIPELINE")
    if pipeline is not None and pipeline.strip():
        settings.api.pipeline = pipeline.strip().casefold() == "on"


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default
