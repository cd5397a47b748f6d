"""
Configuration models for fanlog using Pydantic v2 Settings.

Every field can be supplied as a constructor argument or through the
environment, e.g. ``FANLOG_SERVICE=api`` or ``FANLOG_LOKI__BATCH_SIZE=50``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PUSH_PATH = "/loki/api/v1/push"


class LokiSettings(BaseModel):
    """Remote sink tuning. The sink is only built when ``url`` is set."""

    url: str | None = Field(
        default=None, description="Loki base URL, e.g. http://localhost:3100"
    )
    push_path: str = Field(default=DEFAULT_PUSH_PATH)
    batch_interval_ms: int = Field(
        default=5000,
        ge=1,
        description="Milliseconds between timer-triggered batch sends",
    )
    batch_size: int = Field(
        default=100,
        ge=1,
        description="Pending entries that trigger an immediate send",
    )
    retries: int = Field(
        default=3,
        ge=0,
        description="Additional attempts after the first failed delivery",
    )
    timeout_ms: int = Field(
        default=30_000,
        gt=0,
        description="Hard timeout for a single delivery attempt",
    )
    compress: bool = Field(default=True, description="Gzip request bodies")
    basic_auth: str | None = Field(
        default=None, description="Credentials as 'user:password'"
    )
    labels: dict[str, str] = Field(
        default_factory=dict, description="Extra static stream labels"
    )


class Settings(BaseSettings):
    """Top-level logger configuration."""

    service: str = Field(description="Service name; becomes the 'service' label")
    environment: str | None = Field(default=None)
    host: str | None = Field(default=None)

    enable_console: bool = Field(default=True)
    console_colors: bool | None = Field(
        default=None,
        description="Force ANSI colors on/off; None detects a TTY",
    )
    enable_file: bool = Field(
        default=True, description="Only effective when 'file' is set"
    )
    file: str | None = Field(default=None, description="Path of the JSONL log file")
    enable_loki: bool = Field(
        default=True, description="Only effective when 'loki.url' is set"
    )
    loki: LokiSettings = Field(default_factory=LokiSettings)

    enable_metrics: bool = Field(
        default=False, description="Expose Prometheus counters for delivery"
    )
    internal_logging_enabled: bool = Field(
        default=True,
        description="Emit diagnostics for sink failures and dropped batches",
    )

    model_config = SettingsConfigDict(
        env_prefix="FANLOG_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("service")
    @classmethod
    def _ensure_service_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("service must not be empty")
        return value

    def static_labels(self) -> dict[str, str]:
        """Loki labels shared by every stream: environment/host, then extras."""
        labels: dict[str, str] = {}
        if self.environment:
            labels["environment"] = self.environment
        if self.host:
            labels["host"] = self.host
        labels.update(self.loki.labels)
        return labels

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class _DiagnosticsSettings(BaseSettings):
    internal_logging_enabled: bool = True

    model_config = SettingsConfigDict(
        env_prefix="FANLOG_", extra="ignore", case_sensitive=False
    )


def internal_logging_enabled_from_env() -> bool:
    """Read only the diagnostics toggle; 'service' is not required here."""
    return _DiagnosticsSettings().internal_logging_enabled
