"""Agent settings using Pydantic BaseSettings."""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENDPOINT = "app.tracekit.dev"

# Fixed metric buffering policy
METRICS_FLUSH_THRESHOLD = 100
METRICS_FLUSH_INTERVAL_SECONDS = 10.0


class TracekitSettings(BaseSettings):
    """Agent configuration loaded from TRACEKIT_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRACEKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Identity
    api_key: str = Field(default="")
    service_name: str = Field(default="")
    environment: str = Field(default="production")
    service_version: str = Field(default="1.0.0")

    # Control plane
    endpoint: str = Field(default=DEFAULT_ENDPOINT)
    use_ssl: bool = Field(default=True)
    http_timeout_seconds: float = Field(default=10.0)

    # Code monitoring
    enable_code_monitoring: bool = Field(default=True)
    code_monitoring_poll_interval_seconds: float = Field(default=30.0)

    # Local development UI
    local_ui_port: int = Field(default=9999)
    local_ui_detection: bool = Field(default=True)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("code_monitoring_poll_interval_seconds", "http_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("api_key", "service_name", "endpoint")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return (v or "").strip()

    def validation_errors(self) -> List[str]:
        """Return problems that prevent the agent from starting."""
        errors: List[str] = []
        if not self.api_key:
            errors.append("api_key is required")
        if not self.service_name:
            errors.append("service_name is required")
        if not self.endpoint:
            errors.append("endpoint cannot be empty")
        return errors
