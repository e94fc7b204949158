"""Configuration management for Switchboard."""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # API Settings
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    default_model_name: str = Field(default="switchboard", alias="DEFAULT_MODEL_NAME")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        alias="LOG_FORMAT",
    )

    # Routing
    default_agent_id: str | None = Field(default=None, alias="DEFAULT_AGENT_ID")
    use_semantic_matching: bool = Field(default=True, alias="USE_SEMANTIC_MATCHING")
    semantic_threshold: float = Field(default=0.6, ge=0.0, le=1.0, alias="SEMANTIC_THRESHOLD")

    # Message processing
    max_message_length: int = Field(default=1_000_000, gt=0, alias="MAX_MESSAGE_LENGTH")
    max_handoff_depth: int = Field(default=10, ge=0, alias="MAX_HANDOFF_DEPTH")
    require_conversation_id: bool = Field(default=False, alias="REQUIRE_CONVERSATION_ID")
    sequential_visibility: bool = Field(default=True, alias="SEQUENTIAL_VISIBILITY")

    # Observability
    service_name: str = Field(default="switchboard", alias="SERVICE_NAME")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    enable_telemetry: bool = Field(default=False, alias="ENABLE_TELEMETRY")
    otel_exporter_otlp_endpoint: str | None = Field(
        default=None, alias="OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    otel_sample_ratio: float | None = Field(
        default=None, ge=0.0, le=1.0, alias="OTEL_SAMPLE_RATIO"
    )  # None = 1.0 in development, 0.1 elsewhere

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str | None) -> str:
        """Normalize log level and reject unknown names."""
        if value is None:
            return "INFO"
        normalized = str(value).strip().upper()
        if normalized not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {value!r}")
        return normalized


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
