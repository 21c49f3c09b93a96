from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def join_url(base_url: str, path: str) -> str:
    """Join an analyzer base URL and an endpoint path.

    Trailing slashes on the base are trimmed and a leading slash is ensured
    on the path, so ``http://host/api/`` + ``orchestrate`` resolves to
    ``http://host/api/orchestrate``.
    """
    normalized_path = path if path.startswith("/") else f"/{path}"
    base = base_url.strip().rstrip("/")
    if not base:
        return normalized_path
    return f"{base}{normalized_path}"


class Settings(BaseSettings):
    analyzer_base_url: str = Field(
        default="http://localhost:7071/api",  # Local Functions host; MUST be set in production
        validation_alias="ANALYZER_BASE_URL",
        description="Base URL of the remote specialist analyzers",
    )
    analyzer_timeout_seconds: float = Field(default=30.0, validation_alias="ANALYZER_TIMEOUT_SECONDS")
    health_timeout_seconds: float = Field(default=6.0, validation_alias="HEALTH_TIMEOUT_SECONDS")
    orchestrate_path: str = Field(default="/orchestrate", validation_alias="ORCHESTRATE_PATH")
    analysis_full_path: str = Field(default="/analysis/full", validation_alias="ANALYSIS_FULL_PATH")
    tactical_path: str = Field(default="/agents/tactical", validation_alias="TACTICAL_PATH")
    health_path: str = Field(default="/health", validation_alias="HEALTH_PATH")
    health_preflight_enabled: bool = Field(
        default=True,
        validation_alias="HEALTH_PREFLIGHT_ENABLED",
        description="Check analyzer liveness before each analysis cycle (never blocking)",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    cors_origins: str = Field(default="", validation_alias="CORS_ORIGINS")  # Comma-separated list

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("analyzer_timeout_seconds", "health_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            logger.warning(f"Unknown LOG_LEVEL={v!r}, falling back to INFO")
            return "INFO"
        return level

    def endpoint_url(self, path: str) -> str:
        return join_url(self.analyzer_base_url, path)

    @property
    def orchestrate_url(self) -> str:
        return self.endpoint_url(self.orchestrate_path)

    @property
    def analysis_full_url(self) -> str:
        return self.endpoint_url(self.analysis_full_path)

    @property
    def tactical_url(self) -> str:
        return self.endpoint_url(self.tactical_path)

    @property
    def health_url(self) -> str:
        return self.endpoint_url(self.health_path)

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
