"""Gateway configuration using pydantic-settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid",
    )

    # Application Configuration
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    debug: bool = True

    # Execution
    default_tool_timeout_seconds: float = Field(
        default=8.0,
        gt=0,
        description="Timeout applied to tools that do not declare their own",
    )

    # Policy
    confidence_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Calls whose overall_confidence is below this need confirmation",
    )

    # Proposals
    proposal_ttl_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Lifetime of a pending proposal; None means proposals never expire",
    )

    # Audit
    audit_default_limit: int = Field(
        default=20,
        ge=1,
        description="Number of entries returned by audit listings when no limit is given",
    )

    # HTTP interface
    http_host: str = "0.0.0.0"
    http_port: int = 8000

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


# Global settings instance
settings = Settings()
