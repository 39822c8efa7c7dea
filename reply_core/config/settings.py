"""
Runtime Settings Management

Provides environment-aware settings for the reply core: logging, the
directory used for persisted key-value state, and the optional hosted
generation provider.

Design Considerations:
- Environment variables and .env file loading via pydantic-settings
- Secrets kept in SecretStr so they never leak into logs or reprs
- Safe defaults so the core runs fully offline with no configuration
"""

from enum import Enum
from typing import Optional

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings


class EnvironmentType(str, Enum):
    """Valid environment types for configuration context."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class CoreSettings(BaseSettings):
    """
    Reply core configuration settings with validation.

    Tunable heuristics (thresholds, TTLs, retry counts) live in
    CORE_CONFIG; this class only carries deployment concerns.
    """
    ENVIRONMENT: EnvironmentType = Field(
        default=EnvironmentType.DEVELOPMENT,
        description="Runtime environment context"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_FILE: Optional[str] = Field(
        default=None,
        description="Optional log file path"
    )

    # Persistence
    STATE_DIR: Optional[str] = Field(
        default=None,
        description="Directory for persisted error tracking and quality log; in-memory when unset"
    )
    STATE_ENCRYPTION_KEY: Optional[SecretStr] = Field(
        default=None,
        description="Fernet key used to encrypt the quality log at rest"
    )

    # Upstream generation provider
    USE_UPSTREAM_PROVIDER: bool = Field(
        default=False,
        description="Route reply generation through the hosted model instead of local templates"
    )
    GROQ_API_KEY: Optional[SecretStr] = Field(
        default=None,
        description="API key for the Groq generation provider"
    )
    GROQ_MODEL: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model used by the Groq generation provider"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize and validate the logging level name."""
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level

    @model_validator(mode="after")
    def require_key_for_persisted_state(self) -> "CoreSettings":
        """Production deployments must not encrypt persisted state with a throwaway key."""
        if (self.ENVIRONMENT == EnvironmentType.PRODUCTION and self.STATE_DIR
                and self.STATE_ENCRYPTION_KEY is None):
            raise ValueError("STATE_ENCRYPTION_KEY is required when STATE_DIR is set in production")
        return self

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


def get_settings() -> CoreSettings:
    """
    Retrieve validated settings from the environment.

    Returns:
        Validated CoreSettings object

    Raises:
        ValidationError: If configuration fails validation
    """
    return CoreSettings()
