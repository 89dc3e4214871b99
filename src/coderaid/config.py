"""coderaid configuration management."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """coderaid configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="CODERAID_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # General
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    debug: bool = False

    # Persistence
    data_path: Optional[Path] = Field(
        default=Path("data/raids.json"),
        description="Snapshot file; unset keeps the registry in memory only",
    )

    # Code list
    pin_codes_path: Optional[Path] = Field(
        default=None,
        description="Override for the packaged ordered PIN code list",
    )

    # Lease behavior
    lease_ttl_seconds: int = Field(default=60, description="Code reservation TTL (1 min)")
    reservation_batch_size: int = Field(default=5, description="Codes handed out per reservation")
    lease_sweep_enabled: bool = Field(
        default=False,
        description="Run a background reclamation sweep in addition to reclaim-on-touch",
    )
    lease_sweep_interval_seconds: int = Field(default=30, description="Lease sweep cadence")

    # Security (simple shared token)
    allow_insecure_dev: bool = Field(default=False, description="Allow unauthenticated in dev")
    api_key: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Validators
    @field_validator("data_path", "pin_codes_path", mode="before")
    @classmethod
    def empty_path_is_none(cls, v):
        if v == "":
            return None
        return v

    @field_validator("lease_ttl_seconds", "reservation_batch_size", "lease_sweep_interval_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str], info) -> Optional[str]:
        """Validate API key is set when auth is required."""
        allow_insecure = info.data.get("allow_insecure_dev", False)
        env = info.data.get("env")

        # Production/staging must have api_key
        if env in [Environment.PRODUCTION, Environment.STAGING] and not v:
            raise ValueError(f"api_key is required in {env.value} environment")

        # Dev without api_key requires explicit allow_insecure_dev
        if not v and not allow_insecure:
            raise ValueError("api_key is required when allow_insecure_dev=False")

        return v


settings = Settings()
