"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can be overridden with a CAMPUSREG_-prefixed environment variable
    - get_settings() is cached (lru_cache) - single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all settings: works out-of-the-box with a local SQLite file
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="CAMPUSREG_", case_sensitive=False,
    )

    # Storage
    storage_url: str = "sqlite:///campusreg.db"
    storage_capacity_bytes: int = 5 * 1024 * 1024
    key_namespace: str = "icct"
    key_version: str = "v2"

    @field_validator("storage_url", mode="before")
    @classmethod
    def normalize_memory_url(cls, v: str) -> str:
        """Accept "memory" as shorthand for the in-process backend."""
        if isinstance(v, str) and v.strip().lower() in ("memory", "memory://"):
            return "memory://"
        return v

    # Credential
    credential_salt: str = "icct-secure-2024"
    qr_size: int = 200
    qr_error_correction: str = "H"

    # Startup
    seed_sample_data: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def uses_memory_storage(self) -> bool:
        return self.storage_url == "memory://"


@lru_cache
def get_settings() -> Settings:
    return Settings()
