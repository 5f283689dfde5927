"""API configuration via pydantic-settings."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="TRAILSEAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # API configuration
    api_title: str = "Trailseal Audit API"
    api_version: str = "1.0.0"

    environment: Literal["production", "staging", "development", "test"] = "development"

    # === AUDIT SETTINGS ===
    audit_storage_type: Literal["memory", "file"] = "file"
    audit_storage_path: str = "data/audit"

    # None means: enabled everywhere except production
    admin_verify_enabled: bool | None = None

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def admin_verify_allowed(self) -> bool:
        """Whether the admin chain verification endpoints may answer."""
        if self.admin_verify_enabled is not None:
            return self.admin_verify_enabled
        return not self.is_production
