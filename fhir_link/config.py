"""
Configuration management for the fhir-link merged patient export.

Uses pydantic-settings for type-safe configuration with environment variable support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(ValueError):
    """Required settings are missing or inconsistent."""
    pass


class FhirSettings(BaseSettings):
    """FHIR server connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="FHIR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = ""  # Required: e.g. https://myworkspace.azurehealthcareapis.com
    page_size: int = 100
    timeout: float = 30.0  # seconds

    # Static bearer token (takes precedence over client credentials)
    access_token: Optional[str] = None

    # OAuth2 client credentials
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    resource: Optional[str] = None  # Defaults to base_url
    authority: str = "https://login.microsoftonline.com"

    @field_validator("base_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v):
        return (v or "").rstrip("/")

    @property
    def uses_client_credentials(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


class StorageSettings(BaseSettings):
    """Blob storage sink settings."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: Literal["azure", "local"] = "azure"
    container: str = "merged-patients"

    # Azure Blob Storage
    account_url: str = ""  # e.g. https://myaccount.blob.core.windows.net
    sas_token: str = ""  # Required for azure: Set STORAGE_SAS_TOKEN in .env
    api_version: str = "2021-08-06"

    # Local directory backend
    local_dir: Path = Field(default=Path("./data/export"))


class ExportSettings(BaseSettings):
    """CSV export settings."""

    model_config = SettingsConfigDict(
        env_prefix="EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system_label: str = "AzureAPIforFHIR_Patient"
    encoding: str = "utf-8"
    filename_prefix: str = "merged_patients"
    unique_suffix: bool = False  # Append a random suffix to blob names

    @field_validator("encoding")
    @classmethod
    def known_encoding(cls, v: str) -> str:
        import codecs

        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(str(e)) from e
        return v


class ScheduleSettings(BaseSettings):
    """Scheduler settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # second minute hour day month day_of_week
    cron: str = "0 0 */4 * * *"
    run_on_startup: bool = True
    timezone: str = "UTC"

    @field_validator("cron")
    @classmethod
    def six_fields(cls, v: str) -> str:
        if len(v.split()) != 6:
            raise ValueError(f"cron expression must have 6 fields, got {v!r}")
        return v


class HttpSettings(BaseSettings):
    """HTTP retry settings shared by all outbound requests."""

    model_config = SettingsConfigDict(
        env_prefix="HTTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_retries: int = 3
    retry_delay: float = 1.0  # seconds, exponential backoff multiplier


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Sub-settings
    fhir: FhirSettings = Field(default_factory=FhirSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience function for quick access
settings = get_settings()
