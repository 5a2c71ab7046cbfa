"""Configuration management for the nebula updater."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nebula_updater.constants import (
    CLOUD_PLATFORM_SCOPE,
    DEFAULT_ARTIFACT_BASE_URL,
    DEFAULT_ARTIFACT_NAME,
    DEFAULT_ARTIFACT_PACKAGE,
    DEFAULT_METADATA_URL,
    DEFAULT_PRODUCT_ID,
    DEFAULT_TARGETS_URL,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_DIRNAME,
    HTTP_TIMEOUT_SECONDS,
    INDEX_FILENAME,
    POLL_INTERVAL_SECONDS,
    ROOT_FILENAME,
    TRUST_DIRNAME,
    VALIDITY_YEARS,
    VERSION_LAYOUT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    # File logging
    log_to_file: bool = Field(default=False, description="Also write JSON logs to disk")
    log_directory: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate after bytes")
    log_file_backup_count: int = Field(default=5, description="Rotated files to keep")
    log_error_file_enabled: bool = Field(
        default=True, description="Write WARNING and above to a separate file"
    )

    # Local state
    work_dir: Path = Field(default=Path("."), description="Directory holding tmp/")

    # TUF repository
    metadata_url: str = Field(default=DEFAULT_METADATA_URL, description="TUF metadata base URL")
    targets_url: str = Field(default=DEFAULT_TARGETS_URL, description="TUF targets base URL")
    index_filename: str = Field(default=INDEX_FILENAME, description="Manifest target name")
    product_id: str = Field(default=DEFAULT_PRODUCT_ID, description="Manifest product key")

    # Artifact store
    artifact_base_url: str = Field(
        default=DEFAULT_ARTIFACT_BASE_URL, description="Artifact Registry repository URL"
    )
    artifact_package: str = Field(
        default=DEFAULT_ARTIFACT_PACKAGE, description="Artifact Registry package name"
    )
    artifact_scope: str = Field(default=CLOUD_PLATFORM_SCOPE, description="OAuth2 scope")
    service_account_key_path: Path | None = Field(
        default=None, description="Service-account JSON key used for downloads"
    )
    default_artifact_name: str = Field(
        default=DEFAULT_ARTIFACT_NAME,
        description="Filename used when the server sends no Content-Disposition",
    )
    download_chunk_size: int = Field(default=DOWNLOAD_CHUNK_SIZE, description="Stream chunk size")

    # Versions
    version_layout: str = Field(default=VERSION_LAYOUT, description="strptime layout")
    validity_years: int = Field(default=VALIDITY_YEARS, description="Version validity window")

    # Polling
    poll_interval_seconds: float = Field(
        default=POLL_INTERVAL_SECONDS, description="Seconds between update checks"
    )
    http_timeout_seconds: float = Field(
        default=HTTP_TIMEOUT_SECONDS, description="Timeout for each HTTP call"
    )
    max_cycles: int | None = Field(
        default=None, description="Stop after this many cycles (None runs forever)"
    )

    # Behaviour
    auto_approve: bool = Field(
        default=False, description="Download updates without asking the operator"
    )
    fetch_on_startup: bool = Field(
        default=False, description="Download and verify the current version on first cycle"
    )

    @field_validator("poll_interval_seconds", "http_timeout_seconds")
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Intervals and timeouts must be positive."""
        if v <= 0:
            raise ValueError(f"Must be > 0, got: {v}")
        return v

    @field_validator("download_chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"download_chunk_size must be > 0, got: {v}")
        return v

    @field_validator("validity_years")
    @classmethod
    def validate_validity_years(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"validity_years must be >= 0, got: {v}")
        return v

    @field_validator("max_cycles")
    @classmethod
    def validate_max_cycles(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError(f"max_cycles must be >= 1, got: {v}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def trust_dir(self) -> Path:
        """Directory holding root.json, index.json and the download cache."""
        return self.work_dir / TRUST_DIRNAME

    @property
    def download_dir(self) -> Path:
        return self.trust_dir / DOWNLOAD_DIRNAME

    @property
    def root_path(self) -> Path:
        return self.trust_dir / ROOT_FILENAME

    @property
    def index_path(self) -> Path:
        return self.trust_dir / self.index_filename

    @property
    def log_file_path(self) -> str:
        return str(Path(self.log_directory) / "nebula_updater.log")

    @property
    def error_log_file_path(self) -> str:
        return str(Path(self.log_directory) / "nebula_updater_error.log")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
