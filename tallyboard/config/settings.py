"""
Configuration Management for Tallyboard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every tunable the application reads (ports, directories, store quota,
image limits) is declared in one place and validated at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ImageTransport(str, Enum):
    """How the domain layer reaches the image store."""
    IN_PROCESS = "inprocess"
    HTTP = "http"


class UploadServerSettings(BaseSettings):
    """Local upload server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="UPLOAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    host: str = Field(
        default="127.0.0.1",
        description="Interface the upload server binds to"
    )
    port: int = Field(
        default=3001,
        ge=1,
        le=65535,
        description="Port the upload server listens on"
    )

    @property
    def base_url(self) -> str:
        """URL clients use to reach the upload server."""
        return f"http://{self.host}:{self.port}"


class StorageSettings(BaseSettings):
    """Where state and uploaded images live on disk."""

    model_config = SettingsConfigDict(
        env_prefix="TALLYBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    assets_dir: Path = Field(
        default=Path("assets"),
        description="Directory served under /assets"
    )
    uploads_subdir: str = Field(
        default="uploads",
        description="Sub-directory of assets_dir holding uploaded images"
    )
    state_file: Path = Field(
        default=Path("data") / "local_storage.json",
        description="JSON file backing the local key-value store"
    )
    store_quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Maximum size of the local key-value store"
    )

    @field_validator("uploads_subdir")
    @classmethod
    def validate_uploads_subdir(cls, v: str) -> str:
        """The uploads directory must be a direct child of assets_dir."""
        if not v or Path(v).name != v or v in (".", ".."):
            raise ValueError(f"uploads_subdir must be a plain directory name, got {v!r}")
        return v

    @property
    def uploads_dir(self) -> Path:
        """Absolute path of the upload directory."""
        return (self.assets_dir / self.uploads_subdir).resolve()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TALLYBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    image_transport: ImageTransport = Field(
        default=ImageTransport.IN_PROCESS,
        description="Image store transport selected at startup"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON (False for console output)"
    )

    # Image handling
    max_image_width: int = Field(
        default=800,
        ge=16,
        description="Images wider than this are downscaled before upload"
    )
    compression_qualities: str = Field(
        default="0.8,0.6,0.4,0.2",
        description="Comma-separated JPEG qualities tried in order"
    )
    max_upload_size_mb: int = Field(
        default=2,
        ge=1,
        le=50,
        description="Maximum image file size in MB"
    )
    max_image_dimension: int = Field(
        default=4000,
        ge=16,
        description="Maximum image width or height in pixels"
    )

    @field_validator("compression_qualities")
    @classmethod
    def validate_qualities(cls, v: str) -> str:
        """Every quality must be in (0, 1]."""
        for part in v.split(","):
            quality = float(part.strip())
            if not 0.0 < quality <= 1.0:
                raise ValueError(f"Compression quality out of range: {quality}")
        return v

    @property
    def quality_ladder(self) -> list[float]:
        """Get compression qualities as a list."""
        return [float(q.strip()) for q in self.compression_qualities.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def upload_server(self) -> UploadServerSettings:
        return UploadServerSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("upload_server", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
