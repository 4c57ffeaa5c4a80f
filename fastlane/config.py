"""Configuration management using pydantic-settings"""

from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GIB = 1024 * 1024 * 1024
MIB = 1024 * 1024


def default_upload_dir() -> Path:
    """Per-user application folder that holds uploaded files"""
    return Path.home() / ".fastlane" / "uploads"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="FASTLANE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = Field(default=0, description="Listening port, 0 picks an ephemeral port")
    keep_alive_timeout: int = 65

    # Storage
    upload_dir: Path = Field(default_factory=default_upload_dir)
    clear_on_shutdown: bool = Field(
        default=False, description="Delete every uploaded file when the server stops"
    )

    # Application Configuration
    environment: str = "production"
    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log renderer: json or console")

    # Upload limits
    max_file_size: int = 10 * GIB
    max_files: int = 50
    max_fields: int = 100
    max_field_size: int = 10 * MIB
    max_field_name_size: int = 1024

    # Download streaming
    download_chunk_size: int = 4 * MIB

    # Activity log
    activity_log_capacity: int = 100

    # Device presence
    device_stale_after_seconds: int = 300
    device_sweep_interval_seconds: int = 60

    # Access requests
    rejected_request_grace_seconds: float = 5.0
    approved_request_capacity: int = 500
    require_approval: bool = Field(
        default=False,
        description="Restrict file routes to loopback and approved device addresses",
    )

    # QR code rendering
    qr_box_size: int = 10
    qr_border: int = 2

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Lowercase the level and fall back to info for unknown values"""
        if not v:
            return "info"
        level = str(v).strip().lower()
        if level not in {"debug", "info", "warning", "error", "critical"}:
            return "info"
        return level

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v):
        fmt = str(v or "json").strip().lower()
        return fmt if fmt in {"json", "console"} else "json"

    @field_validator("upload_dir", mode="after")
    @classmethod
    def expand_upload_dir(cls, v: Path) -> Path:
        return v.expanduser()

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject limits that would make every transfer fail"""
        positive = [
            "max_file_size",
            "max_files",
            "max_fields",
            "max_field_size",
            "max_field_name_size",
            "download_chunk_size",
            "activity_log_capacity",
            "device_stale_after_seconds",
            "device_sweep_interval_seconds",
            "approved_request_capacity",
        ]
        for name in positive:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than zero")
        if self.rejected_request_grace_seconds < 0:
            raise ValueError("rejected_request_grace_seconds cannot be negative")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        return self


settings = Settings()
