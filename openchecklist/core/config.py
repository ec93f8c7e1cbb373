"""Application configuration via environment variables."""
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageMode(str, Enum):
    """Where uploaded checklist files are kept."""

    EMBEDDED = "embedded"  # base64 inside the checklist row
    FILE = "file"  # file reference into file_storage_dir


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "OpenChecklist"
    debug: bool = False
    admin_key: str = "change-me-in-production"  # Compared against X-Admin-Key
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all
    log_dir: Path = Path.home() / ".logs" / "openchecklist"

    # Database
    database_url: str = "sqlite:///./openchecklist.db"
    auto_seed: bool = False

    # Uploads and file storage
    storage_mode: StorageMode = StorageMode.EMBEDDED
    file_storage_dir: Path = Path("./checklists")
    max_upload_mb: int = Field(default=10, ge=10, le=50)
    allowed_upload_types: str = (
        "application/pdf,application/zip,application/x-zip-compressed"
    )

    # Maintenance
    cleanup_interval_minutes: int = 30
    staged_upload_max_age_minutes: int = 60

    # Contributions
    contribution_page_size: int = 10

    @property
    def upload_types(self) -> set[str]:
        return {t.strip() for t in self.allowed_upload_types.split(",") if t.strip()}

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


settings = Settings()
