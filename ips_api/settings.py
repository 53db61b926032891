from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables and .env files."""

    env: str = "dev"
    db_host: str = "localhost"
    db_port: int = 3306
    db_name: str = "Bank01"
    db_user: str = "root"
    db_password: str = ""
    db_pool_size: int = 5
    erm_parent_id: int = 3003721
    default_form_id: int = 3002443
    page_size: int = 50
    request_log_limit: int = 50
    log_database_url: str = "sqlite:///./ips_api_logs.db"
    log_level: str = "INFO"
    debug_row_checks: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:4200"])
    catalog_dir: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def catalog_path(self) -> Path:
        if self.catalog_dir:
            return Path(self.catalog_dir)
        return Path(__file__).resolve().parent / "catalog"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()
