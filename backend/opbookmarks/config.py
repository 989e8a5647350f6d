"""Configuration management using Pydantic Settings"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Where 1Password 7 kept its metadata files; launchers index this folder.
DEFAULT_EXPORT_PATH = (
    Path.home()
    / "Library/Containers/com.agilebits.onepassword7/Data/Library/Caches/Metadata/1Password"
)


class Settings(BaseSettings):
    """Application settings with environment variable support"""
    
    model_config = SettingsConfigDict(
        env_prefix="OPBOOKMARKS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    # === Export Configuration ===
    export_path: Path = Field(
        default=DEFAULT_EXPORT_PATH,
        description="Directory the metadata files are written to"
    )
    accounts: list[str] = Field(
        default_factory=list,
        description="Account ids (user or account UUIDs) to export; empty for all"
    )
    cache_filename: str = Field(
        default="cache.json",
        description="Version cache file name inside the export directory"
    )
    
    # === 1Password CLI Configuration ===
    op_binary: str = Field(
        default="op",
        description="Path or name of the 1Password CLI executable"
    )
    op_timeout: float | None = Field(
        default=None,
        description="Per-call timeout in seconds for `op`; None waits forever"
    )
    
    # === Watch Configuration ===
    watch_path: Path | None = Field(
        default=None,
        description="1Password 8 data folder to watch for changes"
    )
    journal_filename: str = Field(
        default="1password.sqlite-journal",
        description="Journal file whose removal marks a committed transaction"
    )
    debounce_seconds: float = Field(
        default=5.0,
        description="Quiet period after a commit signal before re-exporting"
    )
    
    log_level: str = Field(default="INFO")
    
    @property
    def cache_path(self) -> Path:
        return self.export_path / self.cache_filename
    
    @property
    def account_filter(self) -> set[str]:
        return set(self.accounts)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings singleton"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
