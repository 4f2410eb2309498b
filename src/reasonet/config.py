"""
Reasonet Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for Reasonet logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/reasonet if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/reasonet if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "reasonet" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "reasonet" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    postgres_db: str = "reasonet"
    postgres_user: str = "reasonet"
    postgres_password: str = "reasonet_dev_password"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url_override: str = Field(
        default="",
        validation_alias=AliasChoices("DATABASE_URL", "database_url_override"),
    )  # Full URL wins over the postgres_* components (e.g. sqlite for tests)

    db_pool_size: int = 5
    db_pool_max_overflow: int = 5
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # GitHub webhook + API access
    github_webhook_secret: str = ""
    github_app_id: str = ""
    github_app_private_key: str = ""  # PEM with escaped newlines, or a file path
    github_token: str = ""  # Static fallback token
    github_api_url: str = "https://api.github.com"
    github_request_timeout: float = 30.0

    # Pipeline timeouts (seconds)
    diff_fetch_timeout: float = 60.0
    analyzer_timeout: float = 300.0

    # Analysis collaborators ("module:attribute" factories)
    quality_analyzer: str = "reasonet.analyzers.baseline:DiffStatsQualityAnalyzer"
    security_analyzer: str = "reasonet.analyzers.baseline:DiffStatsSecurityAnalyzer"
    gist_generator: str = "reasonet.analyzers.baseline:DiffStatsGistGenerator"

    # Reporting
    publish_gists: bool = True
    gist_public: bool = False
    update_pr_description: bool = True

    # Reconciliation
    stale_analysis_minutes: int = 30

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True
    log_file_enabled: bool = True
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())

    @property
    def github_app_configured(self) -> bool:
        """True when both halves of the GitHub App identity are present."""
        return bool(self.github_app_id and self.github_app_private_key)


# Global settings instance
settings = Settings()
