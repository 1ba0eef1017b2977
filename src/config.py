"""Application configuration using pydantic-settings.

Provides a centralized Settings class for all environment variables.
User-editable sync state (token, gist id, flags) is not configuration and
lives in the persisted SyncConfig document instead.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file and environment variables.
    Environment variables take precedence over .env file values.
    """

    # Local storage
    data_dir: str = "data"
    storage_backend: Literal["file", "kv"] = "file"
    commands_filename: str = "commands.json"
    sync_config_filename: str = "sync-config.json"
    kv_db_filename: str = "kv.db"
    kv_commands_key: str = "sniptnote-commands"
    kv_sync_config_key: str = "sniptnote-sync-config"

    # Remote document store (GitHub Gist API)
    gist_api_base: str = "https://api.github.com"
    gist_filename: str = "commands.json"
    gist_description: str = "SniptNote Commands Backup"
    http_timeout: float = 20.0

    # Sync behaviour
    sync_retry_attempts: int = 3  # Only NetworkFailure is retried
    sync_retry_max_wait: float = 10.0
    config_debounce_seconds: float = 0.1

    # Local HTTP API
    api_auth_key: str = ""  # Empty disables X-API-Key auth
    api_rate_limit: int = 60  # Requests per minute per client

    # Logging / observability
    log_level: str = "INFO"
    log_json: bool = True
    logfire_token: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
        case_sensitive=False,  # Allow case-insensitive env var names
    )

    @property
    def uses_file_backend(self) -> bool:
        """Whether the structured-file backend is the selected store."""
        return self.storage_backend == "file"


# Singleton instance - import this in your code
settings = Settings()
