"""
Application configuration for the task sync client.
"""
import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DatabaseConfig:
    """Local SQLite store configuration."""
    path: str = "tasksync.db"


@dataclass
class SyncConfig:
    """Remote authority and sync pass configuration."""
    api_base_url: str = "http://localhost:3000/api"
    api_key: Optional[str] = None
    batch_size: int = 50
    max_retries: int = 3
    probe_timeout: float = 5.0  # seconds
    dispatch_timeout: float = 30.0  # seconds
    background_interval: float = 30.0  # seconds
    enable_background_sync: bool = True

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")


@dataclass
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> 'AppConfig':
        """Create configuration from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = SyncConfig()
        return cls(
            database=DatabaseConfig(
                path=env.get("TASKSYNC_DB_PATH", DatabaseConfig.path)
            ),
            sync=SyncConfig(
                api_base_url=env.get("API_BASE_URL", defaults.api_base_url),
                api_key=env.get("API_KEY") or None,
                batch_size=int(env.get("SYNC_BATCH_SIZE", defaults.batch_size)),
                max_retries=int(env.get("SYNC_MAX_RETRIES", defaults.max_retries)),
                background_interval=float(env.get("SYNC_INTERVAL", defaults.background_interval)),
            ),
            log_file=env.get("TASKSYNC_LOG_FILE") or None,
        )
