"""Configuration package for the task sync client."""

from .app_config import AppConfig, DatabaseConfig, SyncConfig

__all__ = ['AppConfig', 'DatabaseConfig', 'SyncConfig']
