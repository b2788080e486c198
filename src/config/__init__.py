"""Sync configuration: YAML loading, validation and defaults."""

from .config_loader import ConfigLoader
from .errors import ConfigError, ConfigFilesystemError, ConfigLoaderError
from .models import RemoteConfig, SyncConfig

__all__ = [
    'ConfigLoader',
    'ConfigError',
    'ConfigFilesystemError',
    'ConfigLoaderError',
    'RemoteConfig',
    'SyncConfig',
]
