"""YAML configuration loading and validation.

Configuration lives in `.wiki-sync/config.yaml` next to the cache it
describes. Secrets never go in this file; credentials are read from the
environment (or a .env file) by the remote store's Authenticator.
"""

import os
from typing import Any, Dict, Optional

import yaml

from src.sync_engine.errors import UnknownStrategyError
from src.sync_engine.models import Strategy
from .errors import ConfigError, ConfigFilesystemError
from .models import BACKENDS, RemoteConfig, SyncConfig


class ConfigLoader:
    """Reads, validates and writes the sync configuration file.

    Example file:
        cache_dir: .wiki-sync/cache
        interval_minutes: 30
        request_timeout: 30
        max_retries: 3
        summary_path: SUMMARY.md
        recent_threshold_minutes: 5
        default_strategy: remote-wins
        strategies:
          welcome: merge
        remote:
          backend: confluence
          space_key: WIKI
          parent_page_id: "123456"
    """

    DEFAULT_CONFIG_DIR = '.wiki-sync'
    DEFAULT_CONFIG_FILE = 'config.yaml'

    REQUIRED_TOP_LEVEL_FIELDS = {'remote'}

    # Fields each backend cannot work without
    REQUIRED_REMOTE_FIELDS = {
        'confluence': {'space_key'},
        'github': {'repo'},
        'memory': set(),
    }

    @classmethod
    def default_path(cls) -> str:
        return os.path.join(cls.DEFAULT_CONFIG_DIR, cls.DEFAULT_CONFIG_FILE)

    @classmethod
    def load(cls, config_path: str) -> SyncConfig:
        """Read config_path into a validated SyncConfig.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            SyncConfig object with parsed configuration

        Raises:
            ConfigFilesystemError: If file cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ConfigFilesystemError(
                config_path,
                'read',
                'Configuration file not found'
            )
        except PermissionError:
            raise ConfigFilesystemError(
                config_path,
                'read',
                'Permission denied'
            )
        except OSError as e:
            raise ConfigFilesystemError(
                config_path,
                'read',
                str(e)
            )

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML syntax: {str(e)}"
            )

        if config_dict is None:
            raise ConfigError("Configuration file is empty")

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls._parse_config(config_dict)

    @classmethod
    def save(cls, config_path: str, sync_config: SyncConfig) -> None:
        """Write sync_config to config_path, creating its directory.

        Raises:
            ConfigFilesystemError: If file cannot be written
        """
        remote = sync_config.remote
        remote_dict: Dict[str, Any] = {'backend': remote.backend}
        # Only include backend fields that are set
        for key in ('space_key', 'parent_page_id', 'repo'):
            value = getattr(remote, key)
            if value:
                remote_dict[key] = value
        if remote.backend == 'github':
            remote_dict['branch'] = remote.branch

        config_dict = {
            'cache_dir': sync_config.cache_dir,
            'interval_minutes': sync_config.interval_minutes,
            'request_timeout': sync_config.request_timeout,
            'max_retries': sync_config.max_retries,
            'summary_path': sync_config.summary_path,
            'recent_threshold_minutes': sync_config.recent_threshold_minutes,
            'default_strategy': sync_config.default_strategy,
            'strategies': dict(sync_config.strategies),
            'remote': remote_dict,
        }
        if sync_config.env_file:
            config_dict['env_file'] = sync_config.env_file

        yaml_str = yaml.safe_dump(
            config_dict,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )

        config_dir = os.path.dirname(config_path)
        if config_dir:
            try:
                os.makedirs(config_dir, exist_ok=True)
            except OSError as e:
                raise ConfigFilesystemError(
                    config_dir,
                    'create_directory',
                    str(e)
                )

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                f.write(yaml_str)
        except PermissionError:
            raise ConfigFilesystemError(
                config_path,
                'write',
                'Permission denied'
            )
        except OSError as e:
            raise ConfigFilesystemError(
                config_path,
                'write',
                str(e)
            )

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> SyncConfig:
        """Validate a decoded YAML mapping and build SyncConfig from it.

        Raises:
            ConfigError: If configuration is invalid
        """
        missing_fields = cls.REQUIRED_TOP_LEVEL_FIELDS - set(config_dict.keys())
        if missing_fields:
            raise ConfigError(
                f"Missing required fields: {', '.join(sorted(missing_fields))}"
            )

        remote = cls._parse_remote(config_dict['remote'])
        defaults = SyncConfig()

        try:
            cache_dir = str(config_dict.get('cache_dir', defaults.cache_dir))
            interval_minutes = float(config_dict.get('interval_minutes', defaults.interval_minutes))
            request_timeout = float(config_dict.get('request_timeout', defaults.request_timeout))
            max_retries = int(config_dict.get('max_retries', defaults.max_retries))
            summary_path = str(config_dict.get('summary_path', defaults.summary_path))
            recent_threshold = float(
                config_dict.get('recent_threshold_minutes', defaults.recent_threshold_minutes)
            )
            env_file = config_dict.get('env_file')
            env_file = str(env_file) if env_file else None
        except (ValueError, TypeError) as e:
            raise ConfigError(
                f"Invalid field type for optional field: {str(e)}"
            )

        if interval_minutes <= 0:
            raise ConfigError(
                f"Field 'interval_minutes' must be positive, got {interval_minutes:g}",
                'interval_minutes'
            )
        if request_timeout <= 0:
            raise ConfigError(
                f"Field 'request_timeout' must be positive, got {request_timeout:g}",
                'request_timeout'
            )
        if max_retries < 0:
            raise ConfigError(
                f"Field 'max_retries' cannot be negative, got {max_retries}",
                'max_retries'
            )
        if not cache_dir.strip():
            raise ConfigError("Field 'cache_dir' cannot be empty", 'cache_dir')
        if not summary_path.strip():
            raise ConfigError("Field 'summary_path' cannot be empty", 'summary_path')

        default_strategy = cls._parse_strategy(
            config_dict.get('default_strategy', defaults.default_strategy),
            'default_strategy'
        )

        strategies_raw = config_dict.get('strategies') or {}
        if not isinstance(strategies_raw, dict):
            raise ConfigError(
                "Field 'strategies' must be a dictionary of item id to strategy",
                'strategies'
            )
        strategies = {
            str(item_id): cls._parse_strategy(name, f'strategies.{item_id}')
            for item_id, name in strategies_raw.items()
        }

        return SyncConfig(
            cache_dir=cache_dir,
            interval_minutes=interval_minutes,
            request_timeout=request_timeout,
            max_retries=max_retries,
            summary_path=summary_path,
            recent_threshold_minutes=recent_threshold,
            default_strategy=default_strategy,
            strategies=strategies,
            remote=remote,
            env_file=env_file,
        )

    @classmethod
    def _parse_remote(cls, remote_raw: Any) -> RemoteConfig:
        if not isinstance(remote_raw, dict):
            raise ConfigError("Field 'remote' must be a dictionary", 'remote')

        backend = str(remote_raw.get('backend', 'confluence')).strip().lower()
        if backend not in BACKENDS:
            raise ConfigError(
                f"Unknown backend '{backend}', expected one of: {', '.join(BACKENDS)}",
                'remote.backend'
            )

        missing = {
            key for key in cls.REQUIRED_REMOTE_FIELDS[backend]
            if not str(remote_raw.get(key) or '').strip()
        }
        if missing:
            raise ConfigError(
                f"Missing required fields for {backend} backend: {', '.join(sorted(missing))}",
                'remote'
            )

        parent_page_id = remote_raw.get('parent_page_id')
        return RemoteConfig(
            backend=backend,
            space_key=_optional_str(remote_raw.get('space_key')),
            parent_page_id=_optional_str(parent_page_id),
            repo=_optional_str(remote_raw.get('repo')),
            branch=str(remote_raw.get('branch') or 'main'),
        )

    @staticmethod
    def _parse_strategy(name: Any, config_field: str) -> str:
        try:
            return Strategy.parse(str(name)).value
        except UnknownStrategyError as e:
            raise ConfigError(str(e), config_field) from e


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
