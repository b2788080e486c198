"""Configuration data models.

All models use dataclasses; defaults match the values documented in the
example configuration file.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

BACKENDS = ('confluence', 'github', 'memory')


@dataclass
class RemoteConfig:
    """Where the authoritative copy of the wiki lives.

    Attributes:
        backend: confluence, github or memory
        space_key: Confluence space key (confluence backend)
        parent_page_id: Confluence page the wiki pages live under
        repo: "owner/name" GitHub repository (github backend)
        branch: GitHub branch to read and commit to
    """
    backend: str = 'confluence'
    space_key: Optional[str] = None
    parent_page_id: Optional[str] = None
    repo: Optional[str] = None
    branch: str = 'main'


@dataclass
class SyncConfig:
    """Top-level configuration of the sync engine.

    Attributes:
        cache_dir: Directory holding the local cache namespaces
        interval_minutes: Minutes between scheduled cycles
        request_timeout: Seconds each remote call may take
        max_retries: Retries for rate-limited or transient failures
        summary_path: Remote path of the table of contents
        recent_threshold_minutes: Age under which the cache counts as recent
        default_strategy: Strategy for items without an explicit entry
        strategies: Item id -> strategy name overrides
        remote: Remote backend settings
        env_file: Optional .env file holding credentials

    Example:
        >>> config = SyncConfig(interval_minutes=15, strategies={"welcome": "merge"})
    """
    cache_dir: str = '.wiki-sync/cache'
    interval_minutes: float = 30
    request_timeout: float = 30
    max_retries: int = 3
    summary_path: str = 'SUMMARY.md'
    recent_threshold_minutes: float = 5
    default_strategy: str = 'remote-wins'
    strategies: Dict[str, str] = field(default_factory=dict)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    env_file: Optional[str] = None
