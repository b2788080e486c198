"""Explicit wiring of the sync engine.

build_context() constructs every component once from a SyncConfig and hands
back a SyncContext; callers keep it and pass it around instead of reaching
for module-level singletons.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Callable, Optional

from src.cache_store import LocalCacheStore
from src.config.errors import ConfigError
from src.config.models import SyncConfig
from src.remote_store import (
    Authenticator,
    ConfluenceTransport,
    DocumentTransport,
    GitHubTransport,
    InMemoryTransport,
    RemoteDocumentStore,
)
from .conflict_detector import ConflictDetector
from .conflict_resolver import ConflictResolver
from .index_store import IndexStore
from .local_editor import LocalEditor
from .orchestrator import SyncOrchestrator
from .pending_queue import PendingChangeQueue
from .strategy_registry import StrategyRegistry
from .sync_state_store import SyncStateStore

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Every engine component, built once and shared.

    Attributes:
        config: Configuration the context was built from
        cache: Local cache (the only shared mutable resource)
        store: Remote document store
        queue: Pending local changes
        state_store: Access to the persisted sync record
        registry: Per-item conflict strategies
        index: Local/remote table-of-contents maintenance
        resolver: Conflict resolver
        orchestrator: Cycle coordinator and scheduler
        editor: Local editing API
    """
    config: SyncConfig
    cache: LocalCacheStore
    store: RemoteDocumentStore
    queue: PendingChangeQueue
    state_store: SyncStateStore
    registry: StrategyRegistry
    index: IndexStore
    resolver: ConflictResolver
    orchestrator: SyncOrchestrator
    editor: LocalEditor


def create_transport(config: SyncConfig) -> DocumentTransport:
    """Build the transport named by config.remote.backend.

    Raises:
        ConfigError: If the backend is unknown
        UnauthenticatedError: If the backend's credentials are missing
    """
    remote = config.remote
    if remote.backend == 'memory':
        return InMemoryTransport()

    authenticator = Authenticator(config.env_file)
    if remote.backend == 'confluence':
        return ConfluenceTransport(
            authenticator,
            space_key=remote.space_key,
            parent_page_id=remote.parent_page_id,
        )
    if remote.backend == 'github':
        return GitHubTransport(authenticator, repo=remote.repo, branch=remote.branch)
    raise ConfigError(f"Unknown backend '{remote.backend}'", 'remote.backend')


def build_context(
    config: SyncConfig,
    transport: Optional[DocumentTransport] = None,
    clock: Optional[Callable[[], datetime]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> SyncContext:
    """Construct the engine from configuration.

    Args:
        config: Sync configuration
        transport: Backend adapter; built from config.remote when None
        clock: Time source shared by every component (UTC)
        sleep: Sleep function for retry backoff (tests pass a no-op)

    Returns:
        A fully wired SyncContext
    """
    clock = clock or (lambda: datetime.now(UTC))
    if transport is None:
        transport = create_transport(config)

    cache = LocalCacheStore(config.cache_dir, clock=clock)
    store_options = {
        'summary_path': config.summary_path,
        'timeout': config.request_timeout,
        'max_retries': config.max_retries,
    }
    if sleep is not None:
        store_options['sleep'] = sleep
    store = RemoteDocumentStore(transport, **store_options)

    state_store = SyncStateStore(cache)
    queue = PendingChangeQueue(state_store)
    registry = StrategyRegistry(config.default_strategy, config.strategies)
    index = IndexStore(cache, store, clock=clock)
    resolver = ConflictResolver(cache, store, queue, state_store, registry, index, clock=clock)
    orchestrator = SyncOrchestrator(
        cache,
        store,
        queue,
        state_store,
        ConflictDetector(),
        resolver,
        index,
        registry,
        interval_minutes=config.interval_minutes,
        recent_threshold_minutes=config.recent_threshold_minutes,
        clock=clock,
    )
    editor = LocalEditor(cache, queue, index, clock=clock)

    logger.debug(
        f"Built sync context: backend={config.remote.backend}, cache={config.cache_dir}, "
        f"default strategy={registry.default.value}"
    )
    return SyncContext(
        config=config,
        cache=cache,
        store=store,
        queue=queue,
        state_store=state_store,
        registry=registry,
        index=index,
        resolver=resolver,
        orchestrator=orchestrator,
        editor=editor,
    )
