"""Local cache store for offline wiki content.

This package provides the durable, namespaced key/value store that keeps the
wiki available offline and doubles as the coordination point between the
sync engine's components.
"""

from .errors import CacheStoreError, StorageError, UnknownNamespaceError
from .local_cache_store import LocalCacheStore

__all__ = [
    'LocalCacheStore',
    'CacheStoreError',
    'StorageError',
    'UnknownNamespaceError',
]
