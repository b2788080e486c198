"""Remote document store: transports, retry logic and typed errors."""

from .auth import Authenticator, ConfluenceCredentials
from .confluence_transport import ConfluenceTransport
from .document_store import RemoteDocumentStore
from .errors import (
    ConversionError,
    DocumentNotFoundError,
    ForbiddenError,
    RateLimitedError,
    RemoteAuthError,
    RemoteStoreError,
    RevisionConflictError,
    SyncError,
    TransientNetworkError,
    UnauthenticatedError,
)
from .github_transport import GitHubTransport
from .memory_transport import InMemoryTransport
from .retry_logic import retry_with_backoff
from .transport import DocumentTransport

__all__ = [
    "Authenticator",
    "ConfluenceCredentials",
    "ConfluenceTransport",
    "ConversionError",
    "DocumentNotFoundError",
    "DocumentTransport",
    "ForbiddenError",
    "GitHubTransport",
    "InMemoryTransport",
    "RateLimitedError",
    "RemoteAuthError",
    "RemoteDocumentStore",
    "RemoteStoreError",
    "RevisionConflictError",
    "SyncError",
    "TransientNetworkError",
    "UnauthenticatedError",
    "retry_with_backoff",
]
