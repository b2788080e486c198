"""Typed exception hierarchy for remote document store errors.

This module defines all custom exceptions raised by the remote store layer.
All exceptions inherit from RemoteStoreError (itself a SyncError) for easy
catching and include descriptive messages with context to help with
debugging. The taxonomy maps the ways an authoritative backend can fail:
authentication, authorization, missing documents, rate limiting, transient
network trouble and optimistic-concurrency conflicts.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all wiki-sync errors.

    Use this to catch any application-level error from the sync engine.
    """
    pass


class RemoteStoreError(SyncError):
    """Base exception for all remote-store errors."""
    pass


class RemoteAuthError(RemoteStoreError):
    """Base for errors that require operator action and are never retried."""
    pass


class UnauthenticatedError(RemoteAuthError):
    """Raised when credentials are missing, invalid or expired."""

    def __init__(self, user: str, endpoint: str):
        super().__init__(
            f"Credentials rejected (user: {user}, endpoint: {endpoint})"
        )
        self.user = user
        self.endpoint = endpoint


class ForbiddenError(RemoteAuthError):
    """Raised when credentials are valid but lack access to the resource."""

    def __init__(self, resource: str):
        super().__init__(f"Access forbidden for {resource}")
        self.resource = resource


class DocumentNotFoundError(RemoteStoreError):
    """Raised when a requested document does not exist remotely."""

    def __init__(self, path: str):
        super().__init__(f"Document {path} not found")
        self.path = path


class RateLimitedError(RemoteStoreError):
    """Raised when the backend throttles us; the caller must back off."""

    def __init__(self, endpoint: str, retry_after: Optional[float] = None):
        message = f"Rate limited by {endpoint}"
        if retry_after is not None:
            message += f" (retry after {retry_after}s)"
        super().__init__(message)
        self.endpoint = endpoint
        self.retry_after = retry_after


class TransientNetworkError(RemoteStoreError):
    """Raised on timeouts and connection failures; safe to retry."""

    def __init__(self, endpoint: str, reason: Optional[str] = None):
        message = f"Remote store is not reachable at {endpoint}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.endpoint = endpoint
        self.reason = reason


class RevisionConflictError(RemoteStoreError):
    """Raised when a write carries a stale (or missing) expected revision.

    Attributes:
        path: Document path that failed to write
        expected_revision: Revision the caller believed was current
        actual_revision: Revision the backend reported (None if unknown)
    """

    def __init__(
        self,
        path: str,
        expected_revision: Optional[str],
        actual_revision: Optional[str] = None,
    ):
        if expected_revision is None:
            message = f"Document {path} already exists remotely"
        else:
            message = f"Revision conflict on {path} (expected {expected_revision}"
            if actual_revision is not None:
                message += f", found {actual_revision}"
            message += ")"
        super().__init__(message)
        self.path = path
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


class ConversionError(RemoteStoreError):
    """Raised when content conversion to or from the storage format fails."""

    def __init__(self, message: str):
        super().__init__(message)
