"""Data models for the sync engine.

All models use dataclasses. Records persisted in the cache `sync` namespace
round-trip through to_record()/from_record() with camelCase keys, matching
the layout of the other cache namespaces.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from src.models.document import Document, format_timestamp, parse_timestamp
from src.toc.models import Category, TableOfContents
from .errors import ConflictAlreadyResolvedError, UnknownStrategyError

HISTORY_LIMIT = 50


class ConflictKind(str, Enum):
    PAGE = "page"
    CATEGORY = "category"


class ConflictType(str, Enum):
    """What differs between the two sides.

    CONTENT: document body differs
    STRUCTURE: category membership or children differ (includes deletes)
    METADATA: only ordering or title differ
    """
    CONTENT = "content"
    STRUCTURE = "structure"
    METADATA = "metadata"


class Resolution(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    MERGED = "merged"
    MANUAL = "manual"


class Strategy(str, Enum):
    """Conflict resolution strategies selectable per item id."""
    LOCAL_WINS = "local-wins"
    REMOTE_WINS = "remote-wins"
    MERGE = "merge"
    MANUAL = "manual"

    @classmethod
    def parse(cls, name: str) -> 'Strategy':
        """Parse a strategy name (case-insensitive, '_' or '-' separated).

        Raises:
            UnknownStrategyError: If the name is not a known strategy
        """
        normalized = (name or "").strip().lower().replace("_", "-")
        for strategy in cls:
            if strategy.value == normalized:
                return strategy
        raise UnknownStrategyError(name)


class ChangeType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class SyncEventType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    CONFLICT = "conflict"
    WARNING = "warning"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


Version = Union[Document, Category, None]


@dataclass
class ConflictItem:
    """A disagreement between the local and remote state of one item.

    Either version may be None when one side deleted the item. The
    resolution is write-once: assigning it a second time raises
    ConflictAlreadyResolvedError.

    Attributes:
        id: Page or category id
        kind: page or category
        local_version: Local Document/Category (None if deleted locally)
        remote_version: Remote Document/Category (None if deleted remotely)
        conflict_type: content, structure or metadata
        remote_revision: Revision to write against (document revision for
            pages, table-of-contents revision for categories)
    """
    id: str
    kind: ConflictKind
    local_version: Version
    remote_version: Version
    conflict_type: ConflictType
    remote_revision: Optional[str] = None
    _resolution: Optional[Resolution] = field(default=None, repr=False)

    @property
    def resolution(self) -> Optional[Resolution]:
        return self._resolution

    @property
    def is_resolved(self) -> bool:
        return self._resolution is not None

    def mark_resolved(self, resolution: Resolution) -> None:
        if self._resolution is not None:
            raise ConflictAlreadyResolvedError(self.id, self._resolution.value)
        self._resolution = resolution


@dataclass(frozen=True)
class PendingChange:
    """An immutable local mutation awaiting confirmation by the remote.

    Attributes:
        change_type: create, update or delete
        target_id: Id of the page or category
        kind: page or category
        payload: Change data (page fields, or a serialized category)
        timestamp: ISO 8601 UTC time the change was made
        base_revision: Remote revision the change was made against
        change_id: Unique id used to acknowledge this exact entry
    """
    change_type: ChangeType
    target_id: str
    kind: ConflictKind = ConflictKind.PAGE
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    base_revision: Optional[str] = None
    change_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_record(self) -> Dict[str, Any]:
        return {
            "changeId": self.change_id,
            "type": self.change_type.value,
            "targetId": self.target_id,
            "kind": self.kind.value,
            "payload": self.payload,
            "timestamp": self.timestamp,
            "baseRevision": self.base_revision,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'PendingChange':
        return cls(
            change_type=ChangeType(record["type"]),
            target_id=record["targetId"],
            kind=ConflictKind(record.get("kind", ConflictKind.PAGE.value)),
            payload=record.get("payload") or {},
            timestamp=record.get("timestamp", ""),
            base_revision=record.get("baseRevision"),
            change_id=record.get("changeId") or uuid.uuid4().hex,
        )


@dataclass
class SyncEvent:
    """One entry of the bounded sync history."""
    event_type: SyncEventType
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: format_timestamp(datetime.now(UTC)))

    def to_record(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.event_type.value,
            "message": self.message,
            "details": self.details,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'SyncEvent':
        return cls(
            event_type=SyncEventType(record.get("type", SyncEventType.WARNING.value)),
            message=record.get("message", ""),
            details=record.get("details") or {},
            timestamp=record.get("timestamp", ""),
        )


@dataclass
class SyncState:
    """Snapshot of the persisted sync status.

    Attributes:
        is_running: A cycle is in flight
        scheduled: Recurring cycles are scheduled
        last_sync: Completion time of the last cycle that was not aborted
        next_sync: When the next scheduled cycle is due
        interval_minutes: Schedule interval
        error_count: Consecutive cycles that did not complete cleanly
        last_error: Message of the last failure
        history: Most recent first, at most 50 events
        pending_changes: Number of queued local changes
        manual_holds: Item id -> reason, for conflicts awaiting an operator
        sync_status: idle, syncing or error
        last_sync_attempt: Start time of the last cycle
        category_baseline: Category id -> fingerprint at the last sync
    """
    is_running: bool = False
    scheduled: bool = False
    last_sync: Optional[str] = None
    next_sync: Optional[str] = None
    interval_minutes: float = 30
    error_count: int = 0
    last_error: Optional[str] = None
    history: List[SyncEvent] = field(default_factory=list)
    pending_changes: int = 0
    manual_holds: Dict[str, str] = field(default_factory=dict)
    sync_status: OrchestratorState = OrchestratorState.IDLE
    last_sync_attempt: Optional[str] = None
    category_baseline: Dict[str, str] = field(default_factory=dict)

    def add_event(self, event: SyncEvent) -> None:
        self.history.insert(0, event)
        del self.history[HISTORY_LIMIT:]

    def to_record(self) -> Dict[str, Any]:
        """Serialize every field except the pending queue itself."""
        return {
            "isRunning": self.is_running,
            "scheduled": self.scheduled,
            "lastSync": self.last_sync,
            "nextSync": self.next_sync,
            "intervalMinutes": self.interval_minutes,
            "errorCount": self.error_count,
            "lastError": self.last_error,
            "history": [event.to_record() for event in self.history],
            "manualHolds": dict(self.manual_holds),
            "syncStatus": self.sync_status.value,
            "lastSyncAttempt": self.last_sync_attempt,
            "categoryBaseline": dict(self.category_baseline),
        }

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> 'SyncState':
        record = record or {}
        return cls(
            is_running=bool(record.get("isRunning", False)),
            scheduled=bool(record.get("scheduled", False)),
            last_sync=record.get("lastSync"),
            next_sync=record.get("nextSync"),
            interval_minutes=record.get("intervalMinutes", 30),
            error_count=int(record.get("errorCount", 0)),
            last_error=record.get("lastError"),
            history=[SyncEvent.from_record(event) for event in record.get("history", [])],
            pending_changes=len(record.get("pendingChanges", [])),
            manual_holds=dict(record.get("manualHolds") or {}),
            sync_status=OrchestratorState(record.get("syncStatus", OrchestratorState.IDLE.value)),
            last_sync_attempt=record.get("lastSyncAttempt"),
            category_baseline=dict(record.get("categoryBaseline") or {}),
        )


@dataclass
class DocumentSet:
    """A full view of one side: pages and categories keyed by id.

    Attributes:
        documents: Page id -> Document
        categories: Category id -> Category
        toc: The table of contents the categories came from
        toc_revision: Revision of the table of contents (None locally
            before the first sync)
    """
    documents: Dict[str, Document] = field(default_factory=dict)
    categories: Dict[str, Category] = field(default_factory=dict)
    toc: Optional[TableOfContents] = None
    toc_revision: Optional[str] = None

    @classmethod
    def from_toc(
        cls,
        toc: Optional[TableOfContents],
        documents: Dict[str, Document],
        toc_revision: Optional[str] = None,
    ) -> 'DocumentSet':
        return cls(
            documents=documents,
            categories=toc.category_map() if toc else {},
            toc=toc,
            toc_revision=toc_revision,
        )


@dataclass
class DetectionResult:
    """Outcome of comparing a local and a remote DocumentSet.

    Attributes:
        conflicts: Items needing a resolution strategy
        to_pull: Page ids whose remote version should be stored locally
        to_push: Page ids whose local changes should reach the remote
        unchanged: Page and category ids identical on both sides
        categories_to_pull: Category ids changed only remotely
        categories_to_push: Category ids changed only locally
    """
    conflicts: List[ConflictItem] = field(default_factory=list)
    to_pull: List[str] = field(default_factory=list)
    to_push: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    categories_to_pull: List[str] = field(default_factory=list)
    categories_to_push: List[str] = field(default_factory=list)


@dataclass
class CycleReport:
    """Summary of one sync cycle, returned to callers such as the CLI."""
    started_at: str
    finished_at: Optional[str] = None
    pulled: int = 0
    pushed: int = 0
    conflicts: int = 0
    resolved: int = 0
    manual: int = 0
    failed: int = 0
    aborted: bool = False
    error: Optional[str] = None
    exception: Optional[Exception] = field(default=None, repr=False, compare=False)

    @property
    def duration_seconds(self) -> Optional[float]:
        start = parse_timestamp(self.started_at)
        end = parse_timestamp(self.finished_at)
        if start is None or end is None:
            return None
        return (end - start).total_seconds()

    @property
    def clean(self) -> bool:
        return not self.aborted and self.failed == 0
