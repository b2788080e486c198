"""Offline wiki sync engine.

Detects and resolves conflicts between the local cache and the remote
store, delivers queued local changes, and schedules recurring sync cycles.
"""

from .conflict_detector import ConflictDetector
from .conflict_resolver import ConflictResolver, ResolutionSummary
from .context import SyncContext, build_context, create_transport
from .errors import (
    ConflictAlreadyResolvedError,
    ManualResolutionRequired,
    StructuralSyncError,
    SyncEngineError,
    UnknownStrategyError,
)
from .index_store import IndexStore
from .local_editor import DocumentNotCachedError, DuplicateDocumentError, LocalEditor
from .merge import merge_categories, merge_documents
from .models import (
    ChangeType,
    ConflictItem,
    ConflictKind,
    ConflictType,
    CycleReport,
    DetectionResult,
    DocumentSet,
    OrchestratorState,
    PendingChange,
    Resolution,
    Strategy,
    SyncEvent,
    SyncEventType,
    SyncState,
)
from .orchestrator import SyncOrchestrator
from .pending_queue import PendingChangeQueue
from .scheduler import RecurringTask
from .strategy_registry import DEFAULT_STRATEGY, StrategyRegistry
from .sync_state_store import SyncStateStore

__all__ = [
    'ChangeType',
    'ConflictAlreadyResolvedError',
    'ConflictDetector',
    'ConflictItem',
    'ConflictKind',
    'ConflictResolver',
    'ConflictType',
    'CycleReport',
    'DEFAULT_STRATEGY',
    'DetectionResult',
    'DocumentNotCachedError',
    'DocumentSet',
    'DuplicateDocumentError',
    'IndexStore',
    'LocalEditor',
    'ManualResolutionRequired',
    'OrchestratorState',
    'PendingChange',
    'PendingChangeQueue',
    'RecurringTask',
    'Resolution',
    'ResolutionSummary',
    'Strategy',
    'StrategyRegistry',
    'StructuralSyncError',
    'SyncContext',
    'SyncEngineError',
    'SyncEvent',
    'SyncEventType',
    'SyncOrchestrator',
    'SyncState',
    'SyncStateStore',
    'UnknownStrategyError',
    'build_context',
    'create_transport',
    'merge_categories',
    'merge_documents',
]
