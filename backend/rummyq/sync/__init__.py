"""Queue/table synchronization engine."""

from .errors import RemoteUnavailableError, SetupRequiredError, SyncError
from .events import ChangeEvent, ChangeKind, EntityKind
from .operations import Direction, QueueEngine
from .reconciler import ChangeReconciler, merge_game_change, merge_queue_change
from .remote import PostgresRemote, connect_remote
from .session import SyncSession
from .snapshot import JsonFileSnapshotStore, SnapshotPersister, SnapshotStore
from .storage import RemoteStore, Subscription
from .store import LocalStateStore

__all__ = [
    # Errors
    "RemoteUnavailableError",
    "SetupRequiredError",
    "SyncError",
    # Events
    "ChangeEvent",
    "ChangeKind",
    "EntityKind",
    # Engine
    "ChangeReconciler",
    "Direction",
    "LocalStateStore",
    "QueueEngine",
    "SyncSession",
    "merge_game_change",
    "merge_queue_change",
    # Storage
    "JsonFileSnapshotStore",
    "PostgresRemote",
    "RemoteStore",
    "SnapshotPersister",
    "SnapshotStore",
    "Subscription",
    "connect_remote",
]
