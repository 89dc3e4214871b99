"""Registry snapshot persistence."""

from coderaid.persistence.store import (
    FileSnapshotStore,
    MemorySnapshotStore,
    SnapshotStore,
    get_snapshot_store,
)

__all__ = [
    "FileSnapshotStore",
    "MemorySnapshotStore",
    "SnapshotStore",
    "get_snapshot_store",
]
