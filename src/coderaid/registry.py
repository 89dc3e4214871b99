"""Raid registry - named code spaces behind one lock."""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from coderaid.engine import (
    CodeList,
    CodeSpaceEngine,
    PersistenceFailure,
    RaidAlreadyExists,
    RaidNotFound,
    pin_codes,
)
from coderaid.engine.core import DEFAULT_LEASE_TTL_SECONDS
from coderaid.models import CodeReservation, RaidState, RaidSummary, RegistrySnapshot
from coderaid.observability.metrics import metrics
from coderaid.persistence import MemorySnapshotStore, SnapshotStore
from coderaid.utils.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_RESERVATION_BATCH_SIZE = 5


class InstanceRegistry:
    """
    Mapping of raid name to CodeSpaceEngine.

    Every operation holds the registry lock for its whole duration, including
    the snapshot save of mutating operations. A mutation becomes visible to
    other callers only once its snapshot has been written; when the save
    fails for any reason the in-memory change is rolled back and the error
    re-raised; stores report write errors as PersistenceFailure.
    """

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        codes: Optional[CodeList] = None,
        lease_ttl_seconds: float = DEFAULT_LEASE_TTL_SECONDS,
        batch_size: int = DEFAULT_RESERVATION_BATCH_SIZE,
    ):
        self._lock = threading.RLock()
        self._raids: dict[str, CodeSpaceEngine] = {}
        self.store = store if store is not None else MemorySnapshotStore()
        self.codes = codes if codes is not None else pin_codes()
        self.lease_ttl_seconds = lease_ttl_seconds
        self.batch_size = batch_size

    @classmethod
    def load_or_empty(
        cls,
        store: SnapshotStore,
        codes: Optional[CodeList] = None,
        lease_ttl_seconds: float = DEFAULT_LEASE_TTL_SECONDS,
        batch_size: int = DEFAULT_RESERVATION_BATCH_SIZE,
    ) -> "InstanceRegistry":
        """Restore from the store; any load failure starts an empty registry."""
        registry = cls(store, codes, lease_ttl_seconds, batch_size)
        try:
            snapshot = store.load()
            if snapshot is not None:
                registry.restore(snapshot)
        except (PersistenceFailure, ValueError) as e:
            logger.warning(f"Could not load raid snapshot, starting empty: {e}")
            registry._raids = {}
        else:
            logger.info(f"Loaded {len(registry._raids)} raids from snapshot")
        metrics.set_gauge("raids_active", len(registry._raids))
        return registry

    @contextmanager
    def locked(self) -> Iterator["InstanceRegistry"]:
        """Hold the registry lock; required around get() and engine calls."""
        with self._lock:
            yield self

    # =========================================================================
    # Registry operations
    # =========================================================================

    def list_summary(self, now: Optional[datetime] = None) -> dict[str, RaidSummary]:
        """
        Summaries of all raids, after reclaiming expired leases everywhere.

        Reclamation is not persisted here; a restored snapshot reclaims the
        same leases on its next touch.
        """
        if now is None:
            now = utc_now()
        with self._lock:
            for raid in self._raids.values():
                raid.reclaim_expired(now)
            return self._summaries()

    def create(self, name: str, skip_count: Optional[int] = None) -> dict[str, RaidSummary]:
        """Register a fresh raid, optionally pre-skipping codes; returns all summaries."""
        with self._lock:
            if name in self._raids:
                raise RaidAlreadyExists(name)

            raid = CodeSpaceEngine(self.codes, self.lease_ttl_seconds)
            if skip_count:
                raid.skip(skip_count)

            self._raids[name] = raid
            self._commit(lambda: self._raids.pop(name, None))

            metrics.inc_counter("raids_created")
            metrics.set_gauge("raids_active", len(self._raids))
            logger.info(f"Created raid {name!r} (skipped {skip_count or 0} codes)")
            return self._summaries()

    def remove(self, name: str) -> None:
        """Delete a raid; unknown names are ignored."""
        with self._lock:
            raid = self._raids.pop(name, None)
            if raid is None:
                return

            self._commit(lambda: self._raids.__setitem__(name, raid))

            metrics.set_gauge("raids_active", len(self._raids))
            logger.info(f"Removed raid {name!r}")

    def get(self, name: str) -> CodeSpaceEngine:
        """Return the named engine; caller must hold locked() while using it."""
        with self._lock:
            raid = self._raids.get(name)
            if raid is None:
                raise RaidNotFound(name)
            return raid

    # =========================================================================
    # Engine operations by name
    # =========================================================================

    def reserve_codes(
        self,
        name: str,
        batch_size: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> CodeReservation:
        """Lease the next batch of codes from a raid."""
        if batch_size is None:
            batch_size = self.batch_size
        with self._lock:
            lease = self._mutate(name, lambda raid: raid.allocate(batch_size, now))
            return self._raids[name].describe(lease)

    def try_code(self, name: str, code: str, now: Optional[datetime] = None) -> bool:
        """Record one tried code against a raid."""
        with self._lock:
            return self._mutate(name, lambda raid: raid.complete(code, now))

    def get_state(self, name: str) -> RaidState:
        with self._lock:
            return self.get(name).state()

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._raids)

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(
                raids={name: raid.to_snapshot() for name, raid in self._raids.items()}
            )

    def restore(self, snapshot: RegistrySnapshot) -> None:
        """Replace the registry contents; raises ValueError on inconsistent data."""
        raids = {
            name: CodeSpaceEngine.from_snapshot(raid, self.codes, self.lease_ttl_seconds)
            for name, raid in snapshot.raids.items()
        }
        with self._lock:
            self._raids = raids

    # =========================================================================
    # Internals
    # =========================================================================

    def _summaries(self) -> dict[str, RaidSummary]:
        return {name: raid.summary() for name, raid in self._raids.items()}

    def _mutate(self, name: str, operation: Callable[[CodeSpaceEngine], object]):
        """Apply ``operation`` to a raid, persist, and roll back if the save fails."""
        raid = self.get(name)
        previous = raid.clone()
        result = operation(raid)
        self._commit(lambda: self._raids.__setitem__(name, previous))
        return result

    def _commit(self, rollback: Callable[[], object]) -> None:
        try:
            with metrics.timed("snapshot_save_seconds"):
                self.store.save(self.snapshot())
        except Exception:
            rollback()
            metrics.inc_counter("snapshot_save_failures")
            logger.error("Snapshot save failed, in-memory change rolled back", exc_info=True)
            raise
