"""Snapshot persistence for the raid registry."""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from coderaid.engine.errors import PersistenceFailure
from coderaid.models import RegistrySnapshot

logger = logging.getLogger(__name__)


class SnapshotStore(ABC):
    """Loads and saves the whole registry snapshot as one blob."""

    @abstractmethod
    def load(self) -> Optional[RegistrySnapshot]:
        """
        Return the stored snapshot, or None if nothing was ever saved.

        Raises:
            PersistenceFailure: stored data exists but cannot be read
        """

    @abstractmethod
    def save(self, snapshot: RegistrySnapshot) -> None:
        """
        Durably replace the stored snapshot.

        Raises:
            PersistenceFailure: the snapshot was not written
        """


class MemorySnapshotStore(SnapshotStore):
    """Keeps the serialized snapshot in memory (tests, no data path configured)."""

    def __init__(self) -> None:
        self._payload: Optional[str] = None

    def load(self) -> Optional[RegistrySnapshot]:
        if self._payload is None:
            return None
        return RegistrySnapshot.model_validate_json(self._payload)

    def save(self, snapshot: RegistrySnapshot) -> None:
        self._payload = snapshot.model_dump_json()


class FileSnapshotStore(SnapshotStore):
    """
    JSON snapshot file, replaced atomically on every save.

    The snapshot is written to a temp file in the same directory, fsynced and
    then moved over the target with ``os.replace`` so a crash mid-write
    leaves the previous snapshot intact.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> Optional[RegistrySnapshot]:
        if not self.path.exists():
            return None
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceFailure(f"Cannot read snapshot {self.path}: {e}") from e
        try:
            return RegistrySnapshot.model_validate_json(text)
        except ValidationError as e:
            raise PersistenceFailure(f"Invalid snapshot {self.path}: {e}") from e

    def save(self, snapshot: RegistrySnapshot) -> None:
        payload = snapshot.model_dump_json()
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent),
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise PersistenceFailure(f"Cannot write snapshot {self.path}: {e}") from e
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    logger.warning(f"Could not remove temp snapshot {tmp_path}")


def get_snapshot_store(path: Optional[Path]) -> SnapshotStore:
    """File store for a configured path, in-memory store otherwise."""
    if path is None:
        logger.warning("No data path configured; raids will not survive a restart")
        return MemorySnapshotStore()
    return FileSnapshotStore(path)
