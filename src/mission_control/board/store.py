"""Snapshot-backed task store with a single writer lock.

The whole board (reference sets plus tasks) lives in one YAML file
(``board.yaml``) inside the data directory.  The store keeps the last
persisted snapshot in memory and serializes every read-modify-write through
:meth:`TaskStore.commit`: the mutator works on a copy, the copy is written
atomically, and only then does it replace the in-memory snapshot.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional

from filelock import FileLock
from loguru import logger

from ..constants import LOCK_TIMEOUT, SNAPSHOT_FILE, SNAPSHOT_LOCK_FILE
from ..errors import SnapshotError
from ..io_utils import _atomic_write_yaml, _load_data_with_error
from .bootstrap import default_snapshot
from .model import Snapshot, Task

Mutator = Callable[[Snapshot], Task]


class TaskStore:
    """Durable owner of the canonical task collection and reference sets.

    Parameters
    ----------
    data_dir:
        Storage root for the board.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._store_path = data_dir / SNAPSHOT_FILE
        self._file_lock = FileLock(str(data_dir / SNAPSHOT_LOCK_FILE), timeout=LOCK_TIMEOUT)
        self._lock = threading.RLock()
        self._snapshot: Optional[Snapshot] = None

    @property
    def path(self) -> Path:
        return self._store_path

    # -- internal helpers ---------------------------------------------------

    def _read(self) -> Snapshot:
        if not self._store_path.exists():
            snapshot = default_snapshot()
            self._write(snapshot)
            logger.info("Initialized board snapshot at {}", self._store_path)
            return snapshot
        raw, err = _load_data_with_error(self._store_path, {})
        if err:
            raise SnapshotError(f"Cannot load board snapshot: {err}")
        try:
            return Snapshot.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"Malformed board snapshot {self._store_path.name}: {exc}") from exc

    def _write(self, snapshot: Snapshot) -> None:
        self._data_dir.mkdir(parents=True, exist_ok=True)
        with self._file_lock:
            _atomic_write_yaml(self._store_path, snapshot.to_dict())

    def _current(self) -> Snapshot:
        if self._snapshot is None:
            self._snapshot = self._read()
        return self._snapshot

    # -- public API ---------------------------------------------------------

    def open(self) -> Snapshot:
        """Load (or seed) the snapshot eagerly; raises :class:`SnapshotError` if unreadable."""
        with self._lock:
            return self._current().copy()

    def load(self) -> Snapshot:
        """Return a copy of the most recently committed snapshot."""
        with self._lock:
            return self._current().copy()

    def get_one(self, task_id: str) -> Optional[Task]:
        with self._lock:
            task = self._current().get_task(task_id)
            return task.copy() if task is not None else None

    def commit(self, mutator: Mutator) -> Task:
        """Apply *mutator* to the latest snapshot and persist the result.

        The mutator receives a working copy and returns the affected task.
        Any exception it raises, or a failed write, leaves the stored state
        untouched and propagates to the caller.

        Usage::

            def _rename(snapshot):
                task = snapshot.require_task("task-abc")
                task.title = "New"
                return task

            store.commit(_rename)
        """
        with self._lock:
            working = self._current().copy()
            task = mutator(working)
            self._write(working)
            self._snapshot = working
            return task.copy()
