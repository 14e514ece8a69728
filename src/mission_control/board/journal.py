"""Capped, newest-first JSON lists used by the activity and notification trails."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from filelock import FileLock
from loguru import logger

from ..constants import LOCK_TIMEOUT
from ..io_utils import _atomic_write_json, _load_data_with_error, _quarantine

E = TypeVar("E")


class CappedLog(Generic[E]):
    """Rolling window of at most ``capacity`` entries stored under ``key``.

    New entries go to the front; once full, the oldest (by insertion) fall
    off the end.  Reads and writes are serialized by a thread lock plus a
    file lock next to the data file.
    """

    def __init__(
        self,
        path: Path,
        lock_path: Path,
        key: str,
        capacity: int,
        loader: Callable[[dict[str, Any]], E],
        dumper: Callable[[E], dict[str, Any]],
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._path = path
        self._file_lock = FileLock(str(lock_path), timeout=LOCK_TIMEOUT)
        self._thread_lock = threading.RLock()
        self._key = key
        self._loader = loader
        self._dumper = dumper
        self.capacity = capacity

    @property
    def path(self) -> Path:
        return self._path

    def _load_raw(self) -> list[dict[str, Any]]:
        data, err = _load_data_with_error(self._path, {self._key: []})
        if err:
            moved = _quarantine(self._path)
            logger.error("Unreadable {} ({}); moved aside to {}", self._path.name, err, moved)
            return []
        items = data.get(self._key, [])
        return [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []

    def _save_raw(self, items: list[dict[str, Any]]) -> None:
        _atomic_write_json(self._path, {self._key: items[: self.capacity]})

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._thread_lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._file_lock:
                yield

    def append(self, entry: E) -> E:
        with self._locked():
            items = self._load_raw()
            items.insert(0, self._dumper(entry))
            self._save_raw(items)
        return entry

    def list(self, limit: Optional[int] = None) -> list[E]:
        """Return entries newest first, at most *limit* of them."""
        with self._locked():
            items = self._load_raw()
        if limit is not None:
            items = items[: max(limit, 0)]
        out: list[E] = []
        for item in items:
            try:
                out.append(self._loader(item))
            except (KeyError, ValueError):
                logger.debug("Skipping malformed {} entry: {}", self._key, item)
        return out

    def update_all(self, change: Callable[[dict[str, Any]], bool]) -> int:
        """Apply *change* to every stored entry in place; returns how many it changed."""
        with self._locked():
            items = self._load_raw()
            changed = sum(1 for item in items if change(item))
            if changed:
                self._save_raw(items)
        return changed

    def __len__(self) -> int:
        with self._locked():
            return len(self._load_raw())

