"""Manifest content cache keyed by path and modification time."""

from __future__ import annotations

import threading
from pathlib import Path


class FileCache:
    """Process-local ``path -> (mtime, content)`` memo.

    Reads of the same path are serialized through a per-path lock, so two
    threads asking for one file never read it twice.
    """

    def __init__(self):
        self._entries: dict[Path, tuple[int, str]] = {}
        self._locks: dict[Path, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock

    def read(self, path: Path) -> str:
        mtime = path.stat().st_mtime_ns
        entry = self._entries.get(path)
        if entry is not None and entry[0] == mtime:
            return entry[1]

        with self._lock_for(path):
            entry = self._entries.get(path)
            if entry is not None and entry[0] == mtime:
                return entry[1]
            content = path.read_text(encoding="utf-8")
            self._entries[path] = (mtime, content)
            return content

    def clear(self) -> None:
        with self._guard:
            self._entries.clear()
            self._locks.clear()

    def __contains__(self, path: Path) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)
