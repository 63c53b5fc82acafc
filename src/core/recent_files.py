"""Ordered, deduplicated, persisted history of recently accessed files.

One RecentFilesManager is built at startup and handed to whoever needs it.
Mutations are serialised by a single lock that is held across
compute -> persist -> swap -> notify, so listeners always observe state that is
already on disk and never interleave with another mutator.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List

from core.models import RecentFile
from core.storage import RecentFilesStore

logger = logging.getLogger(__name__)

Listener = Callable[[List[RecentFile]], None]


def _by_recency(entries: List[RecentFile]) -> List[RecentFile]:
    # sorted() is stable with reverse=True, so ties keep insertion order
    return sorted(entries, key=lambda e: e.access_date, reverse=True)


class RecentFilesManager:
    DEFAULT_MAX_ENTRIES = 20

    def __init__(self, *, store: RecentFilesStore, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self._store = store
        self._max_entries = max(1, int(max_entries))
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

        entries = self._dedupe(store.load())
        self._entries: List[RecentFile] = self._trim(entries)
        logger.debug("Loaded %d recent files", len(self._entries))

    @classmethod
    def from_storage(cls, state_dir: Path, *, max_entries: int = DEFAULT_MAX_ENTRIES) -> "RecentFilesManager":
        return cls(store=RecentFilesStore.in_dir(state_dir), max_entries=max_entries)

    # --- queries ---

    def recent_files(self) -> List[RecentFile]:
        """Most recent first; the returned list is the caller's to keep."""
        with self._lock:
            return _by_recency(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # --- mutations ---

    def add_recent_file(self, entry: RecentFile) -> None:
        with self._lock:
            entries = list(self._entries)
            for i, existing in enumerate(entries):
                if existing.file_ssid == entry.file_ssid:
                    entries[i] = entry
                    break
            else:
                entries.append(entry)
            self._commit(self._trim(entries))

    def remove_recent_file(self, entry: RecentFile) -> None:
        with self._lock:
            key = entry.logical_key
            self._commit([e for e in self._entries if e.logical_key != key])

    def clear_recent_files(self) -> None:
        with self._lock:
            self._commit([])

    # --- change notification ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # --- internals ---

    def _commit(self, entries: List[RecentFile]) -> None:
        snapshot = _by_recency(entries)
        # Persist first: a failed write raises PersistenceError with state untouched
        self._store.save(entries)
        self._entries = entries

        for listener in list(self._listeners):
            listener(list(snapshot))

    def _trim(self, entries: List[RecentFile]) -> List[RecentFile]:
        if len(entries) <= self._max_entries:
            return entries
        keep = {id(e) for e in _by_recency(entries)[: self._max_entries]}
        return [e for e in entries if id(e) in keep]

    @staticmethod
    def _dedupe(entries: List[RecentFile]) -> List[RecentFile]:
        # Older stores may hold the same ssid twice; keep the latest access
        latest = {}
        for e in entries:
            cur = latest.get(e.file_ssid)
            if cur is None or e.access_date > cur.access_date:
                latest[e.file_ssid] = e
        return [e for e in entries if latest[e.file_ssid] is e]
