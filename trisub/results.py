"""Append-only storage for translated cues."""

from __future__ import annotations

import threading
from typing import Iterable, List, Tuple

from .structures import TranslatedEntry


class ResultStore:
    """Insertion-ordered results of the current run."""

    def __init__(self) -> None:
        self._entries: List[TranslatedEntry] = []
        self._lock = threading.Lock()

    def extend(self, entries: Iterable[TranslatedEntry]) -> None:
        with self._lock:
            self._entries.extend(entries)

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def snapshot(self) -> Tuple[TranslatedEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)
