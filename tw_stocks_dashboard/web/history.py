"""
Recently analysed stocks, most recent first.

Kept in process memory only; the dashboard shows the last few searches
and a restart clears them.
"""

from __future__ import annotations

import threading

from tw_stocks_dashboard.data.models import StockSnapshot


class SearchHistory:
    """Bounded most-recent-first list of snapshots, unique by stock id."""

    def __init__(self, size: int = 3) -> None:
        self._size = size
        self._items: list[StockSnapshot] = []
        self._lock = threading.Lock()

    def add(self, snapshot: StockSnapshot) -> None:
        with self._lock:
            rest = [s for s in self._items if s.id != snapshot.id]
            self._items = [snapshot, *rest][: self._size]

    def items(self) -> list[StockSnapshot]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
