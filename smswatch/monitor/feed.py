"""
smswatch/monitor/feed.py
Bounded, thread-safe buffer of recent WatchResults. The poll loop appends,
the HTTP API reads from another thread.
"""

import threading
from collections import deque
from typing import Deque, List, Optional

from smswatch.models.record import Category, WatchResult


class ResultFeed:

    def __init__(self, maxlen: int = 50):
        self._items: Deque[WatchResult] = deque(maxlen=maxlen)
        self._lock  = threading.Lock()
        self.total  = 0

    def __call__(self, result: WatchResult) -> None:
        self.append(result)

    def append(self, result: WatchResult) -> None:
        with self._lock:
            self._items.append(result)
            self.total += 1

    def recent(self, limit: int = 50, category: Optional[Category] = None) -> List[WatchResult]:
        """Newest first."""
        with self._lock:
            items = list(self._items)
        items.reverse()
        if category is not None:
            items = [r for r in items if r.classification.category == category]
        return items[:max(0, limit)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
