"""
Cache of rotated page images
"""

import threading
from typing import Callable, Dict, Hashable, Optional, Tuple

import numpy as np

CacheKey = Tuple[Hashable, int]


class RotationCache:
    """
    Maps (page_id, rotation) to the page image rendered at that rotation.

    Safe to use from several threads. At most one rendering per key runs at
    a time; other callers asking for the same key wait for it and share
    the result.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, np.ndarray] = {}
        self._in_flight: Dict[CacheKey, threading.Event] = {}

    def get(self, page_id, rotation: int) -> Optional[np.ndarray]:
        with self._lock:
            return self._entries.get((page_id, rotation % 360))

    def get_or_create(
        self,
        page_id,
        rotation: int,
        factory: Callable[[], np.ndarray]
    ) -> np.ndarray:
        """
        Return the cached image, rendering it with factory() on a miss.

        If factory raises, nothing is cached, waiting callers retry and the
        exception propagates to the caller that ran it.
        """
        key = (page_id, rotation % 360)

        while True:
            with self._lock:
                if key in self._entries:
                    return self._entries[key]
                pending = self._in_flight.get(key)
                if pending is None:
                    pending = threading.Event()
                    self._in_flight[key] = pending
                    break
            pending.wait()

        try:
            image = factory()
            with self._lock:
                # An eviction while rendering removes the in-flight marker;
                # the result is returned but not stored.
                if self._in_flight.get(key) is pending:
                    self._entries[key] = image
            return image
        finally:
            with self._lock:
                if self._in_flight.get(key) is pending:
                    del self._in_flight[key]
            pending.set()

    def evict_page(self, page_id) -> int:
        """Drop every rotation of one page, returns the number of entries removed"""
        with self._lock:
            keys = [key for key in self._entries if key[0] == page_id]
            for key in keys:
                del self._entries[key]
            for key in [key for key in self._in_flight if key[0] == page_id]:
                del self._in_flight[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._in_flight.clear()

    def __contains__(self, key) -> bool:
        page_id, rotation = key
        with self._lock:
            return (page_id, rotation % 360) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
