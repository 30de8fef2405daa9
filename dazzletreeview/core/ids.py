"""Node id allocation.

Ids come from an explicitly owned IdGenerator rather than a hidden global.
Trees that should share an id space are handed the same instance.
"""

import threading

from .node import ROOT_NODE_ID


class IdGenerator:
    """Thread-safe, strictly increasing id counter.

    The first issued id is ``start + 1``, so the reserved root id is never
    handed out. Retired ids are never reused.
    """

    def __init__(self, start: int = ROOT_NODE_ID):
        self._last_id = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        """Allocate the next id."""
        with self._lock:
            self._last_id += 1
            return self._last_id

    @property
    def last_id(self) -> int:
        """The most recently issued id (``start`` if none yet)."""
        with self._lock:
            return self._last_id

    def __repr__(self) -> str:
        return f"IdGenerator(last_id={self._last_id})"
