"""Bounded, tick-ordered history of monitor snapshots."""
from collections import deque
from threading import Lock
from typing import List, Optional
import logging

from .snapshot import TickSnapshot

logger = logging.getLogger(__name__)


class SnapshotBuffer:
    """
    Ring of the most recent TickSnapshots, strictly increasing by tick.

    Written by the tick thread, read by the API; every access takes the lock.
    """

    def __init__(self, maxlen: int = 5000):
        self._snapshots: deque = deque(maxlen=maxlen)
        self._lock = Lock()
        self._last_failure: Optional[TickSnapshot] = None

    def append(self, snapshot: TickSnapshot) -> bool:
        """Store a snapshot. Returns False (and keeps nothing) for a stale tick."""
        with self._lock:
            newest = self._snapshots[-1].tick if self._snapshots else 0
            if snapshot.tick <= newest:
                logger.warning("Stale snapshot for tick %d ignored (newest is %d)", snapshot.tick, newest)
                return False
            self._snapshots.append(snapshot)
            if snapshot.commit_error:
                self._last_failure = snapshot
            return True

    def latest(self) -> Optional[TickSnapshot]:
        with self._lock:
            return self._snapshots[-1] if self._snapshots else None

    def history(self, n: Optional[int] = None, since_tick: Optional[int] = None) -> List[TickSnapshot]:
        """
        Snapshots oldest to newest.

        Args:
            n: Keep only the newest n (None keeps all, <= 0 returns nothing)
            since_tick: Drop snapshots with tick < since_tick
        """
        with self._lock:
            selected = [s for s in self._snapshots if since_tick is None or s.tick >= since_tick]
        if n is None:
            return selected
        return selected[-n:] if n > 0 else []

    def last_commit_failure(self) -> Optional[TickSnapshot]:
        """Most recent snapshot that recorded a failed failover commit, even if evicted."""
        with self._lock:
            return self._last_failure

    def size(self) -> int:
        with self._lock:
            return len(self._snapshots)

    @property
    def maxlen(self) -> int:
        return self._snapshots.maxlen
