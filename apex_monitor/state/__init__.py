"""
In-memory observability state for the monitor (snapshot ring buffer + read-only API).
"""

from .snapshot import TickSnapshot
from .snapshot_buffer import SnapshotBuffer

__all__ = [
    "TickSnapshot",
    "SnapshotBuffer",
]
