"""Read-only per-tick observability snapshot."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TickSnapshot:
    tick: int
    timestamp: float

    total_pnl: float
    critical_count: int
    warning_count: int
    multiplier: float

    failover_state: str
    commit_error: Optional[str] = None
