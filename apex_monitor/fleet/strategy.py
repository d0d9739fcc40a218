"""Strategy record and the PnL status function."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Status thresholds (USD, fixed)
CRITICAL_PNL = -50.0
WARNING_PNL = -10.0


class StrategyStatus(Enum):
    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


def classify_pnl(pnl: float) -> StrategyStatus:
    """Map cumulative PnL to a status. Pure; recomputed every tick."""
    if pnl < CRITICAL_PNL:
        return StrategyStatus.CRITICAL
    if pnl < WARNING_PNL:
        return StrategyStatus.WARNING
    return StrategyStatus.HEALTHY


@dataclass
class Strategy:
    """
    One member of the monitored fleet.

    `volatility` and `base_allocation` are fixed at creation. `pnl` moves every
    tick; `status` and `multiplier` are rewritten by the aggregator.
    """

    id: int
    volatility: float
    base_allocation: float
    pnl: float = 0.0
    status: StrategyStatus = StrategyStatus.HEALTHY
    multiplier: float = 1.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pnl": float(self.pnl),
            "volatility": float(self.volatility),
            "status": self.status.value,
            "multiplier": float(self.multiplier),
            "base_allocation": float(self.base_allocation),
        }
