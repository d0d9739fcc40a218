"""
Strategy fleet records and their stochastic per-tick PnL mutation.
"""

from .strategy import Strategy, StrategyStatus, classify_pnl
from .strategy_fleet import AllocationParams, RandomSource, StrategyFleet

__all__ = [
    "Strategy",
    "StrategyStatus",
    "classify_pnl",
    "AllocationParams",
    "RandomSource",
    "StrategyFleet",
]
