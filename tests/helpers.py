"""Shared stubs for the monitor test suite."""
import itertools

from apex_monitor.failover.controller import CommitResult
from apex_monitor.fleet.strategy import Strategy, classify_pnl
from apex_monitor.fleet.strategy_fleet import AllocationParams, StrategyFleet


class FixedRandom:
    """Random source that cycles through a fixed list of draws."""

    def __init__(self, *values):
        self._values = itertools.cycle(values or (0.5,))
        self.draws = 0

    def random(self):
        self.draws += 1
        return next(self._values)


class CountingCommit:
    """Commit stub recording every call; optionally fails the first N calls."""

    def __init__(self, fail_first: int = 0, confirmation: str = "0xconfirmed"):
        self.calls = []
        self.fail_first = fail_first
        self.confirmation = confirmation

    def __call__(self, failing_id, backup_id):
        self.calls.append((failing_id, backup_id))
        if len(self.calls) <= self.fail_first:
            return CommitResult.failure("relay unavailable")
        return CommitResult.success(self.confirmation)


def make_fleet(pnls=(0.0, 0.0, 0.0), volatility=1.0, base_allocation=1000.0, degrading=()):
    strategies = [
        Strategy(
            id=i + 1,
            volatility=volatility,
            base_allocation=base_allocation,
            pnl=pnl,
            status=classify_pnl(pnl),
        )
        for i, pnl in enumerate(pnls)
    ]
    return StrategyFleet(strategies, AllocationParams(degrading_ids=frozenset(degrading)))
