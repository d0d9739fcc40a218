"""Reduce the fleet to an aggregate PnL and apply the global multiplier policy."""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Optional

from apex_monitor.errors import InvariantViolation
from apex_monitor.fleet.strategy import StrategyStatus, classify_pnl
from apex_monitor.fleet.strategy_fleet import StrategyFleet

logger = logging.getLogger(__name__)

DERISK_PNL_THRESHOLD = -500.0
DERISK_MULTIPLIER = 0.8
NEUTRAL_MULTIPLIER = 1.0


@dataclass(frozen=True)
class FleetAggregate:
    """Per-tick reduction of the fleet. Never carried between ticks."""

    total_pnl: float
    critical_count: int
    warning_count: int
    healthy_count: int
    multiplier: float  # value written for the next tick's mutation


class PerformanceAggregator:
    """
    Stateless reducer over a StrategyFleet.

    Rewrites each strategy's status from its PnL, sums PnL across the fleet and
    writes one fleet-wide multiplier: derisked while the total sits below
    `derisk_threshold`, neutral otherwise.
    """

    def __init__(
        self,
        derisk_threshold: float = DERISK_PNL_THRESHOLD,
        derisk_multiplier: float = DERISK_MULTIPLIER,
    ):
        self.derisk_threshold = float(derisk_threshold)
        self.derisk_multiplier = float(derisk_multiplier)

    def evaluate(self, fleet: StrategyFleet) -> FleetAggregate:
        total_pnl = 0.0
        counts = {status: 0 for status in StrategyStatus}

        for strategy in fleet:
            strategy.status = classify_pnl(strategy.pnl)
            counts[strategy.status] += 1
            total_pnl += strategy.pnl

        multiplier = self.multiplier_for(total_pnl)
        for strategy in fleet:
            strategy.multiplier = multiplier

        # Post-condition; only non-finite PnL can trip it here
        self.check_invariants(fleet, multiplier)

        aggregate = FleetAggregate(
            total_pnl=total_pnl,
            critical_count=counts[StrategyStatus.CRITICAL],
            warning_count=counts[StrategyStatus.WARNING],
            healthy_count=counts[StrategyStatus.HEALTHY],
            multiplier=multiplier,
        )
        logger.debug(
            "Aggregated fleet total_pnl=%.2f critical=%d warning=%d multiplier=%.2f",
            aggregate.total_pnl,
            aggregate.critical_count,
            aggregate.warning_count,
            aggregate.multiplier,
        )
        return aggregate

    def multiplier_for(self, total_pnl: float) -> float:
        if total_pnl < self.derisk_threshold:
            return self.derisk_multiplier
        return NEUTRAL_MULTIPLIER

    @staticmethod
    def check_invariants(fleet: StrategyFleet, multiplier: Optional[float] = None) -> None:
        """
        Raise InvariantViolation if any record is inconsistent.

        Run before a tick mutates the fleet, it catches statuses or multipliers
        that drifted from the last aggregate pass. Without `multiplier` the
        first strategy's value is the fleet reference.
        """
        if multiplier is None:
            first = next(iter(fleet), None)
            if first is None:
                return
            multiplier = first.multiplier
        for strategy in fleet:
            if not math.isfinite(strategy.pnl):
                raise InvariantViolation(f"Strategy {strategy.id} has non-finite pnl {strategy.pnl!r}")
            expected = classify_pnl(strategy.pnl)
            if strategy.status is not expected:
                raise InvariantViolation(
                    f"Strategy {strategy.id} status {strategy.status.value} inconsistent with "
                    f"pnl {strategy.pnl:.4f} (expected {expected.value})"
                )
            if strategy.multiplier != multiplier:
                raise InvariantViolation(
                    f"Strategy {strategy.id} multiplier {strategy.multiplier} differs from fleet {multiplier}"
                )
