"""Fleet-wide PnL aggregation and risk multiplier policy."""

from .performance import FleetAggregate, PerformanceAggregator

__all__ = ["FleetAggregate", "PerformanceAggregator"]
