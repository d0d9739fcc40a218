"""Unit tests for PerformanceAggregator status and multiplier policy."""
import pytest

from apex_monitor.aggregation.performance import PerformanceAggregator
from apex_monitor.errors import InvariantViolation
from apex_monitor.fleet.strategy import StrategyStatus, classify_pnl

from helpers import FixedRandom, make_fleet


@pytest.mark.parametrize(
    "pnl, expected",
    [
        (0.0, StrategyStatus.HEALTHY),
        (25.0, StrategyStatus.HEALTHY),
        (-10.0, StrategyStatus.HEALTHY),
        (-10.01, StrategyStatus.WARNING),
        (-50.0, StrategyStatus.WARNING),
        (-50.01, StrategyStatus.CRITICAL),
        (-1000.0, StrategyStatus.CRITICAL),
    ],
)
def test_status_thresholds(pnl, expected):
    assert classify_pnl(pnl) is expected


def test_evaluate_totals_and_counts():
    fleet = make_fleet(pnls=(-100.0, -20.0, 5.0))

    aggregate = PerformanceAggregator().evaluate(fleet)

    assert aggregate.total_pnl == pytest.approx(-115.0)
    assert aggregate.critical_count == 1
    assert aggregate.warning_count == 1
    assert aggregate.healthy_count == 1
    assert [s.status for s in fleet] == [
        StrategyStatus.CRITICAL,
        StrategyStatus.WARNING,
        StrategyStatus.HEALTHY,
    ]


def test_status_recomputed_when_pnl_recovers():
    fleet = make_fleet(pnls=(-80.0,))
    aggregator = PerformanceAggregator()
    aggregator.evaluate(fleet)
    assert fleet.get(1).status is StrategyStatus.CRITICAL

    fleet.get(1).pnl = 3.0
    aggregate = aggregator.evaluate(fleet)

    assert fleet.get(1).status is StrategyStatus.HEALTHY
    assert aggregate.critical_count == 0


def test_derisk_applies_uniformly_below_threshold():
    fleet = make_fleet(pnls=(-300.0, -300.0, 50.0))

    aggregate = PerformanceAggregator().evaluate(fleet)

    assert aggregate.total_pnl == pytest.approx(-550.0)
    assert aggregate.multiplier == 0.8
    assert all(s.multiplier == 0.8 for s in fleet)


def test_multiplier_resets_uniformly_on_recovery():
    fleet = make_fleet(pnls=(-300.0, -300.0, 50.0))
    aggregator = PerformanceAggregator()
    aggregator.evaluate(fleet)

    fleet.get(3).pnl = 200.0
    aggregate = aggregator.evaluate(fleet)

    assert aggregate.total_pnl == pytest.approx(-400.0)
    assert all(s.multiplier == 1.0 for s in fleet)


def test_derisk_boundary_is_exclusive():
    fleet = make_fleet(pnls=(-250.0, -250.0))
    aggregate = PerformanceAggregator().evaluate(fleet)
    assert aggregate.multiplier == 1.0


def test_multiplier_read_on_next_tick_only():
    fleet = make_fleet(pnls=(-600.0,), volatility=0.02)
    aggregator = PerformanceAggregator()

    aggregator.evaluate(fleet)
    assert fleet.get(1).multiplier == 0.8

    fleet.apply_tick(FixedRandom(0.75))
    assert fleet.get(1).pnl == pytest.approx(-600.0 + 0.25 * 0.02 * 1000.0 * 0.8)


def test_custom_derisk_policy():
    fleet = make_fleet(pnls=(-150.0,))
    aggregate = PerformanceAggregator(derisk_threshold=-100.0, derisk_multiplier=0.5).evaluate(fleet)
    assert aggregate.multiplier == 0.5


def test_non_finite_pnl_is_invariant_violation():
    fleet = make_fleet(pnls=(0.0, float("nan")))
    with pytest.raises(InvariantViolation):
        PerformanceAggregator().evaluate(fleet)


def test_stale_status_is_invariant_violation():
    fleet = make_fleet(pnls=(-80.0,))
    fleet.get(1).status = StrategyStatus.HEALTHY
    with pytest.raises(InvariantViolation):
        PerformanceAggregator.check_invariants(fleet, 1.0)


def test_partial_multiplier_is_invariant_violation():
    fleet = make_fleet(pnls=(0.0, 0.0))
    aggregator = PerformanceAggregator()
    aggregator.evaluate(fleet)
    fleet.get(2).multiplier = 0.8
    with pytest.raises(InvariantViolation):
        aggregator.check_invariants(fleet, 1.0)


def test_check_invariants_defaults_to_first_multiplier():
    fleet = make_fleet(pnls=(0.0, 0.0))
    PerformanceAggregator.check_invariants(fleet)

    fleet.get(2).multiplier = 0.8
    with pytest.raises(InvariantViolation):
        PerformanceAggregator.check_invariants(fleet)


def test_check_invariants_accepts_empty_fleet():
    PerformanceAggregator.check_invariants(make_fleet(pnls=()))
