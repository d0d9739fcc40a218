"""Integration tests for the FleetMonitor tick pipeline."""
import numpy as np
import pytest

from apex_monitor.config import MonitorConfig
from apex_monitor.errors import InvariantViolation
from apex_monitor.failover.controller import FailoverState
from apex_monitor.fleet.strategy import StrategyStatus, classify_pnl
from apex_monitor.monitor import FleetMonitor

from helpers import CountingCommit, FixedRandom, make_fleet


def _config(**overrides):
    values = dict(
        fleet_name="test",
        fleet_size=3,
        critical_loss_threshold=-2000.0,
        tick_interval_ms=1,
        degrading_strategy_ids=(),
        failing_strategy_id=1,
        backup_strategy_id=3,
    )
    values.update(overrides)
    return MonitorConfig(**values)


def _losing_monitor(commit, **overrides):
    # Every draw is 0.0, so each strategy loses 500 * multiplier per tick
    return FleetMonitor(
        _config(**overrides),
        commit_fn=commit,
        rng=FixedRandom(0.0),
        fleet=make_fleet(pnls=(0.0, 0.0, 0.0), volatility=1.0, base_allocation=1000.0),
    )


def test_breach_triggers_failover_once():
    commit = CountingCommit()
    monitor = _losing_monitor(commit)

    first = monitor.step()
    assert first.total_pnl == pytest.approx(-1500.0)
    assert first.failover_state == "ARMED"
    assert first.multiplier == 0.8

    second = monitor.step()
    assert second.total_pnl == pytest.approx(-2700.0)
    assert second.failover_state == "TRIGGERED"
    assert second.critical_count == 3
    assert commit.calls == [(1, 3)]

    # Halted pipeline: no further mutation or commits
    assert monitor.step() is None
    assert monitor.step() is None
    assert sum(s.pnl for s in monitor.fleet) == pytest.approx(-2700.0)
    assert commit.calls == [(1, 3)]


def test_commit_failure_retried_on_next_tick():
    commit = CountingCommit(fail_first=1)
    monitor = _losing_monitor(commit)

    monitor.step()
    failed = monitor.step()
    assert failed.failover_state == "ARMED"
    assert failed.commit_error == "relay unavailable"

    retried = monitor.step()
    assert retried.total_pnl == pytest.approx(-3900.0)
    assert retried.failover_state == "TRIGGERED"
    assert retried.commit_error is None
    assert len(commit.calls) == 2


def test_status_always_consistent_with_pnl():
    config = _config(
        fleet_size=25,
        backup_strategy_id=25,
        degrading_strategy_ids=(1, 5),
        critical_loss_threshold=-1e9,
        random_seed=11,
    )
    monitor = FleetMonitor(config, commit_fn=CountingCommit())

    for _ in range(60):
        monitor.step()
        for strategy in monitor.fleet:
            assert strategy.status is classify_pnl(strategy.pnl)


def test_seeded_runs_are_deterministic():
    def totals(seed):
        monitor = FleetMonitor(
            _config(fleet_size=10, backup_strategy_id=10, degrading_strategy_ids=(1, 5),
                    critical_loss_threshold=-1e9, random_seed=seed),
            commit_fn=CountingCommit(),
        )
        return [monitor.step().total_pnl for _ in range(20)]

    assert totals(7) == totals(7)
    assert totals(7) != totals(8)


def test_injected_generator_matches_seed():
    config = _config(fleet_size=5, backup_strategy_id=5, critical_loss_threshold=-1e9, random_seed=3)
    seeded = FleetMonitor(config, commit_fn=CountingCommit())
    injected = FleetMonitor(config, commit_fn=CountingCommit(), rng=np.random.default_rng(3))

    assert seeded.step().total_pnl == injected.step().total_pnl


def test_mutation_error_aborts_only_failover_evaluation():
    class BrokenRandom:
        def random(self):
            raise RuntimeError("entropy pool exhausted")

    commit = CountingCommit()
    monitor = FleetMonitor(
        _config(),
        commit_fn=commit,
        rng=BrokenRandom(),
        fleet=make_fleet(pnls=(-5000.0, 0.0, 0.0)),
    )

    assert monitor.step() is None
    assert commit.calls == []
    assert monitor.controller.state is FailoverState.ARMED
    assert "entropy pool exhausted" in monitor.status()["last_tick_error"]


def test_invariant_violation_propagates():
    monitor = FleetMonitor(
        _config(),
        commit_fn=CountingCommit(),
        rng=FixedRandom(0.5),
        fleet=make_fleet(pnls=(0.0, float("nan"), 0.0)),
    )
    with pytest.raises(InvariantViolation):
        monitor.step()


def test_status_tampered_between_ticks_is_invariant_violation():
    monitor = FleetMonitor(
        _config(critical_loss_threshold=-1e12),
        commit_fn=CountingCommit(),
        rng=FixedRandom(0.5),
        fleet=make_fleet(),
    )
    monitor.step()

    # Healthy PnL with a stale CRITICAL label; evaluate alone would overwrite it
    monitor.fleet.get(2).status = StrategyStatus.CRITICAL
    with pytest.raises(InvariantViolation):
        monitor.step()
    assert monitor.fleet.get(2).pnl == 0.0


def test_multiplier_tampered_between_ticks_is_invariant_violation():
    monitor = FleetMonitor(
        _config(critical_loss_threshold=-1e12),
        commit_fn=CountingCommit(),
        rng=FixedRandom(0.5),
        fleet=make_fleet(),
    )
    monitor.step()

    monitor.fleet.get(3).multiplier = 0.8
    with pytest.raises(InvariantViolation):
        monitor.step()


def test_aborted_tick_does_not_trip_consistency_check():
    class FlakyRandom:
        def __init__(self):
            self.draws = 0

        def random(self):
            self.draws += 1
            if self.draws == 2:
                raise RuntimeError("entropy pool exhausted")
            return 0.0

    monitor = FleetMonitor(
        _config(critical_loss_threshold=-1e12),
        commit_fn=CountingCommit(),
        rng=FlakyRandom(),
        fleet=make_fleet(pnls=(-40.0, 0.0, 0.0)),
    )

    # Strategy 1 moves to -540 before the draw for strategy 2 fails
    assert monitor.step() is None
    snapshot = monitor.step()
    assert snapshot is not None
    assert all(s.status is classify_pnl(s.pnl) for s in monitor.fleet)


def test_scheduled_run_halts_after_failover():
    commit = CountingCommit()
    monitor = _losing_monitor(commit)

    monitor.start()
    assert monitor.wait(timeout=5)

    assert monitor.controller.is_triggered
    assert commit.calls == [(1, 3)]
    assert monitor.tick_count == 2
    assert not monitor.running
    assert monitor.snapshots.latest().failover_state == "TRIGGERED"


def test_scheduled_run_respects_tick_limit():
    monitor = FleetMonitor(
        _config(critical_loss_threshold=-1e12),
        commit_fn=CountingCommit(),
        rng=FixedRandom(0.2, 0.8),
        fleet=make_fleet(),
    )

    monitor.start(max_ticks=5)
    assert monitor.wait(timeout=5)

    assert monitor.tick_count == 5
    assert monitor.snapshots.size() == 5
    assert monitor.controller.state is FailoverState.ARMED


def test_scheduled_run_halts_on_invariant_violation():
    monitor = FleetMonitor(
        _config(),
        commit_fn=CountingCommit(),
        rng=FixedRandom(0.5),
        fleet=make_fleet(pnls=(0.0, float("inf"), 0.0)),
    )

    monitor.start()
    assert monitor.wait(timeout=5)

    assert isinstance(monitor.halt_error, InvariantViolation)
    assert monitor.status()["halt_error"]
    monitor.stop()
