"""Tick pipeline context: fleet -> aggregator -> failover controller."""
from __future__ import annotations

import logging
import time
from typing import Optional

import numpy as np

from apex_monitor.aggregation.performance import FleetAggregate, PerformanceAggregator
from apex_monitor.config import MonitorConfig
from apex_monitor.errors import InvariantViolation
from apex_monitor.failover.controller import CommitFn, FailoverController, FailoverState
from apex_monitor.failover.vault_client import build_commit_client
from apex_monitor.fleet.strategy_fleet import AllocationParams, RandomSource, StrategyFleet
from apex_monitor.scheduler import SchedulerHandle, TickScheduler
from apex_monitor.state.snapshot import TickSnapshot
from apex_monitor.state.snapshot_buffer import SnapshotBuffer

logger = logging.getLogger(__name__)


class FleetMonitor:
    """
    Explicit context for one monitored fleet.

    Holds the fleet, the failover controller, the injected random source and the
    snapshot buffer, and runs them through the tick pipeline on a TickScheduler.
    """

    def __init__(
        self,
        config: MonitorConfig,
        commit_fn: Optional[CommitFn] = None,
        rng: Optional[RandomSource] = None,
        fleet: Optional[StrategyFleet] = None,
        aggregator: Optional[PerformanceAggregator] = None,
        snapshot_buffer: Optional[SnapshotBuffer] = None,
        scheduler: Optional[TickScheduler] = None,
    ):
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.random_seed)
        self.fleet = fleet if fleet is not None else StrategyFleet.initialize(
            config.fleet_size, AllocationParams.from_config(config), self.rng
        )
        self.aggregator = aggregator or PerformanceAggregator(
            derisk_threshold=config.derisk_pnl_threshold,
            derisk_multiplier=config.derisk_multiplier,
        )
        self.controller = FailoverController(
            commit_fn=commit_fn if commit_fn is not None else build_commit_client(config),
            failing_strategy_id=config.failing_strategy_id,
            backup_strategy_id=config.backup_strategy_id,
            threshold=config.critical_loss_threshold,
        )
        self.snapshots = (
            snapshot_buffer if snapshot_buffer is not None else SnapshotBuffer(maxlen=config.snapshot_buffer_size)
        )
        self.scheduler = scheduler or TickScheduler(name=f"{config.fleet_name}-monitor")

        self._handle: Optional[SchedulerHandle] = None
        self._tick = 0
        self._max_ticks: Optional[int] = None
        self._last_tick_error: Optional[str] = None
        # False after an aborted tick, whose partial mutation the next evaluate repairs
        self._settled = True

    # -------------------------
    # Pipeline
    # -------------------------
    def step(self) -> Optional[TickSnapshot]:
        """
        Run one tick: mutate, aggregate, evaluate failover, publish snapshot.

        Returns:
            The published snapshot, or None when the tick was skipped (already
            triggered) or aborted by a mutation/aggregation error.

        Raises:
            InvariantViolation: Fleet state is inconsistent; the caller must halt.
        """
        if self.controller.is_triggered:
            return None

        if self._settled:
            # State left by the previous tick must not have drifted since
            self.aggregator.check_invariants(self.fleet)

        self._tick += 1
        try:
            self.fleet.apply_tick(self.rng)
            aggregate = self.aggregator.evaluate(self.fleet)
        except InvariantViolation:
            raise
        except Exception as exc:
            # Mutations already applied stay applied; only this tick's evaluation is skipped
            self._settled = False
            self._last_tick_error = f"{type(exc).__name__}: {exc}"
            logger.error("Tick %d aborted before failover evaluation: %s", self._tick, exc, exc_info=True)
            return None

        self._settled = True
        self._last_tick_error = None
        state = self.controller.evaluate(aggregate.total_pnl)
        snapshot = self._publish(aggregate, state)

        logger.info(
            "Tick %d total_pnl=%.2f USD critical=%d multiplier=%.2f failover=%s",
            snapshot.tick,
            snapshot.total_pnl,
            snapshot.critical_count,
            snapshot.multiplier,
            snapshot.failover_state,
        )
        return snapshot

    def _publish(self, aggregate: FleetAggregate, state: FailoverState) -> TickSnapshot:
        snapshot = TickSnapshot(
            tick=self._tick,
            timestamp=time.time(),
            total_pnl=float(aggregate.total_pnl),
            critical_count=aggregate.critical_count,
            warning_count=aggregate.warning_count,
            multiplier=float(aggregate.multiplier),
            failover_state=state.value,
            commit_error=None if state is FailoverState.TRIGGERED else self.controller.last_commit_error,
        )
        self.snapshots.append(snapshot)
        return snapshot

    def _on_tick(self) -> bool:
        self.step()
        if self.controller.is_triggered:
            logger.warning("Failover triggered; halting monitor %s", self.config.fleet_name)
            return False
        if self._max_ticks is not None and self._tick >= self._max_ticks:
            logger.info("Tick limit %d reached; halting monitor %s", self._max_ticks, self.config.fleet_name)
            return False
        return True

    # -------------------------
    # Lifecycle
    # -------------------------
    def start(self, max_ticks: Optional[int] = None) -> SchedulerHandle:
        """Start the scheduled tick loop (no-op if already running)."""
        if self._handle is not None and self._handle.running:
            return self._handle

        self._max_ticks = max_ticks
        logger.info(
            "Apex monitor %s started: %d strategies, critical loss threshold %.2f USD, interval %dms",
            self.config.fleet_name,
            len(self.fleet),
            self.controller.threshold,
            self.config.tick_interval_ms,
        )
        self._handle = self.scheduler.start(self.config.tick_interval_seconds, self._on_tick)
        return self._handle

    def stop(self) -> None:
        if self._handle is not None:
            self.scheduler.stop(self._handle)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop halts. Returns True if it has halted."""
        if self._handle is None or self._handle.thread is None:
            return True
        self._handle.thread.join(timeout=timeout)
        return not self._handle.thread.is_alive()

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.running

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def halt_error(self) -> Optional[BaseException]:
        return self._handle.error if self._handle is not None else None

    def status(self) -> dict:
        latest = self.snapshots.latest()
        failure = self.snapshots.last_commit_failure()
        age = max(time.time() - latest.timestamp, 0.0) if latest else None
        return {
            "fleet": self.config.fleet_name,
            "running": self.running,
            "ticks": self._tick,
            "fleet_size": len(self.fleet),
            "buffer_size": self.snapshots.size(),
            "max_size": self.snapshots.maxlen,
            "last_tick_error": self._last_tick_error,
            "halt_error": str(self.halt_error) if self.halt_error else None,
            "last_commit_failure_tick": failure.tick if failure else None,
            "age_seconds": age,
        }
