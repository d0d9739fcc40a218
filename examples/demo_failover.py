#!/usr/bin/env python3
"""
Apex Demo: Fleet Monitoring Through Failover

This script steps a seeded fleet synchronously until the aggregate loss
breaches the critical threshold:
1. Fleet initialization (simulated vault, fixed seed)
2. Per-tick PnL mutation and aggregation
3. Derisking once the fleet is under stress
4. One-shot failover to the backup strategy
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from apex_monitor.config import load_config
from apex_monitor.monitor import FleetMonitor

import logging

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def demo_failover(max_ticks: int = 5000):
    """Step the monitor until failover or the tick limit."""
    logger.info("=" * 80)
    logger.info("Apex Fleet Monitor Demo")
    logger.info("=" * 80)

    config = load_config(random_seed=42)
    monitor = FleetMonitor(config)

    logger.info("Configuration:")
    logger.info("  Strategies: %d", config.fleet_size)
    logger.info("  Degrading strategies: %s", list(config.degrading_strategy_ids))
    logger.info("  Critical loss threshold: %.2f USD", config.critical_loss_threshold)
    logger.info("  Failover: %d -> %d", config.failing_strategy_id, config.backup_strategy_id)

    derisked_at = None
    for _ in range(max_ticks):
        snapshot = monitor.step()
        if snapshot is None:
            break
        if derisked_at is None and snapshot.multiplier < 1.0:
            derisked_at = snapshot.tick
        if snapshot.failover_state == "TRIGGERED":
            break

    logger.info("-" * 80)
    latest = monitor.snapshots.latest()
    if latest is not None:
        logger.info("Ticks run: %d", latest.tick)
        logger.info("Final total PnL: %.2f USD", latest.total_pnl)
        logger.info("Critical strategies: %d", latest.critical_count)
    logger.info("First derisked tick: %s", derisked_at)
    logger.info("Failover: %s", monitor.controller.to_dict())


if __name__ == "__main__":
    demo_failover()
