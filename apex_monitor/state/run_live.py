"""CLI entrypoint to run the live fleet monitor until failover."""
import argparse
import logging
import sys

from apex_monitor.config import load_config, setup_logging
from apex_monitor.errors import ConfigurationError
from apex_monitor.monitor import FleetMonitor

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Apex strategy fleet monitor")
    parser.add_argument(
        "--fleet-size",
        type=int,
        default=None,
        help="Number of strategies to monitor (default: FLEET_SIZE)",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Critical aggregate loss in USD that triggers failover (default: CRITICAL_LOSS_THRESHOLD)",
    )
    parser.add_argument(
        "--interval-ms",
        type=int,
        default=None,
        help="Tick interval in milliseconds (default: TICK_INTERVAL_MS)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for a reproducible run",
    )
    parser.add_argument(
        "--failing-id",
        type=int,
        default=None,
        help="Strategy switched away from on failover (default: FAILING_STRATEGY_ID)",
    )
    parser.add_argument(
        "--backup-id",
        type=int,
        default=None,
        help="Pre-vetted backup strategy (default: BACKUP_STRATEGY_ID, else the last strategy)",
    )
    parser.add_argument(
        "--vault-url",
        default=None,
        help="Vault relay base URL; omitted runs the simulated vault",
    )
    parser.add_argument(
        "--max-ticks",
        type=int,
        default=None,
        help="Stop after this many ticks even without failover",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        config = load_config(
            fleet_size=args.fleet_size,
            critical_loss_threshold=args.threshold,
            tick_interval_ms=args.interval_ms,
            random_seed=args.seed,
            failing_strategy_id=args.failing_id,
            backup_strategy_id=args.backup_id,
            vault_api_url=args.vault_url,
        )
        monitor = FleetMonitor(config)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2

    # Register with FastAPI router if available
    try:
        from .monitor_api import register_monitor

        register_monitor(config.fleet_name, monitor)
    except ImportError:
        logger.debug("FastAPI not available; skipping monitor API registration")

    monitor.start(max_ticks=args.max_ticks)
    try:
        while not monitor.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Shutting down fleet monitor...")
        monitor.stop()

    if monitor.halt_error is not None:
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
