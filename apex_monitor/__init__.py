"""
Apex: off-chain fleet monitoring oracle.

Aggregates the PnL of a fleet of trading strategies every tick, derisks the
fleet under stress and, exactly once, submits a failover to the vault when the
aggregate loss breaches the critical threshold.
"""

__version__ = '0.1.0'

from apex_monitor.errors import (
    ApexMonitorError,
    CommitFailure,
    ConfigurationError,
    InvariantViolation,
)
from apex_monitor.config import MonitorConfig, load_config

__all__ = [
    '__version__',
    'ApexMonitorError',
    'CommitFailure',
    'ConfigurationError',
    'InvariantViolation',
    'MonitorConfig',
    'load_config',
]
