"""
Failover trigger and the vault commit collaborators.

Modules:
    controller    : ARMED/TRIGGERED state machine with at-most-once commit
    vault_client  : HTTP and simulated submission of the failover action
"""

from .controller import (
    CRITICAL_LOSS_THRESHOLD,
    CommitResult,
    FailoverController,
    FailoverState,
    submit_failover,
)
from .vault_client import SimulatedVaultClient, VaultFailoverClient, build_commit_client

__all__ = [
    "CRITICAL_LOSS_THRESHOLD",
    "CommitResult",
    "FailoverController",
    "FailoverState",
    "submit_failover",
    "SimulatedVaultClient",
    "VaultFailoverClient",
    "build_commit_client",
]
