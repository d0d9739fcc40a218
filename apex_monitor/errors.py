"""Exception taxonomy for the fleet monitor."""
from typing import Optional


class ApexMonitorError(Exception):
    """Base class for all monitor errors."""


class ConfigurationError(ApexMonitorError):
    """Invalid startup parameters. Raised before the scheduler starts."""


class CommitFailure(ApexMonitorError):
    """The external failover commit did not succeed.

    Recoverable: the failover controller stays armed and retries on the next tick.
    """

    def __init__(
        self,
        message: str,
        failing_strategy_id: Optional[int] = None,
        backup_strategy_id: Optional[int] = None,
    ):
        super().__init__(message)
        self.failing_strategy_id = failing_strategy_id
        self.backup_strategy_id = backup_strategy_id


class InvariantViolation(ApexMonitorError):
    """Internal state is inconsistent. Indicates a bug; stops the monitor."""
