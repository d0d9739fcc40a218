"""One-shot failover trigger: ARMED -> TRIGGERED, at most one committed call."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import Any, Callable, Optional
import inspect
import logging

from apex_monitor.errors import CommitFailure

logger = logging.getLogger(__name__)

CRITICAL_LOSS_THRESHOLD = -2000.0


class FailoverState(Enum):
    ARMED = "ARMED"
    TRIGGERED = "TRIGGERED"


@dataclass(frozen=True)
class CommitResult:
    """Outcome of one submission to the external vault."""

    ok: bool
    confirmation: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, confirmation: str) -> "CommitResult":
        return cls(ok=True, confirmation=confirmation)

    @classmethod
    def failure(cls, error: str) -> "CommitResult":
        return cls(ok=False, error=error)


CommitFn = Callable[[int, int], Any]


async def _await(awaitable):
    return await awaitable


def _resolve(result: Any) -> Any:
    """Block until an async commit completes; plain results pass through."""
    if inspect.isawaitable(result):
        return asyncio.run(_await(result))
    return result


def submit_failover(commit_fn: CommitFn, failing_strategy_id: int, backup_strategy_id: int) -> str:
    """
    Call the commit function and insist on a confirmed result.

    Args:
        commit_fn: External collaborator, sync or async
        failing_strategy_id: Strategy being switched away from
        backup_strategy_id: Pre-vetted replacement strategy

    Returns:
        Confirmation string from the collaborator

    Raises:
        CommitFailure: On any error, an explicit failure result, or a result
            without confirmation (a pending submission is not success).
    """
    try:
        result = _resolve(commit_fn(failing_strategy_id, backup_strategy_id))
    except CommitFailure:
        raise
    except Exception as exc:
        raise CommitFailure(
            f"Commit raised {type(exc).__name__}: {exc}",
            failing_strategy_id,
            backup_strategy_id,
        ) from exc

    if isinstance(result, CommitResult):
        if not result.ok:
            raise CommitFailure(result.error or "commit rejected", failing_strategy_id, backup_strategy_id)
        if not result.confirmation:
            raise CommitFailure("commit returned no confirmation", failing_strategy_id, backup_strategy_id)
        return result.confirmation

    if result is None or result is False:
        raise CommitFailure("commit returned no confirmation", failing_strategy_id, backup_strategy_id)
    return str(result)


class FailoverController:
    """
    Owns the process-lifetime FailoverState.

    `evaluate` is serialized by a lock, so even concurrent callers can never both
    observe ARMED and commit. TRIGGERED is terminal.
    """

    def __init__(
        self,
        commit_fn: CommitFn,
        failing_strategy_id: int,
        backup_strategy_id: int,
        threshold: float = CRITICAL_LOSS_THRESHOLD,
    ):
        self.commit_fn = commit_fn
        self.failing_strategy_id = failing_strategy_id
        self.backup_strategy_id = backup_strategy_id
        self.threshold = float(threshold)

        self._state = FailoverState.ARMED
        self._lock = Lock()
        self._attempts = 0
        self._confirmation: Optional[str] = None
        self._last_error: Optional[str] = None
        self._triggered_pnl: Optional[float] = None

    def evaluate(self, total_pnl: float) -> FailoverState:
        """Check the aggregate PnL and fire the failover once if breached."""
        with self._lock:
            if self._state is FailoverState.TRIGGERED:
                return self._state

            if total_pnl > self.threshold:
                return self._state

            logger.warning(
                "Critical PnL loss detected: total=%.2f threshold=%.2f; failing over %d -> %d",
                total_pnl,
                self.threshold,
                self.failing_strategy_id,
                self.backup_strategy_id,
            )
            self._attempts += 1
            try:
                confirmation = submit_failover(
                    self.commit_fn, self.failing_strategy_id, self.backup_strategy_id
                )
            except CommitFailure as exc:
                self._last_error = str(exc)
                logger.error(
                    "Failover commit attempt %d failed; staying %s: %s",
                    self._attempts,
                    self._state.value,
                    exc,
                )
                return self._state

            self._state = FailoverState.TRIGGERED
            self._confirmation = confirmation
            self._last_error = None
            self._triggered_pnl = total_pnl
            logger.warning(
                "Failover committed (confirmation=%s); capital switched to strategy %d",
                confirmation,
                self.backup_strategy_id,
            )
            return self._state

    @property
    def state(self) -> FailoverState:
        return self._state

    @property
    def is_triggered(self) -> bool:
        return self._state is FailoverState.TRIGGERED

    @property
    def last_commit_error(self) -> Optional[str]:
        return self._last_error

    @property
    def confirmation(self) -> Optional[str]:
        return self._confirmation

    @property
    def attempts(self) -> int:
        return self._attempts

    def to_dict(self) -> dict:
        return {
            "state": self._state.value,
            "threshold": self.threshold,
            "failing_strategy_id": self.failing_strategy_id,
            "backup_strategy_id": self.backup_strategy_id,
            "attempts": self._attempts,
            "confirmation": self._confirmation,
            "last_commit_error": self._last_error,
            "triggered_pnl": self._triggered_pnl,
        }
