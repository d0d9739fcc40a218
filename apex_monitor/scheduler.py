"""Fixed-cadence tick driver running on a single worker thread."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Callable, Optional

from apex_monitor.errors import InvariantViolation

logger = logging.getLogger(__name__)

# on_tick returns False to request a halt before the next cadence
TickCallback = Callable[[], Optional[bool]]


@dataclass
class SchedulerHandle:
    interval: float
    thread: Optional[threading.Thread] = None
    stop_event: threading.Event = field(default_factory=threading.Event)
    ticks: int = 0
    error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive() and not self.stop_event.is_set()


class TickScheduler:
    """
    Invoke a callback at a fixed cadence, strictly one tick at a time.

    Ticks are anchored to the start time, so a slow tick delays the next one
    rather than overlapping it. Exceptions from a tick are logged and the loop
    carries on, except InvariantViolation which stops the loop.
    """

    def __init__(self, name: str = "apex-monitor"):
        self.name = name

    def start(self, tick_interval: float, on_tick: TickCallback) -> SchedulerHandle:
        """
        Start ticking on a daemon thread.

        Args:
            tick_interval: Seconds between tick starts, must be positive
            on_tick: Callback; returning False halts the loop

        Returns:
            SchedulerHandle for stop()/join()
        """
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive (got {tick_interval})")

        handle = SchedulerHandle(interval=float(tick_interval))
        handle.thread = threading.Thread(
            target=self._run,
            args=(handle, on_tick),
            name=self.name,
            daemon=True,
        )
        handle.thread.start()
        logger.info("Scheduler %s started (interval=%.3fs)", self.name, handle.interval)
        return handle

    def stop(self, handle: SchedulerHandle, timeout: Optional[float] = 5.0) -> None:
        """Halt future ticks. Idempotent; safe to call from inside a tick."""
        if not handle.stop_event.is_set():
            handle.stop_event.set()
            logger.info("Scheduler %s stopping after %d ticks", self.name, handle.ticks)
        thread = handle.thread
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=timeout)

    def _run(self, handle: SchedulerHandle, on_tick: TickCallback) -> None:
        next_tick = time.monotonic()
        while not handle.stop_event.is_set():
            handle.ticks += 1
            try:
                keep_running = on_tick()
            except InvariantViolation as exc:
                logger.critical("Invariant violated on tick %d; halting: %s", handle.ticks, exc, exc_info=True)
                handle.error = exc
                handle.stop_event.set()
                break
            except Exception as exc:
                logger.error("Tick %d failed: %s", handle.ticks, exc, exc_info=True)
                keep_running = True

            if keep_running is False:
                handle.stop_event.set()
                break

            next_tick += handle.interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Overran the cadence; re-anchor instead of bursting to catch up
                next_tick = time.monotonic()
                delay = 0.0
            handle.stop_event.wait(delay)
        logger.info("Scheduler %s halted", self.name)
