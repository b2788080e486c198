"""Cancellable recurring task running on a background thread."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RecurringTask:
    """Calls a function every interval seconds until cancelled.

    cancel() is deterministic: once it returns, the callback will not start
    again, although a call already in progress runs to completion. Exceptions
    raised by the callback are logged and never end the schedule.

    Example:
        >>> task = RecurringTask(1800, orchestrator.run_cycle, run_immediately=True)
        >>> task.start()
        >>> task.cancel()
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], object],
        run_immediately: bool = False,
        name: str = "wiki-sync-scheduler",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._run_immediately = run_immediately
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def cancel(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """Stop scheduling further calls.

        Args:
            wait: Also wait for an in-flight call to finish
            timeout: Upper bound for the wait, in seconds
        """
        self._cancelled.set()
        if wait and self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        if self._run_immediately and not self._cancelled.is_set():
            self._invoke()
        while not self._cancelled.wait(self.interval_seconds):
            self._invoke()
        logger.debug("Recurring task cancelled")

    def _invoke(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.exception("Scheduled sync callback failed")
