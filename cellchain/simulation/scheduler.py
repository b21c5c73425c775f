"""
Recurring scheduler for continuous simulation runs.

`RecurringTicker` calls a function every `delay` seconds on one daemon
thread. The delay is measured from the end of the previous call, so calls
never overlap. Cancelling sets a `threading.Event` that doubles as the
cancellation token: the worker sees it at its next wait and exits. A call
already in progress is never interrupted.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RecurringTicker:
    """
    Fires `callback()` repeatedly with a fixed pause between calls.

    Attributes:
        name: Thread name, for debugging.
    """

    def __init__(self, name: str = "cellchain-ticker"):
        self.name = name
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None

    @property
    def active(self) -> bool:
        """True while a loop is scheduled and not cancelled."""
        return self._cancel is not None and not self._cancel.is_set()

    def start(self, delay_seconds: float, callback: Callable[[], None]) -> None:
        """
        Start calling `callback` every `delay_seconds`.

        No-op if already active.

        Raises:
            ValueError: If delay_seconds is not positive.
        """
        if delay_seconds <= 0:
            raise ValueError(f"delay must be > 0, got {delay_seconds}")
        if self.active:
            return

        cancel = threading.Event()
        self._cancel = cancel
        self._thread = threading.Thread(
            target=self._run,
            args=(delay_seconds, callback, cancel),
            name=self.name,
            daemon=True,
        )
        self._thread.start()
        logger.debug("Ticker %s started (delay=%.3fs)", self.name, delay_seconds)

    def cancel(self, wait: bool = False, timeout: float = 5.0) -> None:
        """
        Stop the loop. Idempotent.

        Args:
            wait: Block until the worker thread exits. Ignored when called
                from the worker itself.
            timeout: Maximum seconds to wait.
        """
        if self._cancel is None:
            return
        self._cancel.set()
        thread = self._thread
        self._cancel = None
        self._thread = None
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        logger.debug("Ticker %s cancelled", self.name)

    @staticmethod
    def _run(delay: float, callback: Callable[[], None], cancel: threading.Event) -> None:
        while not cancel.wait(delay):
            try:
                callback()
            except Exception:
                logger.exception("Scheduled callback failed; stopping ticker")
                cancel.set()
                raise
