"""
Cooperative pausing for MySQL Binary Dumper.
"""

import logging
import threading
from typing import Optional


class PauseGate:
    """
    A shared open/held checkpoint.

    Dumpers call wait() before every page fetch and block while the gate is held.
    hold() and release() may be called from any thread; release() wakes every waiter.
    """

    def __init__(self, held: bool = False):
        self._condition = threading.Condition()
        self._held = held

    @property
    def is_held(self) -> bool:
        with self._condition:
            return self._held

    def hold(self) -> None:
        with self._condition:
            if not self._held:
                logging.info("Dump paused")
            self._held = True

    def release(self) -> None:
        with self._condition:
            if self._held:
                logging.info("Dump resumed")
            self._held = False
            self._condition.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the gate is open. Returns False if the timeout expired first."""
        with self._condition:
            return self._condition.wait_for(lambda: not self._held, timeout=timeout)
