"""
Background timers for Linkpulse.

A PeriodicTask runs a callable every `interval` seconds on a daemon thread
until stopped. Exceptions from the callable are logged and the timer keeps
going: a failed sweep or backup cycle must never take the process down.
Debouncing lives in the callables themselves (MemoryGovernor.sweep,
BackupManager.create_backup), so an early or repeated tick is harmless.
"""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    def __init__(self, name: str, interval: float, func: Callable[[], Any]):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.func = func
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"linkpulse-{self.name}", daemon=True)
        self._thread.start()
        logger.info("Started %s timer (every %ss)", self.name, self.interval)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> None:
        try:
            self.func()
        except Exception:
            logger.exception("%s cycle failed", self.name)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()
