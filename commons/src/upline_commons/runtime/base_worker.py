"""Base worker abstraction with shared threading lifecycle."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import ClassVar


class BaseWorker(ABC):
    """Abstract background worker with start/stop lifecycle.

    Subclasses implement ``_tick()``, which runs repeatedly until ``stop()``
    is invoked. Polling workers set ``poll_interval``; the wait between ticks
    is interruptible so ``stop()`` never has to sit out a full interval.
    """

    worker_name: ClassVar[str] = "base-worker"
    logger_name: ClassVar[str] = "upline.worker"
    default_poll_interval: ClassVar[float | None] = None  # None = no wait (blocking workers)

    def __init__(self, *, poll_interval: float | None = None) -> None:
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._logger = logging.getLogger(self.logger_name)

    def start(self) -> None:
        """Start the background worker thread (idempotent)."""

        if self._thread and self._thread.is_alive():
            return

        self._stop.clear()
        self._thread = threading.Thread(target=self._run_loop, name=self.worker_name, daemon=True)
        self._thread.start()
        self._logger.info("worker started", extra={"data": {"worker": self.worker_name}})

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the worker to stop and wait for termination."""

        if not self._thread:
            return

        self._stop.set()
        self._on_stop_requested()
        self._thread.join(timeout=timeout)
        self._logger.info(
            "worker stopped",
            extra={"data": {"worker": self.worker_name, "alive": self._thread.is_alive()}},
        )

    @property
    def running(self) -> bool:
        """Return True if the worker thread is alive."""

        return bool(self._thread and self._thread.is_alive())

    @property
    def poll_interval(self) -> float | None:
        """Return the poll interval (instance override or class default)."""

        return self._poll_interval if self._poll_interval is not None else self.default_poll_interval

    def _run_loop(self) -> None:
        while not self._stop.is_set():
            try:
                self._tick()
            except Exception:  # pragma: no cover - unexpected
                self._logger.exception("worker tick failed")
                self._on_error()

            interval = self.poll_interval
            if interval is not None:
                self._stop.wait(interval)

    @abstractmethod
    def _tick(self) -> None:
        """Execute one iteration of the worker's task.

        Polling workers should do their unit of work and return quickly; the
        base class handles waiting between ticks.
        """

    def _on_stop_requested(self) -> None:  # noqa: B027
        """Hook called when stop is requested (before join)."""

    def _on_error(self) -> None:  # noqa: B027
        """Hook called when tick() raises an exception."""


__all__ = ["BaseWorker"]
