"""
Fixed-cadence driver for simulation ticks.

``step`` advances synchronously and never touches a clock, which is what the
tests use. ``start`` runs the same tick function on one background thread,
so ticks never overlap. ``stop`` waits for an in-flight tick to finish
before returning.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TickDriver:
    def __init__(self, tick: Callable[[], None], period: float = 1.0, name: str = "tick-driver"):
        if period <= 0:
            raise ValueError("period must be positive")
        self.tick = tick
        self.period = period
        self.name = name
        self.ticks = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def step(self, count: int = 1) -> None:
        if self.running:
            raise RuntimeError("cannot step manually while the driver is running")
        for _ in range(count):
            self.tick()
            self.ticks += 1

    def _run(self) -> None:
        # first tick fires one full period after start
        while not self._stop.wait(self.period):
            try:
                self.tick()
            except Exception:
                logger.exception("%s: tick failed, stopping", self.name)
                return
            self.ticks += 1

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        self._thread = None
        # stop() may be called from a tick callback on the driver thread itself
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def __enter__(self) -> "TickDriver":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
