"""
Fixed-interval polling.

Clients never subscribe; they re-run an idempotent query on a timer (discovery views
every few seconds, notifications every 10 s). A `Poller` owns one such loop:

- each tick calls `fetch()` and hands the result to `on_result()`
- `stop()` ends the loop; a fetch already in flight is allowed to finish but its
  result is dropped, never delivered to a torn-down view
- errors from `fetch()` are logged and the next tick proceeds
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Poller(Generic[T]):
    def __init__(
        self,
        fetch: Callable[[], T],
        on_result: Callable[[T], None],
        *,
        interval_seconds: float,
        name: str = "poller",
    ):
        if float(interval_seconds) <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._fetch = fetch
        self._on_result = on_result
        self._interval = float(interval_seconds)
        self._name = name
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def _tick(self) -> None:
        try:
            result = self._fetch()
        except Exception:
            logger.exception("%s: fetch failed; retrying in %.1fs", self._name, self._interval)
            return
        if self._stopped.is_set():
            logger.debug("%s: discarding result that arrived after stop()", self._name)
            return
        self._on_result(result)

    def run_forever(self) -> None:
        """Poll in the calling thread until `stop()` is called."""
        while not self._stopped.is_set():
            self._tick()
            self._stopped.wait(self._interval)

    def start(self) -> "Poller[T]":
        """Poll in a daemon thread; returns self for chaining."""
        if self._thread is not None:
            raise RuntimeError(f"{self._name} already started")
        self._thread = threading.Thread(target=self.run_forever, name=self._name, daemon=True)
        self._thread.start()
        return self

    def stop(self, *, wait: bool = False, timeout: float | None = None) -> None:
        """Stop issuing fetches. With `wait=True`, join the polling thread."""
        self._stopped.set()
        if wait and self._thread is not None:
            self._thread.join(timeout)
