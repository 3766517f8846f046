from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable

LOGGER = logging.getLogger("postman_load.timeline")


def stagger_delay(interval_ms: int, stagger: bool, rng: random.Random | None = None) -> int:
    """Random startup offset in ``[1, interval_ms]``, or 0 when not staggering."""
    if not stagger:
        return 0
    return (rng or random).randint(1, interval_ms)


class UserTimeline:
    """One simulated user: a stagger delay, then a tick every ``interval_ms``.

    Ticks run on their own daemon threads so a slow collection run never
    delays the next tick; overlapping runs for the same user are expected.
    """

    def __init__(
        self,
        user_index: int,
        stagger_delay_ms: int,
        interval_ms: int,
        tick: Callable[[int], object],
        stop_event: threading.Event,
        on_error: Callable[[BaseException], None],
    ) -> None:
        self.user_index = user_index
        self.stagger_delay_ms = stagger_delay_ms
        self._interval_s = interval_ms / 1000.0
        self._tick = tick
        self._stop_event = stop_event
        self._on_error = on_error
        self._thread: threading.Thread | None = None
        self._ticks_fired = 0
        self._lock = threading.Lock()

    @property
    def ticks_fired(self) -> int:
        with self._lock:
            return self._ticks_fired

    def start(self) -> None:
        thread = threading.Thread(
            target=self._run,
            name=f"user-{self.user_index}",
            daemon=True,
        )
        thread.start()
        self._thread = thread

    def join(self, timeout: float | None = None) -> None:
        if self._thread:
            self._thread.join(timeout=timeout)

    def _run(self) -> None:
        if self._stop_event.wait(self.stagger_delay_ms / 1000.0):
            return
        LOGGER.info(
            "Initializing user %d, staggered by %.3f seconds",
            self.user_index,
            self.stagger_delay_ms / 1000.0,
        )
        next_at = time.monotonic()
        while not self._stop_event.is_set():
            self._fire()
            next_at += self._interval_s
            if self._stop_event.wait(max(next_at - time.monotonic(), 0.0)):
                return

    def _fire(self) -> None:
        with self._lock:
            self._ticks_fired += 1
            number = self._ticks_fired
        thread = threading.Thread(
            target=self._execute,
            name=f"user-{self.user_index}-tick-{number}",
            daemon=True,
        )
        thread.start()

    def _execute(self) -> None:
        try:
            self._tick(self.user_index)
        except Exception as exc:  # noqa: BLE001
            self._on_error(exc)


__all__ = ["UserTimeline", "stagger_delay"]
