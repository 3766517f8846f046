from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .config import RunConfiguration
from .timeline import UserTimeline, stagger_delay

LOGGER = logging.getLogger("postman_load.scheduler")


@dataclass
class RunOutcome:
    started_at: float
    finished_at: float
    ticks: int
    error: BaseException | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)


class Scheduler:
    """Owns the run deadline and the simulated user timelines.

    The deadline only stops future ticks; runs already in flight finish on
    their own threads and may still append to the aggregator afterwards.
    """

    def __init__(
        self,
        config: RunConfiguration,
        tick: Callable[[int], object],
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._tick = tick
        self._rng = rng or random.Random()
        self._stop_event = threading.Event()
        self._error_lock = threading.Lock()
        self._error: BaseException | None = None
        self._deadline_timer: threading.Timer | None = None
        self._started_at: float | None = None
        self.timelines: list[UserTimeline] = []

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        config = self._config
        LOGGER.info(
            "Initializing performance test with: file=%s users=%d interval=%.3fs "
            "length=%.3fs stagger=%s report=%s data=%s",
            config.file,
            config.user_count,
            config.interval_ms / 1000.0,
            config.total_duration_ms / 1000.0,
            config.stagger,
            config.report_on_exit,
            config.data_file_path or "<none>",
        )
        self._started_at = time.time()

        timer = threading.Timer(config.total_duration_ms / 1000.0, self._on_deadline)
        timer.daemon = True
        timer.start()
        self._deadline_timer = timer

        for i in range(config.user_count):
            timeline = UserTimeline(
                user_index=i + 1,
                stagger_delay_ms=stagger_delay(config.interval_ms, config.stagger, self._rng),
                interval_ms=config.interval_ms,
                tick=self._tick,
                stop_event=self._stop_event,
                on_error=self._fail,
            )
            self.timelines.append(timeline)
            timeline.start()

    def wait(self, timeout: float | None = None) -> RunOutcome:
        """Block until the deadline, a fatal tick error or ``stop()``."""
        self._stop_event.wait(timeout)
        return self.outcome()

    def stop(self) -> None:
        if self._deadline_timer:
            self._deadline_timer.cancel()
        self._stop_event.set()

    def outcome(self) -> RunOutcome:
        with self._error_lock:
            error = self._error
        started_at = self._started_at if self._started_at is not None else time.time()
        return RunOutcome(
            started_at=started_at,
            finished_at=time.time(),
            ticks=sum(timeline.ticks_fired for timeline in self.timelines),
            error=error,
        )

    def _on_deadline(self) -> None:
        LOGGER.info(
            "Execution stopped after %.3f seconds",
            self._config.total_duration_ms / 1000.0,
        )
        self._stop_event.set()

    def _fail(self, exc: BaseException) -> None:
        with self._error_lock:
            if self._stop_event.is_set():
                LOGGER.warning("collection run failed after scheduling stopped: %s", exc)
                return
            if self._error is None:
                self._error = exc
                LOGGER.error("collection run failed, aborting: %s", exc, exc_info=exc)
        self.stop()


__all__ = ["RunOutcome", "Scheduler"]
