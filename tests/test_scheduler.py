import gc
import random
import threading
import time
import weakref

from postman_load.runner import CollectionRunError
from postman_load.scheduler import Scheduler
from postman_load.timeline import UserTimeline, stagger_delay


class TickRecorder:
    def __init__(self, delay_s=0.0, error=None):
        self.delay_s = delay_s
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, user_index):
        with self._lock:
            self.calls.append((user_index, time.monotonic()))
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.error is not None:
            raise self.error


def test_stagger_delay_disabled_is_zero():
    assert all(stagger_delay(1000, False) == 0 for _ in range(20))


def test_stagger_delays_lie_within_interval():
    rng = random.Random(3)
    delays = [stagger_delay(50, True, rng) for _ in range(2000)]
    assert min(delays) >= 1
    assert max(delays) <= 50
    assert len(set(delays)) > 1


def test_deadline_stops_future_ticks(make_config):
    # interval 200ms, deadline 700ms: ticks at 0, 200, 400, 600.
    ticks = TickRecorder()
    scheduler = Scheduler(make_config(user_count=1), tick=ticks)

    scheduler.start()
    outcome = scheduler.wait(timeout=5)
    time.sleep(0.3)

    assert not outcome.failed
    assert len(ticks.calls) == 4
    assert outcome.ticks == 4


def test_unstaggered_users_start_together(make_config):
    ticks = TickRecorder()
    scheduler = Scheduler(make_config(user_count=5, total_duration_ms=150), tick=ticks)

    scheduler.start()
    scheduler.wait(timeout=5)

    first_ticks = {}
    for user, at in ticks.calls:
        first_ticks.setdefault(user, at)
    assert sorted(first_ticks) == [1, 2, 3, 4, 5]
    assert max(first_ticks.values()) - min(first_ticks.values()) < 0.1


def test_staggered_timelines_get_delays_within_interval(make_config):
    scheduler = Scheduler(
        make_config(user_count=10, stagger=True, interval_ms=100, total_duration_ms=50),
        tick=TickRecorder(),
        rng=random.Random(11),
    )

    scheduler.start()
    scheduler.wait(timeout=5)

    assert all(1 <= timeline.stagger_delay_ms <= 100 for timeline in scheduler.timelines)
    assert [timeline.user_index for timeline in scheduler.timelines] == list(range(1, 11))


def test_zero_users_only_runs_deadline(make_config):
    scheduler = Scheduler(make_config(user_count=0, total_duration_ms=50), tick=TickRecorder())

    scheduler.start()
    outcome = scheduler.wait(timeout=5)

    assert scheduler.stopped
    assert not outcome.failed
    assert outcome.ticks == 0


def test_slow_runs_overlap_without_backpressure(make_config):
    ticks = TickRecorder(delay_s=0.5)
    scheduler = Scheduler(
        make_config(user_count=1, interval_ms=100, total_duration_ms=350), tick=ticks
    )

    scheduler.start()
    scheduler.wait(timeout=5)

    assert len(ticks.calls) == 4


def test_run_error_aborts_before_deadline(make_config):
    ticks = TickRecorder(error=CollectionRunError("connection refused"))
    scheduler = Scheduler(
        make_config(user_count=2, interval_ms=100, total_duration_ms=10_000), tick=ticks
    )

    started = time.monotonic()
    scheduler.start()
    outcome = scheduler.wait(timeout=5)

    assert time.monotonic() - started < 2
    assert outcome.failed
    assert isinstance(outcome.error, CollectionRunError)


def test_timeline_counts_ticks_for_its_user():
    stop_event = threading.Event()
    ticks = TickRecorder(delay_s=0.1)
    errors = []
    timeline = UserTimeline(3, 0, 1000, ticks, stop_event, errors.append)

    timeline.start()
    time.sleep(0.05)
    stop_event.set()
    timeline.join(timeout=1)

    assert ticks.calls[0][0] == 3
    assert timeline.ticks_fired == 1
    assert errors == []


def test_finished_tick_threads_are_released():
    stop_event = threading.Event()
    tick_threads = []

    def tick(user_index):
        tick_threads.append(weakref.ref(threading.current_thread()))

    timeline = UserTimeline(1, 0, 2, tick, stop_event, lambda exc: None)
    timeline.start()
    time.sleep(0.3)
    stop_event.set()
    timeline.join(timeout=1)
    time.sleep(0.2)
    gc.collect()

    alive = [ref for ref in tick_threads if ref() is not None]
    assert timeline.ticks_fired > 20
    assert len(alive) < 5


def test_run_error_after_stop_is_not_fatal(make_config):
    scheduler = Scheduler(make_config(user_count=0, total_duration_ms=10_000), tick=TickRecorder())

    scheduler.start()
    scheduler.stop()
    scheduler._fail(CollectionRunError("late failure"))
    outcome = scheduler.wait(timeout=1)

    assert scheduler.stopped
    assert not outcome.failed
    assert outcome.error is None
