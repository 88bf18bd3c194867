import threading

from letterboxd_overlap.http import RateLimiter


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def test_first_acquire_does_not_wait():
    clock = FakeClock()
    limiter = RateLimiter(1.0, clock=clock, sleep=clock.sleep)
    assert limiter.acquire() == 100.0
    assert clock.sleeps == []


def test_back_to_back_acquires_are_spaced():
    clock = FakeClock()
    limiter = RateLimiter(1.0, clock=clock, sleep=clock.sleep)
    limiter.acquire()
    clock.now += 0.25
    granted = limiter.acquire()
    assert clock.sleeps == [0.75]
    assert granted == 101.0


def test_no_wait_after_interval_has_elapsed():
    clock = FakeClock()
    limiter = RateLimiter(1.0, clock=clock, sleep=clock.sleep)
    limiter.acquire()
    clock.now += 5
    limiter.acquire()
    assert clock.sleeps == []


def test_concurrent_callers_are_serialized():
    interval = 0.05
    limiter = RateLimiter(interval)
    grants: list[float] = []
    lock = threading.Lock()
    start = threading.Barrier(6)

    def worker() -> None:
        start.wait()
        granted = limiter.acquire()
        with lock:
            grants.append(granted)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    grants.sort()
    assert len(grants) == 6
    gaps = [later - earlier for earlier, later in zip(grants, grants[1:])]
    assert all(gap >= interval - 1e-3 for gap in gaps)
