from flipbook.worker.rate_limiter import RateLimiter


class FakeTime:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _limiter(fake: FakeTime, max_events: int = 5, window: float = 60.0) -> RateLimiter:
    return RateLimiter(max_events, window, clock=fake.clock, sleep=fake.sleep)


class TestRateLimiter:
    def test_allows_up_to_max_events_without_waiting(self) -> None:
        fake = FakeTime()
        limiter = _limiter(fake)
        for _ in range(5):
            limiter.wait()
            limiter.record()
        assert fake.sleeps == []

    def test_waits_until_oldest_event_leaves_window(self) -> None:
        fake = FakeTime()
        limiter = _limiter(fake)
        for _ in range(5):
            limiter.record()
            fake.now += 1.0

        limiter.wait()

        assert fake.sleeps == [55.0]
        assert limiter.delay() == 0.0

    def test_wait_does_not_consume_capacity(self) -> None:
        fake = FakeTime()
        limiter = _limiter(fake, max_events=1)
        limiter.wait()
        limiter.wait()
        assert fake.sleeps == []
        limiter.record()
        assert limiter.delay() == 60.0

    def test_window_slides(self) -> None:
        fake = FakeTime()
        limiter = _limiter(fake, max_events=2, window=10.0)
        limiter.record()
        fake.now = 6.0
        limiter.record()
        fake.now = 10.0
        assert limiter.delay() == 0.0
        limiter.record()
        assert limiter.delay() == 6.0
