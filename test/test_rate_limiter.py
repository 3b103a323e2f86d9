import asyncio

from wayfinder.services.map.rate_limiter import ProviderBudget, RateLimiter, default_budgets


class FakeClock:
    """Monotonic clock that only moves when the limiter sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_limiter(budget):
    clock = FakeClock()
    limiter = RateLimiter({"ors": budget}, clock=clock, sleep=clock.sleep)
    return limiter, clock


def test_default_budgets_cover_both_providers():
    budgets = default_budgets()
    assert budgets["openrouteservice"].max_requests == 40
    assert budgets["openrouteservice"].min_interval_s == 1.5
    assert budgets["opencage"].window_s == 3600.0


def test_waits_for_window_when_budget_is_spent():
    limiter, clock = make_limiter(ProviderBudget(max_requests=2, window_s=60.0))

    async def run():
        for _ in range(3):
            await limiter.await_slot("ors")

    asyncio.run(run())

    assert clock.sleeps == [60.0]
    assert limiter.remaining("ors") == 1


def test_enforces_minimum_spacing():
    limiter, clock = make_limiter(ProviderBudget(max_requests=10, window_s=60.0, min_interval_s=1.5))

    async def run():
        await limiter.await_slot("ors")
        await limiter.await_slot("ors")

    asyncio.run(run())

    assert clock.sleeps == [1.5]


def test_concurrent_callers_share_one_budget():
    limiter, clock = make_limiter(ProviderBudget(max_requests=3, window_s=10.0))

    async def run():
        await asyncio.gather(*(limiter.await_slot("ors") for _ in range(4)))

    asyncio.run(run())

    assert clock.sleeps == [10.0]


def test_remaining_recovers_after_window():
    limiter, clock = make_limiter(ProviderBudget(max_requests=5, window_s=60.0))

    asyncio.run(limiter.await_slot("ors"))
    assert limiter.remaining("ors") == 4

    clock.now = 61.0
    assert limiter.remaining("ors") == 5


def test_unknown_provider_is_not_limited():
    limiter, clock = make_limiter(ProviderBudget(max_requests=1, window_s=60.0))

    async def run():
        for _ in range(5):
            await limiter.await_slot("stub")

    asyncio.run(run())

    assert clock.sleeps == []
    assert limiter.remaining("stub") is None


class YieldingClock(FakeClock):
    """Fake clock whose sleep hands control back to the event loop."""

    async def sleep(self, seconds):
        await super().sleep(seconds)
        await asyncio.sleep(0)


def test_limiter_is_reusable_across_event_loops():
    clock = YieldingClock()
    limiter = RateLimiter(
        {"ors": ProviderBudget(max_requests=1, window_s=10.0)}, clock=clock, sleep=clock.sleep
    )

    async def burst():
        await asyncio.gather(*(limiter.await_slot("ors") for _ in range(3)))

    # Each asyncio.run gets a fresh loop and the callers contend for the lock
    asyncio.run(burst())
    asyncio.run(burst())

    assert clock.sleeps == [10.0] * 5
    assert clock.now == 50.0
