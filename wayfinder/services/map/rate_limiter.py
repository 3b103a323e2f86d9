"""
Rate Limiter - per-provider request budget shared by every concurrent search
"""
import asyncio
import time
import weakref
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, Optional

from loguru import logger

from wayfinder.config import settings


@dataclass(frozen=True)
class ProviderBudget:
    max_requests: int
    window_s: float
    min_interval_s: float = 0.0


def default_budgets() -> Dict[str, ProviderBudget]:
    return {
        "openrouteservice": ProviderBudget(
            max_requests=settings.ors_max_requests,
            window_s=settings.ors_window_s,
            min_interval_s=settings.ors_min_interval_s,
        ),
        "opencage": ProviderBudget(
            max_requests=settings.opencage_max_requests,
            window_s=settings.opencage_window_s,
            min_interval_s=settings.opencage_min_interval_s,
        ),
    }


class RateLimiter:
    """Sliding-window request budget with a minimum spacing between calls"""

    def __init__(
        self,
        budgets: Optional[Dict[str, ProviderBudget]] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.budgets = default_budgets() if budgets is None else budgets
        self._clock = clock
        self._sleep = sleep
        self._requests: Dict[str, Deque[float]] = {}
        self._last_request: Dict[str, float] = {}
        # asyncio locks belong to one event loop, so each loop gets its own set
        self._locks: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()

    async def await_slot(self, provider_name: str) -> None:
        """Wait until a request to the provider fits the budget, then claim it"""
        budget = self.budgets.get(provider_name)
        if budget is None:
            return

        async with self._lock_for(provider_name):
            requests = self._requests.setdefault(provider_name, deque())

            while True:
                now = self._clock()
                self._evict(requests, now, budget.window_s)
                if len(requests) < budget.max_requests:
                    break
                wait_s = budget.window_s - (now - requests[0])
                logger.info(
                    f"🔴 Rate limit reached for {provider_name}. Waiting {wait_s:.1f}s..."
                )
                await self._sleep(max(wait_s, 0.0))

            last = self._last_request.get(provider_name)
            if last is not None:
                gap = self._clock() - last
                if gap < budget.min_interval_s:
                    await self._sleep(budget.min_interval_s - gap)

            stamp = self._clock()
            self._last_request[provider_name] = stamp
            requests.append(stamp)

    def _lock_for(self, provider_name: str) -> asyncio.Lock:
        loop_locks = self._locks.setdefault(asyncio.get_running_loop(), {})
        if provider_name not in loop_locks:
            loop_locks[provider_name] = asyncio.Lock()
        return loop_locks[provider_name]

    def remaining(self, provider_name: str) -> Optional[int]:
        """Requests still available in the current window (None if unlimited)"""
        budget = self.budgets.get(provider_name)
        if budget is None:
            return None
        requests = self._requests.get(provider_name, deque())
        self._evict(requests, self._clock(), budget.window_s)
        return max(0, budget.max_requests - len(requests))

    @staticmethod
    def _evict(requests: Deque[float], now: float, window_s: float) -> None:
        while requests and now - requests[0] >= window_s:
            requests.popleft()


# Global limiter instance shared by all route requests
rate_limiter = RateLimiter()
