"""
Refresh schedulers that pace the inference loop.

The loop awaits `wait_for_refresh()` between cycles. IntervalScheduler
emulates a display refresh: it resumes at the next refresh boundary, so the
loop never runs faster than the refresh rate and simply drops to a slower
cadence when inference takes longer. ManualScheduler lets tests release
cycles one at a time.
"""

from __future__ import annotations

import asyncio
import math
import time
from abc import ABC, abstractmethod
from typing import Callable


class RefreshScheduler(ABC):
    """Cooperative rescheduling primitive for the inference loop."""

    @abstractmethod
    async def wait_for_refresh(self) -> None:
        ...


class IntervalScheduler(RefreshScheduler):
    def __init__(self, refresh_hz: float = 60.0, clock: Callable[[], float] = time.monotonic):
        if refresh_hz <= 0:
            raise ValueError("refresh_hz must be positive")
        self.interval = 1.0 / refresh_hz
        self._clock = clock

    def delay_until_next_refresh(self) -> float:
        now = self._clock()
        next_tick = (math.floor(now / self.interval) + 1) * self.interval
        return max(0.0, next_tick - now)

    async def wait_for_refresh(self) -> None:
        await asyncio.sleep(self.delay_until_next_refresh())


class ManualScheduler(RefreshScheduler):
    """Releases one waiting cycle per step()."""

    def __init__(self):
        self._pending = 0
        self._event = asyncio.Event()

    def step(self, count: int = 1) -> None:
        self._pending += count
        self._event.set()

    async def wait_for_refresh(self) -> None:
        while self._pending == 0:
            self._event.clear()
            await self._event.wait()
        self._pending -= 1
