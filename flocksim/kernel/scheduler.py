import asyncio
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Optional

from flocksim.domain import config

TickCallback = Callable[[], None]

class TickScheduler(ABC):
    @abstractmethod
    def schedule_next(self, callback: TickCallback):
        pass

    @abstractmethod
    def cancel(self):
        pass


class ManualScheduler(TickScheduler):
    """Runs ticks synchronously on demand. Used for tests and headless runs."""

    def __init__(self):
        self.pending: Deque[TickCallback] = deque()

    def schedule_next(self, callback: TickCallback):
        self.pending.append(callback)

    def cancel(self):
        self.pending.clear()

    def step(self) -> bool:
        if not self.pending:
            return False
        callback = self.pending.popleft()
        callback()
        return True

    def run_until_idle(self, max_ticks: Optional[int] = None) -> int:
        ticks = 0
        while self.pending and (max_ticks is None or ticks < max_ticks):
            self.step()
            ticks += 1
        return ticks


class AsyncioScheduler(TickScheduler):
    """Dispatches ticks from a running asyncio event loop at a wall-clock interval."""

    def __init__(self, interval: float = config.TICK_SECONDS, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.interval = interval
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    def schedule_next(self, callback: TickCallback):
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.interval, callback)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
