from __future__ import annotations
from typing import Callable, Optional, Protocol
import asyncio


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """
    Relojes que usa el motor. Todo callback corre en el mismo loop que las respuestas
    del jugador, así que el motor no necesita locks.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class _Repeating:
    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]):
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = loop.call_later(interval, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        # se re-arma antes de llamar: el callback puede cancelarnos
        self._handle = self._loop.call_later(self._interval, self._fire)
        self._callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Scheduler sobre el event loop de asyncio (el de uvicorn en producción)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self.loop.call_later(delay, callback)

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        return _Repeating(self.loop, interval, callback)
