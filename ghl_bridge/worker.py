"""Periodic background sweepers for sessions and expired OAuth rows."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

SweepFn = Callable[[], Union[int, Awaitable[int]]]


class SweepWorker:
    """Runs ``sweep`` every ``interval_seconds`` until stopped."""

    def __init__(self, name: str, interval_seconds: float, sweep: SweepFn) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self._sweep = sweep
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name=self.name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None

    async def run_once(self) -> int:
        result = self._sweep()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
                break
            except asyncio.TimeoutError:
                pass
            try:
                removed = await self.run_once()
                if removed:
                    logger.debug("%s removed %d entries", self.name, removed)
            except asyncio.CancelledError:
                raise
            except Exception:  # pragma: no cover - defensive log path
                logger.exception("%s sweep failed", self.name)
