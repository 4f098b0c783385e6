"""Polling scheduler: fast cycle, slow cycle and the wall-clock tick.

Three independent asyncio tasks run for as long as the view is mounted:

- fast cycle: account, positions, activity and trades fetched concurrently,
  then merged into the view in one synchronous transition.
- slow cycle: the market intelligence report.
- clock: local time only, never touches the network.

A failed call only affects its own slice; the slice keeps its last good value
until a later cycle succeeds. There is no retry beyond the next tick.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from backend_client import BackendClient
from state import ViewState

logger = logging.getLogger("ygg.scheduler")

FAST_SLICES = ("account", "positions", "activities", "trades")


class PollingScheduler:
    def __init__(self, client: BackendClient, view: ViewState,
                 fast_interval: float = 5.0, slow_interval: float = 30.0,
                 clock_interval: float = 1.0):
        self.client = client
        self.view = view
        self.fast_interval = fast_interval
        self.slow_interval = slow_interval
        self.clock_interval = clock_interval
        self._tasks: List[asyncio.Task] = []
        self._stopped = False

    @classmethod
    def from_settings(cls, client: BackendClient, view: ViewState, settings) -> "PollingScheduler":
        return cls(client, view,
                   fast_interval=settings.poll_fast_seconds,
                   slow_interval=settings.poll_slow_seconds,
                   clock_interval=settings.clock_seconds)

    @property
    def running(self) -> bool:
        return bool(self._tasks) and not self._stopped

    # --- cycles ---

    async def refresh(self) -> None:
        """One fast cycle. Also the manual refresh entry point."""
        results = await asyncio.gather(
            self.client.get_account(),
            self.client.get_positions(),
            self.client.get_activities(),
            self.client.get_trades(),
            return_exceptions=True,
        )
        if self._stopped:
            logger.debug("Scheduler stopped, discarding fast cycle results")
            return

        slices = {}
        for name, result in zip(FAST_SLICES, results):
            if isinstance(result, Exception):
                logger.warning("Fast cycle: %s fetch failed, keeping previous value: %s", name, result)
                slices[name] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                slices[name] = result

        self.view.apply_fast_cycle(**slices)
        logger.debug("Fast cycle applied (%d/%d slices)",
                     sum(v is not None for v in slices.values()), len(FAST_SLICES))

    async def refresh_intelligence(self) -> None:
        if self._stopped:
            return
        self.view.set_intelligence_loading(True)
        try:
            report = await self.client.get_intelligence()
        except Exception as e:
            logger.warning("Slow cycle: intelligence fetch failed: %s", e)
            report = None
        finally:
            if not self._stopped:
                self.view.set_intelligence_loading(False)
        if report is not None and not self._stopped:
            self.view.apply_intelligence(report)

    def tick(self) -> None:
        self.view.tick(datetime.now())

    # --- lifecycle ---

    async def _every(self, interval: float, job: Callable[[], Awaitable[None]], name: str) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                try:
                    await job()
                except Exception:
                    logger.exception("%s cycle crashed", name)
        except asyncio.CancelledError:
            logger.debug("%s loop cancelled", name)
            raise

    async def _clock(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.clock_interval)

    async def start(self, initial_fetch: bool = True) -> None:
        """Fetch both cycles once, then start the three loops."""
        if self._tasks:
            return
        self._stopped = False
        logger.info("Starting polling (fast=%ss, slow=%ss)", self.fast_interval, self.slow_interval)
        if initial_fetch:
            await asyncio.gather(self.refresh(), self.refresh_intelligence())
        self._tasks = [
            asyncio.create_task(self._every(self.fast_interval, self.refresh, "fast")),
            asyncio.create_task(self._every(self.slow_interval, self.refresh_intelligence, "slow")),
            asyncio.create_task(self._clock()),
        ]

    async def stop(self) -> None:
        """Cancel all loops and wait for them. Safe to call more than once."""
        self._stopped = True
        tasks, self._tasks = self._tasks, []
        if not tasks:
            return
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Polling stopped")
