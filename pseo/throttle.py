"""
Fixed-interval throttle between upstream calls and between batch items.

The pipeline runs sequentially, so a plain sleep is all that is needed to
stay under the model and image providers' rate limits. The sleep function
is injectable so tests can use a fake clock.
"""
import asyncio
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger()

SleepFn = Callable[[float], Awaitable[None]]


class Throttle:
    """Sleeps `call_interval` after upstream calls and `item_interval` after items."""

    def __init__(
        self,
        call_interval: float = 1.0,
        item_interval: float = 2.0,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.call_interval = call_interval
        self.item_interval = item_interval
        self._sleep = sleep

    async def after_call(self) -> None:
        if self.call_interval > 0:
            logger.debug("throttle_sleep", reason="call", seconds=self.call_interval)
            await self._sleep(self.call_interval)

    async def after_item(self) -> None:
        if self.item_interval > 0:
            logger.debug("throttle_sleep", reason="item", seconds=self.item_interval)
            await self._sleep(self.item_interval)

