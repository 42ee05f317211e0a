"""
gatorpay/services/cooldown.py

Purpose: Resend cooldown countdown

- Owns a single asyncio task decrementing the remaining seconds
- Cancelled explicitly by its owner (abandon, verification, teardown)
- Never mutates state once cancelled or closed
"""

import asyncio
from typing import Optional

from gatorpay.core.logging import get_logger
from gatorpay.services.observable import Observable

logger = get_logger(__name__)


class CooldownTimer:
    """
    Counts `remaining` down to zero, one step per `tick_seconds`.
    """

    def __init__(self, tick_seconds: float = 1.0, name: str = "resend_cooldown"):
        self.tick_seconds = tick_seconds
        self.remaining: Observable[int] = Observable(0, name=name)
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def active(self) -> bool:
        return self.remaining.value > 0

    def start(self, seconds: int) -> None:
        """
        (Re)starts the countdown from `seconds`. Any running countdown is
        cancelled first so only one task ever owns `remaining`.
        """
        if self._closed:
            raise RuntimeError("Cooldown timer is closed")

        self._cancel_task()
        self.remaining.set(seconds)
        if seconds > 0:
            self._task = asyncio.get_running_loop().create_task(self._run())
            logger.debug(f"Cooldown started: {seconds}s")

    def cancel(self) -> None:
        """Stops the countdown and resets `remaining` to 0."""
        self._cancel_task()
        self.remaining.set(0)

    def close(self) -> None:
        """Teardown: cancel and refuse further starts."""
        self.cancel()
        self._closed = True

    def _cancel_task(self) -> None:
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        task = asyncio.current_task()
        while True:
            await asyncio.sleep(self.tick_seconds)
            if self._task is not task:
                return
            value = self.remaining.value
            if value <= 1:
                self.remaining.set(0)
                self._task = None
                return
            self.remaining.set(value - 1)
