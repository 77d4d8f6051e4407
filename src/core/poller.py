"""Restartable recurring poll of the first notifications page.

Each PollLoop carries a generation id. The runtime discards any result whose
generation is no longer current, so a request that was already in flight
when the loop was superseded can never overwrite newer state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.config import MAX_CONSECUTIVE_FAILURES
from core.models import PageResult, PollState

LOGGER = logging.getLogger(__name__)

INTERVAL_TOO_SHORT = "Interval is too short"
TOKEN_MISSING = "Set GitHub token in settings first!"

FetchFirstPage = Callable[[], Awaitable[PageResult]]
ApplyPollResult = Callable[[int, PageResult], None]
OnStopped = Callable[[int], None]
Sleep = Callable[[float], Awaitable[None]]


class PollLoop:
    """One generation of the poll loop: Idle -> Running -> Stopped | Superseded."""

    def __init__(
        self,
        generation: int,
        *,
        token: str,
        interval_seconds: int,
        fetch_first_page: FetchFirstPage,
        apply_result: ApplyPollResult,
        sleep: Sleep = asyncio.sleep,
        max_failures: int = MAX_CONSECUTIVE_FAILURES,
        on_stopped: Optional[OnStopped] = None,
    ) -> None:
        self.generation = generation
        self.state = PollState.IDLE
        self.stop_message = ""
        self.failures = 0
        self.iterations = 0
        self._token = token
        self._interval = interval_seconds
        self._fetch_first_page = fetch_first_page
        self._apply_result = apply_result
        self._sleep = sleep
        self._max_failures = max_failures
        self._on_stopped = on_stopped
        self._task: Optional[asyncio.Task] = None

    def start(self) -> str:
        """Validate entry conditions and schedule the loop.

        Returns a user-facing message when the loop cannot run, otherwise an
        empty string.
        """

        if self._interval < 1:
            LOGGER.warning("Interval too short: %s", self._interval)
            return self._stop(INTERVAL_TOO_SHORT)
        if not self._token:
            LOGGER.warning("GitHub token missing")
            return self._stop(TOKEN_MISSING)

        self.state = PollState.RUNNING
        self._task = asyncio.get_running_loop().create_task(self._run())
        return ""

    def supersede(self) -> None:
        """Cancel the loop mid-sleep or mid-fetch."""

        if self.state in (PollState.IDLE, PollState.RUNNING):
            self.state = PollState.SUPERSEDED
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.wait({self._task})

    def _stop(self, message: str) -> str:
        self.state = PollState.STOPPED
        self.stop_message = message
        return message

    async def _run(self) -> None:
        while self.state is PollState.RUNNING:
            LOGGER.debug("Pull notifications (generation=%s, fails=%s)", self.generation, self.failures)
            result = await self._fetch_first_page()
            self.iterations += 1
            if not result.success:
                LOGGER.warning("Pull notifications failed: %s", result.error_message)

            self._apply_result(self.generation, result)
            if self.state is not PollState.RUNNING:
                return

            self.failures = 0 if result.success else self.failures + 1
            if self.failures >= self._max_failures:
                LOGGER.info(
                    "Stopping pull task after %s consecutive failures (generation=%s)",
                    self.failures,
                    self.generation,
                )
                self._stop(result.error_message)
                if self._on_stopped is not None:
                    self._on_stopped(self.generation)
                return
            await self._sleep(self._interval)
