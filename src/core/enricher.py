"""Bounded, supersedable prefetch of subject details.

A batch runs at most max_in_flight fetches at once and refills a slot as
soon as any fetch completes. Starting a new batch supersedes the previous
one: its generation no longer matches, so late completions are dropped
before they reach the store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional, Tuple

from core.config import MAX_DETAIL_FETCHES_IN_FLIGHT
from core.errors import FeedError
from core.models import SubjectDetails
from core.ports import FeedClientPort

LOGGER = logging.getLogger(__name__)

# (thread_id, subject lookup url)
Target = Tuple[str, str]
ApplyDetails = Callable[[str, SubjectDetails], None]


class DetailEnricher:
    """Sliding-window worker pool for subject detail lookups."""

    def __init__(self, max_in_flight: int = MAX_DETAIL_FETCHES_IN_FLIGHT) -> None:
        self._max_in_flight = max(1, max_in_flight)
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, client: FeedClientPort, targets: Iterable[Target], apply: ApplyDetails) -> int:
        """Supersede any running batch and start a new one.

        Returns the generation stamped on the new batch.
        """

        self.cancel()
        generation = self._generation
        queue = list(targets)
        LOGGER.debug("Prefetch subject details: %s targets", len(queue))
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation, client, queue, apply)
        )
        return generation

    def cancel(self) -> None:
        self._generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the current batch to settle, if any."""

        if self._task is not None:
            await asyncio.wait({self._task})

    async def close(self) -> None:
        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.wait({task})

    async def _fetch_one(self, client: FeedClientPort, target: Target) -> Tuple[str, Optional[SubjectDetails]]:
        thread_id, url = target
        try:
            return thread_id, await client.fetch_subject_details(url)
        except FeedError as exc:
            LOGGER.debug("Subject details fetch failed: %s (%s)", url, exc)
            return thread_id, None
        except Exception:
            LOGGER.exception("Unexpected error fetching subject details: %s", url)
            return thread_id, None

    async def _run(
        self,
        generation: int,
        client: FeedClientPort,
        queue: list[Target],
        apply: ApplyDetails,
    ) -> None:
        pending_targets = iter(queue)
        in_flight: set[asyncio.Task] = set()

        def dispatch_next() -> None:
            target = next(pending_targets, None)
            if target is not None:
                in_flight.add(asyncio.ensure_future(self._fetch_one(client, target)))

        for _ in range(self._max_in_flight):
            dispatch_next()

        try:
            while in_flight:
                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for finished in done:
                    in_flight.discard(finished)
                    thread_id, details = finished.result()
                    if generation != self._generation:
                        return
                    if details is not None:
                        apply(thread_id, details)
                    dispatch_next()
        finally:
            for task in in_flight:
                task.cancel()
