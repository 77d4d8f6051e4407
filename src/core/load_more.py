"""One-shot "load more" pagination."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Iterable, Optional

from core.models import NotificationThread, PageResult

LOGGER = logging.getLogger(__name__)

FetchPage = Callable[[int], Awaitable[PageResult]]
ApplyPage = Callable[[int, PageResult], None]


def merge_threads(
    existing: Iterable[NotificationThread],
    incoming: Iterable[NotificationThread],
) -> list[NotificationThread]:
    """Append unseen threads to the existing list.

    Existing entries keep their position; new ids append in fetched order and
    repeated ids are skipped, so merging the same page twice is a no-op.
    """

    merged = list(existing)
    seen = {thread.id for thread in merged}
    for thread in incoming:
        if thread.id in seen:
            continue
        seen.add(thread.id)
        merged.append(thread)
    return merged


class LoadMoreController:
    """Owns the single in-flight load-more task.

    The runtime checks its own preconditions (loading flag, cursor) before
    calling start; this class only guarantees one task at a time.
    """

    def __init__(self, fetch_page: FetchPage, apply_page: ApplyPage) -> None:
        self._fetch_page = fetch_page
        self._apply_page = apply_page
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None

    def start(self, page: int) -> bool:
        if self._task is not None:
            return False
        LOGGER.debug("Load more notifications (page=%s)", page)
        self._task = asyncio.get_running_loop().create_task(self._run(page))
        return True

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def close(self) -> None:
        """Cancel the in-flight task and wait until it has unwound."""

        task = self._task
        self.cancel()
        if task is not None:
            await asyncio.wait({task})

    async def _run(self, page: int) -> None:
        try:
            result = await self._fetch_page(page)
            self._apply_page(page, result)
        finally:
            if self._task is asyncio.current_task():
                self._task = None
