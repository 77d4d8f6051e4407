"""Runtime state owner for the notification poller.

This module is integration-agnostic. It only relies on ports for the feed
client and configuration store, so any frontend can drive it.

Every field observers read (the list, detail map, cursor, flags, message)
is written here and nowhere else. All writes happen on the event loop that
owns the runtime, so two mutations never interleave.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Iterable, Optional, Tuple

from core.config import (
    MAX_CONSECUTIVE_FAILURES,
    MAX_DETAIL_FETCHES_IN_FLIGHT,
    TOKEN_DEBOUNCE_SECONDS,
    PollConfiguration,
)
from core.enricher import DetailEnricher
from core.load_more import LoadMoreController, merge_threads
from core.models import (
    NotificationThread,
    PageResult,
    PollState,
    RuntimeSnapshot,
    SubjectDetails,
)
from core.pagination import fetch_notification_page
from core.poller import TOKEN_MISSING, PollLoop, Sleep
from core.ports import ClientFactory, ConfigStorePort, SnapshotListener

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationRuntime:
    """Owns the notification list and coordinates polling, paging and enrichment."""

    def __init__(
        self,
        config: PollConfiguration,
        client_factory: ClientFactory,
        *,
        config_store: Optional[ConfigStorePort] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
        token_debounce_seconds: float = TOKEN_DEBOUNCE_SECONDS,
        max_failures: int = MAX_CONSECUTIVE_FAILURES,
        max_in_flight: int = MAX_DETAIL_FETCHES_IN_FLIGHT,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._config_store = config_store
        self._sleep = sleep
        self._clock = clock
        self._token_debounce_seconds = token_debounce_seconds
        self._max_failures = max_failures

        self._notifications: list[NotificationThread] = []
        self._subject_details: dict[str, SubjectDetails] = {}
        self._message = ""
        self._last_poll: Optional[datetime] = None
        self._is_loading_more = False
        self._load_more_error = ""
        self._next_page: Optional[int] = None

        self._poll_generation = 0
        self._poll_loop: Optional[PollLoop] = None
        self._load_more = LoadMoreController(self._fetch_page, self._apply_load_more_result)
        self._enricher = DetailEnricher(max_in_flight)
        self._token_debounce: Optional[asyncio.Task] = None
        self._listeners: list[SnapshotListener] = []

    # -- read side -----------------------------------------------------------

    @property
    def config(self) -> PollConfiguration:
        return self._config

    @property
    def next_page(self) -> Optional[int]:
        return self._next_page

    @property
    def has_more(self) -> bool:
        return self._next_page is not None

    @property
    def poll_loop(self) -> Optional[PollLoop]:
        return self._poll_loop

    @property
    def poll_state(self) -> PollState:
        if self._poll_loop is None:
            return PollState.IDLE
        return self._poll_loop.state

    @property
    def enricher(self) -> DetailEnricher:
        return self._enricher

    def snapshot(self) -> RuntimeSnapshot:
        return RuntimeSnapshot(
            notifications=tuple(self._notifications),
            subject_details=MappingProxyType(dict(self._subject_details)),
            message=self._message,
            last_poll=self._last_poll,
            is_loading_more=self._is_loading_more,
            has_more=self.has_more,
            load_more_error=self._load_more_error,
            poll_state=self.poll_state,
        )

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change.

        Returns a callable that removes the listener.
        """

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- poll loop -----------------------------------------------------------

    def start(self) -> None:
        LOGGER.info("Runtime start")
        self._renew_poll_loop()

    def force_retry(self) -> None:
        LOGGER.info("Force retry requested")
        self._renew_poll_loop()

    def _renew_poll_loop(self) -> None:
        config = self._config
        LOGGER.info("Renew pull task (interval=%ss)", config.interval_seconds)
        if self._poll_loop is not None:
            self._poll_loop.supersede()
        self._enricher.cancel()
        self._cancel_load_more()

        self._poll_generation += 1
        token = config.token
        per_page = config.per_page

        async def fetch_first_page() -> PageResult:
            return await fetch_notification_page(self._client_factory(token), 1, per_page)

        loop = PollLoop(
            self._poll_generation,
            token=token,
            interval_seconds=config.interval_seconds,
            fetch_first_page=fetch_first_page,
            apply_result=self._apply_poll_result,
            sleep=self._sleep,
            max_failures=self._max_failures,
            on_stopped=self._on_poll_stopped,
        )
        self._poll_loop = loop
        message = loop.start()
        if message:
            self._message = message
            self._publish()

    def _apply_poll_result(self, generation: int, result: PageResult) -> None:
        if generation != self._poll_generation:
            LOGGER.debug(
                "Discarding poll result from superseded generation %s (current=%s)",
                generation,
                self._poll_generation,
            )
            return

        self._message = result.error_message
        self._last_poll = self._clock()
        if result.success:
            self._notifications = list(result.threads)
            self._next_page = 2 if result.has_next else None
            self._load_more_error = ""
            self._prune_details()
        self._publish()

    def _on_poll_stopped(self, generation: int) -> None:
        if generation != self._poll_generation:
            return
        LOGGER.info("Poll loop stopped: %s", self._message)
        self._publish()

    # -- load more -----------------------------------------------------------

    def load_more(self) -> bool:
        """Start fetching the next page. Returns False when it is a no-op."""

        if self._is_loading_more or self._load_more.in_flight:
            return False
        page = self._next_page
        if page is None:
            return False

        self._is_loading_more = True
        self._load_more_error = ""
        self._load_more.start(page)
        self._publish()
        return True

    async def wait_for_load_more(self) -> None:
        await self._load_more.wait()

    async def _fetch_page(self, page: int) -> PageResult:
        config = self._config
        return await fetch_notification_page(self._client_factory(config.token), page, config.per_page)

    def _apply_load_more_result(self, page: int, result: PageResult) -> None:
        if self._next_page != page:
            # A poll cycle reset pagination while this page was in flight.
            LOGGER.debug("Ignoring stale load-more page %s (cursor=%s)", page, self._next_page)
            self._is_loading_more = False
            self._publish()
            return

        self._is_loading_more = False
        if not result.success:
            LOGGER.warning("Load more failed: %s", result.error_message)
            self._load_more_error = result.error_message
            self._publish()
            return

        self._notifications = merge_threads(self._notifications, result.threads)
        self._next_page = page + 1 if result.has_next else None
        self._prune_details()
        self._publish()

    def _cancel_load_more(self) -> None:
        self._load_more.cancel()
        self._is_loading_more = False

    def _reset_pagination(self) -> None:
        self._cancel_load_more()
        self._next_page = None
        self._load_more_error = ""

    # -- subject details -----------------------------------------------------

    def prefetch_details(self, threads: Optional[Iterable[NotificationThread]] = None) -> bool:
        """Fetch subject details for threads that have none yet.

        Supersedes any batch already running. Returns False when there is
        nothing to do.
        """

        token = self._config.token
        candidates = self._notifications if threads is None else threads
        targets: list[Tuple[str, str]] = [
            (thread.id, thread.subject_url)
            for thread in candidates
            if thread.id not in self._subject_details and thread.subject_url
        ]
        if not token or not targets:
            return False

        self._enricher.start(self._client_factory(token), targets, self._apply_details)
        return True

    async def wait_for_details(self) -> None:
        await self._enricher.wait()

    def _apply_details(self, thread_id: str, details: SubjectDetails) -> None:
        if thread_id not in {thread.id for thread in self._notifications}:
            return
        self._subject_details[thread_id] = details
        self._publish()

    def _prune_details(self) -> None:
        ids = {thread.id for thread in self._notifications}
        self._subject_details = {
            thread_id: details
            for thread_id, details in self._subject_details.items()
            if thread_id in ids
        }

    # -- configuration -------------------------------------------------------

    def set_token(self, token: str) -> None:
        """Store a new token and restart polling once typing settles."""

        token = token.strip()
        if token == self._config.token:
            return
        self._update_config(self._config.with_token(token))
        self._reset_pagination()

        if self._token_debounce is not None:
            self._token_debounce.cancel()
        self._token_debounce = asyncio.get_running_loop().create_task(self._debounced_restart())

    async def _debounced_restart(self) -> None:
        await asyncio.sleep(self._token_debounce_seconds)
        self._token_debounce = None
        self._renew_poll_loop()

    def set_interval(self, interval_seconds: int) -> None:
        if int(interval_seconds) == self._config.interval_seconds:
            return
        self._update_config(self._config.with_interval(interval_seconds))
        self._reset_pagination()
        self._renew_poll_loop()

    def set_page_size(self, page_size: int) -> None:
        if int(page_size) == self._config.page_size:
            return
        self._update_config(self._config.with_page_size(page_size))
        self._reset_pagination()
        self._renew_poll_loop()

    def _update_config(self, config: PollConfiguration) -> None:
        self._config = config
        if self._config_store is not None:
            self._config_store.save(config)

    async def verify_token(self) -> Tuple[bool, str]:
        """Check the current token with a minimal request."""

        token = self._config.token
        if not token:
            return False, TOKEN_MISSING
        result = await fetch_notification_page(self._client_factory(token), 1, 1)
        return result.success, result.error_message

    # -- lifecycle -----------------------------------------------------------

    async def shutdown(self) -> None:
        """Cancel every outstanding task and wait for them to finish."""

        LOGGER.info("Runtime shutdown")
        if self._token_debounce is not None:
            self._token_debounce.cancel()
            await asyncio.wait({self._token_debounce})
            self._token_debounce = None

        loop = self._poll_loop
        if loop is not None:
            loop.supersede()
            await loop.wait()

        await self._enricher.close()
        await self._load_more.close()
        self._is_loading_more = False

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                LOGGER.exception("Snapshot listener failed")
