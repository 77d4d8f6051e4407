"""Ports (interfaces) used by the core runtime.

Ports define the minimal contracts for the feed client and configuration
store so the core can be driven by real adapters or test fakes.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

from core.config import PollConfiguration
from core.models import NotificationThread, RuntimeSnapshot, SubjectDetails


class FeedClientPort(Protocol):
    """Authenticated access to the notification feed.

    Implementations raise core.errors.FeedError subclasses on failure.
    """

    async def fetch_notifications(
        self, page: int, per_page: int
    ) -> Tuple[Sequence[NotificationThread], Optional[str]]:
        """Return one page of threads and the raw continuation link header."""
        ...

    async def fetch_subject_details(self, url: str) -> SubjectDetails:
        ...


# Builds a client bound to one token.
ClientFactory = Callable[[str], FeedClientPort]

SnapshotListener = Callable[[RuntimeSnapshot], Any]


class ConfigStorePort(Protocol):
    """Persistence for the user-editable poll configuration."""

    def load(self) -> PollConfiguration:
        ...

    def save(self, config: PollConfiguration) -> None:
        ...
