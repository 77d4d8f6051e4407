"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

MIN_INTERVAL_SECONDS = 30
MAX_INTERVAL_SECONDS = 3600
DEFAULT_INTERVAL_SECONDS = 300

MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 10

REQUEST_TIMEOUT_SECONDS = 10.0
TOKEN_DEBOUNCE_SECONDS = 0.6
MAX_CONSECUTIVE_FAILURES = 3
MAX_DETAIL_FETCHES_IN_FLIGHT = 4


def clamp_page_size(value: int) -> int:
    """Clamp a requested page size into the range the API accepts."""

    return min(max(int(value), MIN_PAGE_SIZE), MAX_PAGE_SIZE)


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class PollConfiguration:
    """Token, poll interval and page size for the notification poller."""

    token: str = ""
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_raw(
        cls,
        token: Optional[str],
        interval_seconds: Any,
        page_size: Any,
    ) -> "PollConfiguration":
        """Normalize persisted values read at startup.

        Values below the lower bound fall back to the default, values above
        the upper bound are capped.
        """

        interval = _coerce_int(interval_seconds, DEFAULT_INTERVAL_SECONDS)
        if interval < MIN_INTERVAL_SECONDS:
            interval = DEFAULT_INTERVAL_SECONDS
        if interval > MAX_INTERVAL_SECONDS:
            interval = MAX_INTERVAL_SECONDS

        size = _coerce_int(page_size, DEFAULT_PAGE_SIZE)
        if size < MIN_PAGE_SIZE:
            size = DEFAULT_PAGE_SIZE
        if size > MAX_PAGE_SIZE:
            size = MAX_PAGE_SIZE

        return cls(token=(token or "").strip(), interval_seconds=interval, page_size=size)

    @property
    def per_page(self) -> int:
        return clamp_page_size(self.page_size)

    def with_token(self, token: str) -> "PollConfiguration":
        return replace(self, token=token)

    def with_interval(self, interval_seconds: int) -> "PollConfiguration":
        return replace(self, interval_seconds=int(interval_seconds))

    def with_page_size(self, page_size: int) -> "PollConfiguration":
        return replace(self, page_size=int(page_size))
