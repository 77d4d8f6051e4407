"""Page fetching for the notification feed.

Wraps a FeedClientPort call and normalizes every failure into a PageResult
so callers never have to handle exceptions.
"""

from __future__ import annotations

import logging
from typing import Optional

from core.config import clamp_page_size
from core.errors import (
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    ResponseDecodeError,
)
from core.models import PageResult
from core.ports import FeedClientPort

LOGGER = logging.getLogger(__name__)


def link_has_next(link_header: Optional[str]) -> bool:
    """Return True when a Link header advertises a rel="next" page.

    Format: <url>; rel="next", <url>; rel="last"
    """

    if not link_header:
        return False
    return any('rel="next"' in part for part in link_header.split(","))


async def fetch_notification_page(client: FeedClientPort, page: int, per_page: int) -> PageResult:
    """Fetch one page of notification threads."""

    page = max(int(page), 1)
    per_page = clamp_page_size(per_page)
    LOGGER.debug("Fetching notification threads (page=%s, per_page=%s)", page, per_page)

    try:
        threads, link_header = await client.fetch_notifications(page, per_page)
    except InvalidResponseError:
        LOGGER.warning("GitHub API invalid response")
        return PageResult.failed("invalid response")
    except HttpStatusError as exc:
        preview = exc.body_preview()
        LOGGER.warning("GitHub API HTTP %s, body: %s", exc.status_code, preview)
        return PageResult.failed(f"bad request: {exc.status_code}, {preview}")
    except ResponseDecodeError as exc:
        LOGGER.warning("GitHub API response decode failed: %s", exc)
        return PageResult.failed(f"cannot decode response: {exc}")
    except NetworkError:
        LOGGER.warning("GitHub API request failed (network/firewall?)")
        return PageResult.failed("cannot request, please check network or firewall")

    LOGGER.debug("Fetched %s notification threads", len(threads))
    return PageResult.ok(threads, link_has_next(link_header))
