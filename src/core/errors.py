"""Error taxonomy for feed access.

Adapters raise these so the core can tell transport, HTTP and decode
failures apart without importing any HTTP library.
"""

from __future__ import annotations

BODY_PREVIEW_CHARS = 512


class FeedError(RuntimeError):
    """Base class for every failure raised while talking to the feed."""


class InvalidResponseError(FeedError):
    """The transport did not yield a recognizable response envelope."""


class NetworkError(FeedError):
    """The request never completed (connect failure, timeout, reset)."""


class HttpStatusError(FeedError):
    """The server answered with a status outside 200..299."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
        self.body = body

    def body_preview(self, limit: int = BODY_PREVIEW_CHARS) -> str:
        return self.body[:limit]


class ResponseDecodeError(FeedError):
    """The body did not match the expected JSON shape or date format."""


__all__ = [
    "BODY_PREVIEW_CHARS",
    "FeedError",
    "InvalidResponseError",
    "NetworkError",
    "HttpStatusError",
    "ResponseDecodeError",
]
