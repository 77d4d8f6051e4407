"""GitHub REST API adapter.

Implements the core FeedClientPort with httpx. Every call is a live round
trip: a fresh AsyncClient per request and no HTTP cache layering.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional, Sequence, Tuple

import httpx

from adapters.github_mapper import subject_details_from_payload, threads_from_payload
from core.config import REQUEST_TIMEOUT_SECONDS
from core.errors import (
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    ResponseDecodeError,
)
from core.models import NotificationThread, SubjectDetails

LOGGER = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"


class GitHubClient:
    """Authenticated GET access to the notifications API for one token."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = GITHUB_API_BASE,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "Authorization": f"Bearer {self._token}",
            "Cache-Control": "no-cache",
        }

    async def fetch_json(
        self, url: str, params: Optional[dict[str, Any]] = None
    ) -> Tuple[Any, httpx.Headers]:
        """GET a URL and decode its JSON body.

        Raises InvalidResponseError, NetworkError, HttpStatusError or
        ResponseDecodeError.
        """

        started = time.monotonic()
        LOGGER.debug("HTTP GET %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers=self._headers(),
                transport=self._transport,
            ) as client:
                response = await client.get(url, params=params)
        except httpx.RemoteProtocolError as exc:
            LOGGER.warning("HTTP invalid response for %s: %s", url, exc)
            raise InvalidResponseError(str(exc)) from exc
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as exc:
            # Transport failures plus decoding, redirect and URL errors.
            LOGGER.warning("HTTP request failed for %s: %s", url, exc)
            raise NetworkError(str(exc)) from exc

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if not 200 <= response.status_code <= 299:
            body = response.text
            LOGGER.debug(
                "HTTP %s %s (%sms), body: %s",
                response.status_code,
                url,
                elapsed_ms,
                body[:1024],
            )
            raise HttpStatusError(response.status_code, body)

        LOGGER.debug("HTTP %s %s (%sms)", response.status_code, url, elapsed_ms)
        try:
            payload = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ResponseDecodeError(f"body is not valid JSON: {exc}") from exc
        return payload, response.headers

    async def fetch_notifications(
        self, page: int, per_page: int
    ) -> Tuple[Sequence[NotificationThread], Optional[str]]:
        """Fetch one page of /notifications and return it with its Link header."""

        payload, headers = await self.fetch_json(
            f"{self._base_url}/notifications",
            params={"page": page, "per_page": per_page},
        )
        return threads_from_payload(payload), headers.get("Link")

    async def fetch_subject_details(self, url: str) -> SubjectDetails:
        payload, _ = await self.fetch_json(url)
        return subject_details_from_payload(payload)
