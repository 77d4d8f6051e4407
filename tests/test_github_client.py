from __future__ import annotations

import asyncio

import httpx
import pytest

from adapters.github_client import GITHUB_API_VERSION, GitHubClient
from core.errors import (
    HttpStatusError,
    InvalidResponseError,
    NetworkError,
    ResponseDecodeError,
)

NOTIFICATION = {
    "id": "1",
    "repository": {"full_name": "octo/repo", "owner": None},
    "subject": {"title": "Bug", "type": "Issue", "url": None},
    "reason": "mention",
    "unread": True,
    "updated_at": "2024-01-01T00:00:00Z",
    "last_read_at": None,
    "url": "https://api.github.com/notifications/threads/1",
}


def _client(handler) -> GitHubClient:
    return GitHubClient("secret-token", transport=httpx.MockTransport(handler))


def test_fetch_notifications_sends_auth_and_paging() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[NOTIFICATION],
            headers={"Link": '<https://api.github.com/notifications?page=3>; rel="next"'},
        )

    threads, link = asyncio.run(_client(handler).fetch_notifications(2, 25))

    assert [thread.id for thread in threads] == ["1"]
    assert link is not None and 'rel="next"' in link
    request = seen[0]
    assert request.url.path == "/notifications"
    assert request.url.params["page"] == "2"
    assert request.url.params["per_page"] == "25"
    assert request.headers["Authorization"] == "Bearer secret-token"
    assert request.headers["X-GitHub-Api-Version"] == GITHUB_API_VERSION
    assert request.headers["Accept"] == "application/vnd.github+json"


def test_missing_link_header_is_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    threads, link = asyncio.run(_client(handler).fetch_notifications(1, 10))
    assert list(threads) == []
    assert link is None


def test_non_2xx_raises_http_error_with_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="rate limited")

    with pytest.raises(HttpStatusError) as excinfo:
        asyncio.run(_client(handler).fetch_notifications(1, 10))

    assert excinfo.value.status_code == 403
    assert excinfo.value.body == "rate limited"


def test_invalid_json_raises_decode_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ResponseDecodeError):
        asyncio.run(_client(handler).fetch_notifications(1, 10))


def test_unexpected_shape_raises_decode_error_not_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"id": "1"}])

    with pytest.raises(ResponseDecodeError):
        asyncio.run(_client(handler).fetch_notifications(1, 10))


def test_protocol_error_is_invalid_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.RemoteProtocolError("server hung up", request=request)

    with pytest.raises(InvalidResponseError):
        asyncio.run(_client(handler).fetch_notifications(1, 10))


def test_connect_error_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkError):
        asyncio.run(_client(handler).fetch_notifications(1, 10))


def test_fetch_subject_details() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://api.github.com/repos/octo/repo/issues/4"
        return httpx.Response(
            200,
            json={
                "html_url": "https://github.com/octo/repo/issues/4",
                "user": {"id": 5, "login": "eve", "avatar_url": "https://avatars.example/eve"},
                "assignees": [],
            },
        )

    details = asyncio.run(
        _client(handler).fetch_subject_details("https://api.github.com/repos/octo/repo/issues/4")
    )
    assert details.html_url == "https://github.com/octo/repo/issues/4"
    assert [user.login for user in details.participants] == ["eve"]


def _broken_gzip(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"Content-Encoding": "gzip"},
        stream=httpx.ByteStream(b"not gzip"),
    )


def test_undecodable_body_is_network_error() -> None:
    with pytest.raises(NetworkError):
        asyncio.run(_client(_broken_gzip).fetch_notifications(1, 10))


def test_redirect_loop_is_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("redirect loop", request=request)

    with pytest.raises(NetworkError):
        asyncio.run(_client(handler).fetch_notifications(1, 10))


def test_malformed_subject_url_is_network_error() -> None:
    client = GitHubClient("secret-token", transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
    with pytest.raises(NetworkError):
        asyncio.run(client.fetch_subject_details("http://[::1"))
