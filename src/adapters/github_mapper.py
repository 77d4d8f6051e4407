"""GitHub-payload-to-core mapping adapter.

This keeps the REST API's JSON shape out of the core runtime. Every decode
problem raises ResponseDecodeError; nothing here falls back silently.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from core.errors import ResponseDecodeError
from core.models import NotificationThread, SubjectDetails, UserRef

# GitHub emits both forms, so try fractional seconds first.
_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
)


def parse_github_date(value: Any) -> datetime:
    """Parse an ISO 8601 timestamp with or without fractional seconds."""

    if not isinstance(value, str):
        raise ResponseDecodeError(f"Invalid date: {value!r}")
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ResponseDecodeError(f"Invalid date: {value}")


def _require(payload: dict, key: str, kind: type, context: str) -> Any:
    if key not in payload:
        raise ResponseDecodeError(f"{context}: missing key '{key}'")
    value = payload[key]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ResponseDecodeError(f"{context}: '{key}' has unexpected type {type(value).__name__}")
    return value


def _optional_str(payload: dict, key: str, context: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ResponseDecodeError(f"{context}: '{key}' has unexpected type {type(value).__name__}")
    return value


def _require_object(value: Any, context: str) -> dict:
    if not isinstance(value, dict):
        raise ResponseDecodeError(f"{context}: expected an object")
    return value


def user_from_payload(payload: Any) -> UserRef:
    data = _require_object(payload, "user")
    return UserRef(
        id=_require(data, "id", int, "user"),
        login=_require(data, "login", str, "user"),
        avatar_url=_require(data, "avatar_url", str, "user"),
    )


def _optional_user(payload: dict, key: str) -> Optional[UserRef]:
    value = payload.get(key)
    if value is None:
        return None
    return user_from_payload(value)


def _optional_users(payload: dict, key: str) -> list[UserRef]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ResponseDecodeError(f"subject: '{key}' must be a list")
    return [user_from_payload(item) for item in value]


def thread_from_payload(payload: Any) -> NotificationThread:
    """Build a NotificationThread from one /notifications record."""

    data = _require_object(payload, "thread")
    repository = _require(data, "repository", dict, "thread")
    subject = _require(data, "subject", dict, "thread")

    last_read_raw = data.get("last_read_at")
    return NotificationThread(
        id=_require(data, "id", str, "thread"),
        repository_full_name=_require(repository, "full_name", str, "repository"),
        repository_owner=_optional_user(repository, "owner"),
        subject_title=_require(subject, "title", str, "subject"),
        subject_type=_require(subject, "type", str, "subject"),
        subject_url=_optional_str(subject, "url", "subject"),
        subject_latest_comment_url=_optional_str(subject, "latest_comment_url", "subject"),
        reason=_require(data, "reason", str, "thread"),
        unread=_require(data, "unread", bool, "thread"),
        updated_at=parse_github_date(_require(data, "updated_at", str, "thread")),
        last_read_at=parse_github_date(last_read_raw) if last_read_raw is not None else None,
        url=_require(data, "url", str, "thread"),
        subscription_url=_optional_str(data, "subscription_url", "thread"),
    )


def threads_from_payload(payload: Any) -> list[NotificationThread]:
    if not isinstance(payload, list):
        raise ResponseDecodeError("notifications: expected a JSON array")
    return [thread_from_payload(item) for item in payload]


def dedupe_participants(candidates: Iterable[Optional[UserRef]]) -> tuple[UserRef, ...]:
    """Drop missing and repeated users, keeping first-seen order."""

    seen: set[int] = set()
    participants: list[UserRef] = []
    for user in candidates:
        if user is None or user.id in seen:
            continue
        seen.add(user.id)
        participants.append(user)
    return tuple(participants)


def subject_details_from_payload(payload: Any) -> SubjectDetails:
    """Extract the web URL and participants from a subject resource.

    Participant order: primary actor, author, committer, requested
    reviewers, assignees.
    """

    data = _require_object(payload, "subject")
    candidates: list[Optional[UserRef]] = [
        _optional_user(data, "user"),
        _optional_user(data, "author"),
        _optional_user(data, "committer"),
    ]
    candidates.extend(_optional_users(data, "requested_reviewers"))
    candidates.extend(_optional_users(data, "assignees"))
    return SubjectDetails(
        html_url=_optional_str(data, "html_url", "subject"),
        participants=dedupe_participants(candidates),
    )
