"""Core domain models.

These dataclasses are shared across the core and adapters so the polling
logic never depends on raw API payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Tuple

EMPTY_STATE_TEXT = "All caught up!"


@dataclass(frozen=True)
class UserRef:
    """A GitHub account. Two refs with the same id are the same user."""

    id: int
    login: str
    avatar_url: str


@dataclass(frozen=True)
class NotificationThread:
    """One notification thread as returned by the feed."""

    id: str
    repository_full_name: str
    repository_owner: Optional[UserRef]
    subject_title: str
    subject_type: str
    subject_url: Optional[str]
    subject_latest_comment_url: Optional[str]
    reason: str
    unread: bool
    updated_at: datetime
    last_read_at: Optional[datetime]
    url: str
    subscription_url: Optional[str] = None


@dataclass(frozen=True)
class SubjectDetails:
    """Enrichment fetched from a thread's subject resource."""

    html_url: Optional[str]
    participants: Tuple[UserRef, ...] = ()


@dataclass(frozen=True)
class PageResult:
    """Normalized outcome of fetching one page of notifications.

    success and failure are mutually exclusive: a failed page always has no
    threads, has_next False and a non-empty error_message.
    """

    threads: Tuple[NotificationThread, ...]
    success: bool
    has_next: bool
    error_message: str = ""

    @classmethod
    def ok(cls, threads, has_next: bool) -> "PageResult":
        return cls(threads=tuple(threads), success=True, has_next=has_next)

    @classmethod
    def failed(cls, error_message: str) -> "PageResult":
        return cls(threads=(), success=False, has_next=False, error_message=error_message)


class PollState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    SUPERSEDED = "superseded"


class ViewState(str, Enum):
    ERROR = "error"
    EMPTY = "empty"
    LIST = "list"


@dataclass(frozen=True)
class RuntimeSnapshot:
    """Read-only view of everything the runtime publishes to observers."""

    notifications: Tuple[NotificationThread, ...]
    subject_details: Mapping[str, SubjectDetails]
    message: str
    last_poll: Optional[datetime]
    is_loading_more: bool
    has_more: bool
    load_more_error: str
    poll_state: PollState

    @property
    def view_state(self) -> ViewState:
        # Exactly one of error, empty-state and list is shown at a time.
        if self.message:
            return ViewState.ERROR
        if not self.notifications:
            return ViewState.EMPTY
        return ViewState.LIST

    @property
    def status_text(self) -> str:
        view = self.view_state
        if view is ViewState.ERROR:
            return self.message
        if view is ViewState.EMPTY:
            return EMPTY_STATE_TEXT
        return f"{len(self.notifications)} notification(s)"
