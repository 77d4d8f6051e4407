"""Shared notification formatting helpers.

Keeping formatting here lets any frontend show the same link, participants
and status text for a thread.
"""

from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import urlsplit

from core.models import NotificationThread, RuntimeSnapshot, SubjectDetails, UserRef, ViewState

MAX_PARTICIPANTS = 5


def api_to_web_url(api_url: Optional[str]) -> Optional[str]:
    """Best-effort conversion of a few common API URLs to github.com pages."""

    if not api_url:
        return None

    parts = urlsplit(api_url)
    segments = [segment for segment in parts.path.split("/") if segment]
    if parts.netloc == "api.github.com" and len(segments) >= 2 and segments[0] == "repos":
        web_path = "/" + "/".join(segments[1:])
        web_path = web_path.replace("/pulls/", "/pull/").replace("/commits/", "/commit/")
        return f"https://github.com{web_path}"

    return api_url


def preferred_web_url(thread: NotificationThread, details: Optional[SubjectDetails] = None) -> Optional[str]:
    """Return the URL a click on the thread should open."""

    if details is not None and details.html_url:
        return details.html_url
    return api_to_web_url(thread.subject_url)


def display_participants(
    thread: NotificationThread,
    details: Optional[SubjectDetails] = None,
    limit: int = MAX_PARTICIPANTS,
) -> list[UserRef]:
    """Participants to show for a thread, falling back to the repo owner."""

    if details is not None and details.participants:
        return list(details.participants[:limit])
    if thread.repository_owner is not None:
        return [thread.repository_owner]
    return []


def format_thread(thread: NotificationThread, details: Optional[SubjectDetails] = None) -> str:
    """Return a compact multi-line block for one thread."""

    marker = "*" if thread.unread else " "
    updated = thread.updated_at.astimezone().strftime("%Y-%m-%d %H:%M")
    lines = [
        f"{marker} {thread.repository_full_name} - {thread.subject_type} ({updated})",
        f"  {thread.subject_title}",
    ]
    people = display_participants(thread, details)
    if people:
        lines.append("  " + ", ".join(f"@{user.login}" for user in people))
    url = preferred_web_url(thread, details)
    if url:
        lines.append(f"  {url}")
    return "\n".join(lines)


def format_snapshot(snapshot: RuntimeSnapshot, details: Optional[Mapping[str, SubjectDetails]] = None) -> str:
    """Render the status block shown after each update.

    Exactly one of the error message, the empty state or the list appears.
    """

    details = snapshot.subject_details if details is None else details
    lines = []
    if snapshot.last_poll is not None:
        lines.append(f"Updated {snapshot.last_poll.astimezone().strftime('%Y-%m-%d %H:%M:%S')}")

    if snapshot.view_state is not ViewState.LIST:
        lines.append(snapshot.status_text)
        return "\n".join(lines)

    for thread in snapshot.notifications:
        lines.append(format_thread(thread, details.get(thread.id)))
    if snapshot.has_more:
        lines.append("(more available)")
    if snapshot.load_more_error:
        lines.append(f"Load more failed: {snapshot.load_more_error}")
    return "\n".join(lines)
