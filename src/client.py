"""GitHub API client factory for gitstatus.

The runtime asks for a fresh client whenever the token changes, so the
factory is a plain callable rather than a long-lived session.
"""

from __future__ import annotations

import logging

from adapters.github_client import GitHubClient
from core.ports import ClientFactory


def build_client_factory(api_base_url: str) -> ClientFactory:
    """Return a factory that binds GitHubClient instances to a token."""

    logging.getLogger(__name__).info("Using GitHub API at %s", api_base_url)

    def factory(token: str) -> GitHubClient:
        return GitHubClient(token, base_url=api_base_url)

    return factory
