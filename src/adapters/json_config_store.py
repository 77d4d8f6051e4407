"""JSON configuration store adapter.

Implements the core ConfigStorePort on top of config.json. Only the
"github" section is owned here; every other section is preserved on save.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from core.config import DEFAULT_INTERVAL_SECONDS, DEFAULT_PAGE_SIZE, PollConfiguration

LOGGER = logging.getLogger(__name__)

SECTION = "github"


class JsonConfigStore:
    """Read and write the poll configuration inside config.json."""

    def __init__(self, path: "str | Path", fallback_token: Optional[str] = None) -> None:
        self._path = Path(path)
        self._fallback_token = fallback_token

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        loaded = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(loaded, dict):
            raise ValueError(f"config root must be an object: {self._path}")
        return loaded

    def load(self) -> PollConfiguration:
        """Load and clamp the persisted configuration.

        The token falls back to the GITHUB_TOKEN environment value when the
        file does not hold one.
        """

        section = self._read().get(SECTION, {}) or {}
        token = section.get("token") or self._fallback_token or ""
        config = PollConfiguration.from_raw(
            token=token,
            interval_seconds=section.get("interval_seconds", DEFAULT_INTERVAL_SECONDS),
            page_size=section.get("page_size", DEFAULT_PAGE_SIZE),
        )
        LOGGER.debug(
            "Loaded poll configuration (interval=%ss, page_size=%s, token=%s)",
            config.interval_seconds,
            config.page_size,
            "set" if config.token else "missing",
        )
        return config

    def save(self, config: PollConfiguration) -> None:
        data = self._read()
        data[SECTION] = {
            "token": config.token,
            "interval_seconds": config.interval_seconds,
            "page_size": config.page_size,
        }
        directory = self._path.parent
        if str(directory):
            os.makedirs(directory, exist_ok=True)
        self._path.write_text(
            json.dumps(data, indent=2, ensure_ascii=True) + "\n",
            encoding="utf-8",
        )
