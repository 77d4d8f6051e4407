"""Static configuration for gitstatus.

User-editable settings (poll configuration, logging) live in a single JSON
file for quick edits without touching Python. The GitHub token may also come
from a .env file so it stays out of the repo.
"""

import json
import os

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# The poll configuration section is rewritten by the runtime's setters, so
# the file is created on first save when it does not exist yet.
CONFIG_PATH = os.environ.get("GITSTATUS_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


load_dotenv()

_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Fallback token used when config.json has none.
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")

# API base URL, overridable for GitHub Enterprise hosts.
_github = _CONFIG.get("github", {})
API_BASE_URL = _github.get("api_base_url", "https://api.github.com")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
