"""Default values shared by config, fetcher, and CLI."""

from __future__ import annotations

import os


DEFAULT_OUTPUT_DIR = "_SiteMirror_Output"
DEFAULT_INDEX_FILENAME = "index.html"

DEFAULT_PAGE_EXTENSIONS: frozenset[str] = frozenset({"html", "htm"})
DEFAULT_STYLESHEET_EXTENSIONS: frozenset[str] = frozenset({"css"})

DEFAULT_RETRY_ON_TIMEOUT = False
DEFAULT_MAX_TIMEOUT_RETRIES: int | None = None
DEFAULT_TIMEOUT_SECONDS = 30.0

DEFAULT_USER_AGENT = "sitemirror/0.1 (+https://pypi.org/project/sitemirror/)"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.7",
}

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

# Length of the hex token spliced into collision-safe filenames.
RENAME_TOKEN_LENGTH = 12


def default_worker_count() -> int:
    """Return the host logical processor count, never less than one."""

    return max(1, os.cpu_count() or 1)
