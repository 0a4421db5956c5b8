"""URL normalization, domain filtering, and crawl-key helpers."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence
from urllib.parse import quote, urljoin, urlsplit, urlunsplit


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")


class LinkStatus(str, Enum):
    """Result status for normalizing one discovered link."""

    OK = "ok"
    INVALID = "invalid"
    OUT_OF_DOMAIN = "out_of_domain"


@dataclass(frozen=True, slots=True)
class ResolvedLink:
    """Outcome of resolving a raw link against the document it was found in.

    `url` keeps the query string (stylesheet references need it to tell
    cache-busting variants apart); `crawl_key` is the canonical form used for
    following links.
    """

    status: LinkStatus
    raw: str
    url: str | None = None
    crawl_key: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == LinkStatus.OK


def host_from_url(url: str) -> str:
    """Extract the lower-cased host from a URL, or an empty string."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return ""
    return (parsed.hostname or "").strip().lower().strip(".")


def is_http_url(url: str, allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES) -> bool:
    """Return True if URL is absolute and has an allowed HTTP-like scheme."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return False
    if not parsed.scheme or not parsed.netloc:
        return False
    return parsed.scheme.lower() in {scheme.lower() for scheme in allowed_schemes}


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url) -> str:  # urllib.parse.SplitResult
    host = (parsed_url.hostname or "").lower()
    if not host:
        return parsed_url.netloc.lower()

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    port = parsed_url.port
    if port is not None and not _has_default_port(parsed_url.scheme.lower(), port):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str) -> str:
    if not path:
        return ""

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)

    if normalized in {"", "."}:
        return ""
    if collapsed.startswith("/") and not normalized.startswith("/"):
        normalized = "/" + normalized

    return normalized.rstrip("/\\")


def resolve_url(
    base_url: str,
    href: str | None,
    *,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str | None:
    """Resolve a possibly relative link against `base_url`.

    The fragment is dropped, the query string is kept. Returns `None` for
    malformed links and non-HTTP schemes.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(base_url, candidate)
        parsed = urlsplit(absolute)
        _ = parsed.port  # raises ValueError for garbage ports
    except ValueError:
        return None

    if not is_http_url(absolute, allowed_schemes=allowed_schemes):
        return None
    if not parsed.hostname:
        return None

    return urlunsplit((parsed.scheme.lower(), parsed.netloc, parsed.path, parsed.query, ""))


def crawl_key(url: str) -> str | None:
    """Canonicalize an absolute URL into the key used for link following.

    Query string and fragment are stripped and trailing separators trimmed, so
    `/page?x=1` and `/page/?x=2` collapse into one crawl entity.
    """

    try:
        parsed = urlsplit(url.strip())
        netloc = _normalize_netloc(parsed)
    except ValueError:
        return None

    if not parsed.scheme or not netloc:
        return None

    return urlunsplit((parsed.scheme.lower(), netloc, _normalize_path(parsed.path), "", ""))


def visit_key(url: str) -> str:
    """Case-insensitive identity used by the visited set."""

    return url.casefold()


def has_query(url: str) -> bool:
    """Return True when the URL carries a non-empty query string."""

    try:
        return bool(urlsplit(url).query)
    except ValueError:
        return False


def url_extension(url: str) -> str:
    """Return the lower-cased extension (without dot) of the URL's last path segment."""

    try:
        path = urlsplit(url).path
    except ValueError:
        return ""
    name = path.rstrip("/").rsplit("/", maxsplit=1)[-1]
    _, ext = posixpath.splitext(name)
    return ext.lstrip(".").lower()


def is_same_host(url: str, base_host: str) -> bool:
    """Case-insensitive host comparison against the configured base host."""

    host = host_from_url(url)
    return bool(host) and host == base_host.strip().lower().strip(".")


def normalize_link(raw: str | None, document_url: str, base_host: str) -> ResolvedLink:
    """Resolve, domain-filter, and canonicalize one discovered link."""

    raw_text = raw or ""
    resolved = resolve_url(document_url, raw)
    if resolved is None:
        return ResolvedLink(LinkStatus.INVALID, raw=raw_text)

    if not is_same_host(resolved, base_host):
        return ResolvedLink(LinkStatus.OUT_OF_DOMAIN, raw=raw_text, url=resolved)

    key = crawl_key(resolved)
    if key is None:
        return ResolvedLink(LinkStatus.INVALID, raw=raw_text, url=resolved)

    return ResolvedLink(LinkStatus.OK, raw=raw_text, url=resolved, crawl_key=key)


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "LinkStatus",
    "ResolvedLink",
    "SKIP_HREF_PREFIXES",
    "crawl_key",
    "has_query",
    "host_from_url",
    "is_http_url",
    "is_same_host",
    "normalize_link",
    "resolve_url",
    "url_extension",
    "visit_key",
]
