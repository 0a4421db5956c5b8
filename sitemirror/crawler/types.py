"""Core type definitions for the mirror crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path


class ResourceKind(str, Enum):
    """How a discovered link is treated by the scheduler."""

    PAGE = "page"
    AUXILIARY = "auxiliary"


class ContentKind(str, Enum):
    """Whether a response's content type marks it as an HTML document."""

    HTML = "html"
    OTHER = "other"
    UNKNOWN = "unknown"


class FetchStatus(str, Enum):
    """Tagged result of one download attempt."""

    SAVED = "saved"
    SKIPPED_DUPLICATE_VISIT = "skipped_duplicate_visit"
    SKIPPED_DUPLICATE_PATH = "skipped_duplicate_path"
    SKIPPED_OUT_OF_DOMAIN = "skipped_out_of_domain"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    FAILED_HTTP_STATUS = "failed_http_status"
    FAILED_TRANSIENT = "failed_transient"
    FAILED_OTHER = "failed_other"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for summaries."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def infer_content_kind(content_type: str | None) -> ContentKind:
    """Infer coarse content kind from an HTTP content type header."""

    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()

    if normalized in {"text/html", "application/xhtml+xml"}:
        return ContentKind.HTML
    if normalized:
        return ContentKind.OTHER
    return ContentKind.UNKNOWN


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A download candidate tracked by the frontier and scheduler.

    `key` is the case-folded identity claimed in the visited set. `destination`
    overrides the mapped path (collision-safe stylesheet references), and
    `drilldown` is False for resources that must not be parsed further.
    """

    url: str
    key: str
    kind: ResourceKind = ResourceKind.PAGE
    destination: Path | None = None
    drilldown: bool = True
    attempt: int = 0


@dataclass(slots=True)
class FetchResult:
    """Raw result of one HTTP GET, before anything is written to disk."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    error: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.body is not None
        )


@dataclass(slots=True)
class FetchOutcome:
    """Classified result of downloading one URL to one destination path."""

    status: FetchStatus
    url: str
    path: Path | None = None
    status_code: int | None = None
    message: str | None = None
    final_url: str | None = None
    content_type: str | None = None
    body: bytes | None = None

    @property
    def saved(self) -> bool:
        return self.status == FetchStatus.SAVED

    @property
    def retryable(self) -> bool:
        return self.status == FetchStatus.FAILED_TRANSIENT


@dataclass(slots=True)
class RunStatistics:
    """Mutable counters and logs used for the end-of-run summary."""

    downloads: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "downloads": self.downloads,
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "warning_count": len(self.warnings),
            "error_count": len(self.errors),
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "ContentKind",
    "FetchOutcome",
    "FetchResult",
    "FetchStatus",
    "FrontierItem",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "ResourceKind",
    "RunStatistics",
    "infer_content_kind",
    "utc_now_iso",
]
