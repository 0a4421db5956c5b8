"""Single-GET resource fetching with outcome classification."""

from __future__ import annotations

import errno
from pathlib import Path

import requests

from .config import MirrorConfig
from .frontier import Frontier
from .output import OutputLogger
from .stats import StatsCollector
from .storage import Storage
from .types import FetchOutcome, FetchResult, FetchStatus
from .url import is_http_url, is_same_host


# errno.ETIMEDOUT plus the Winsock code surfaced on Windows.
TIMEOUT_ERRNOS = frozenset({errno.ETIMEDOUT, 10060})


def is_timeout_error(exc: BaseException) -> bool:
    """Return True when `exc` or anything it wraps is a network timeout.

    requests wraps urllib3 errors which wrap socket errors, so the cause chain
    (and urllib3's `reason` attribute) is walked until a timeout shows up.
    """

    pending: list[BaseException] = [exc]
    seen: set[int] = set()

    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))

        if isinstance(current, (requests.Timeout, TimeoutError)):
            return True
        if isinstance(current, OSError) and current.errno in TIMEOUT_ERRNOS:
            return True

        for linked in (
            current.__cause__,
            current.__context__,
            getattr(current, "reason", None),
            *current.args,
        ):
            if isinstance(linked, BaseException):
                pending.append(linked)

    return False


class Fetcher:
    """Download one URL to one destination path.

    Every call performs its own `requests.get` (no shared session), so the
    fetcher is safe to call from any number of worker threads.
    """

    def __init__(
        self,
        config: MirrorConfig,
        *,
        storage: Storage,
        frontier: Frontier,
        stats: StatsCollector,
        logger: OutputLogger,
    ) -> None:
        self.config = config
        self.storage = storage
        self.frontier = frontier
        self.stats = stats
        self.logger = logger

    def fetch(self, url: str) -> FetchResult:
        """Perform one GET and capture the response or the failure."""

        try:
            response = requests.get(
                url,
                headers=self.config.headers(),
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
            )

            body = response.content if response.content is not None else b""
            return FetchResult(
                requested_url=url,
                final_url=response.url or url,
                status_code=response.status_code,
                content_type=response.headers.get("Content-Type"),
                body=body,
                error=None,
            )
        except Exception as exc:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                content_type=None,
                body=None,
                error=f"{exc.__class__.__name__}: {exc}",
                timed_out=is_timeout_error(exc),
            )

    def download(self, url: str, destination: str | Path) -> FetchOutcome:
        """Fetch `url` and write it to `destination` through the path-dedup gate.

        Transient failures are returned unrecorded; whether they become an
        error or a requeue is the scheduler's call.
        """

        path = Path(destination)

        if not is_http_url(url):
            outcome = FetchOutcome(FetchStatus.SKIPPED_INVALID_URL, url=url, path=path)
            self.logger.insignificant(f"Skipping '{url}': not a valid absolute url")
            return self._finish(outcome)

        if not is_same_host(url, self.config.base_host):
            outcome = FetchOutcome(FetchStatus.SKIPPED_OUT_OF_DOMAIN, url=url, path=path)
            self.logger.insignificant(f"Skipping '{url}': not on {self.config.base_host}")
            return self._finish(outcome)

        result = self.fetch(url)

        if result.error is not None:
            if result.timed_out:
                return self._finish(
                    FetchOutcome(
                        FetchStatus.FAILED_TRANSIENT,
                        url=url,
                        path=path,
                        message=result.error,
                    )
                )

            message = f"Failed to download {url}: {result.error}"
            self.stats.record_error(message)
            self.logger.error(message)
            return self._finish(
                FetchOutcome(FetchStatus.FAILED_OTHER, url=url, path=path, message=result.error)
            )

        if not result.ok:
            message = f"Failed to download {url}: Server returned: HTTP {result.status_code}"
            self.stats.record_error(message)
            self.logger.error(message)
            return self._finish(
                FetchOutcome(
                    FetchStatus.FAILED_HTTP_STATUS,
                    url=url,
                    path=path,
                    status_code=result.status_code,
                    message=message,
                    final_url=result.final_url,
                )
            )

        final_url = result.final_url or url
        if not is_same_host(final_url, self.config.base_host):
            message = f"Not saving {url}: redirected off-site to {final_url}"
            self.stats.record_warning(message)
            self.logger.warning(message)
            return self._finish(
                FetchOutcome(
                    FetchStatus.SKIPPED_OUT_OF_DOMAIN,
                    url=url,
                    path=path,
                    status_code=result.status_code,
                    message=message,
                    final_url=final_url,
                )
            )

        if not self.frontier.try_claim_path(path):
            self.logger.insignificant(f"Already saved {path}, skipping {url}")
            return self._finish(
                FetchOutcome(
                    FetchStatus.SKIPPED_DUPLICATE_PATH,
                    url=url,
                    path=path,
                    status_code=result.status_code,
                    final_url=final_url,
                )
            )

        body = result.body or b""
        try:
            self.storage.save_file(body, path)
        except OSError as exc:
            message = f"Failed to save {url} to {path}: {exc.__class__.__name__}: {exc}"
            self.stats.record_error(message)
            self.logger.error(message)
            return self._finish(
                FetchOutcome(FetchStatus.FAILED_OTHER, url=url, path=path, message=message)
            )

        self.stats.record_saved(len(body))
        self.logger.success(f"Downloaded {url}")
        return self._finish(
            FetchOutcome(
                FetchStatus.SAVED,
                url=url,
                path=path,
                status_code=result.status_code,
                final_url=final_url,
                content_type=result.content_type,
                body=body,
            )
        )

    def _finish(self, outcome: FetchOutcome) -> FetchOutcome:
        self.stats.record_outcome(outcome)
        return outcome


__all__ = ["Fetcher", "TIMEOUT_ERRNOS", "is_timeout_error"]
