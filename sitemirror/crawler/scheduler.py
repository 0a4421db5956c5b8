"""Bounded-parallel crawl rounds over the frontier and auxiliary resources."""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
import threading
from typing import Callable, Sequence

from .config import MirrorConfig
from .fetcher import Fetcher
from .frontier import Frontier
from .output import OutputLogger
from .parsers import CSSParser, HTMLParser
from .stats import StatsCollector
from .storage import Storage
from .types import (
    ContentKind,
    FetchOutcome,
    FetchStatus,
    FrontierItem,
    ResourceKind,
    infer_content_kind,
)
from .url import (
    LinkStatus,
    ResolvedLink,
    crawl_key,
    has_query,
    normalize_link,
    resolve_url,
    visit_key,
)


class SchedulerState(str, Enum):
    """Phases of one run."""

    DRAINING_FRONTIER = "draining_frontier"
    DRAINING_AUXILIARY = "draining_auxiliary"
    IDLE = "idle"


class CrawlScheduler:
    """Drive the frontier and auxiliary phases until both are empty.

    Each round launches one thread per item (at most `config.workers`) and
    joins all of them before the next round is dequeued.
    """

    def __init__(
        self,
        config: MirrorConfig,
        *,
        frontier: Frontier,
        fetcher: Fetcher,
        storage: Storage,
        stats: StatsCollector,
        logger: OutputLogger,
        html_parser: HTMLParser | None = None,
        css_parser: CSSParser | None = None,
    ) -> None:
        self.config = config
        self.frontier = frontier
        self.fetcher = fetcher
        self.storage = storage
        self.stats = stats
        self.logger = logger
        self.html_parser = html_parser or HTMLParser()
        self.css_parser = css_parser or CSSParser()

        self.state = SchedulerState.IDLE
        self.cycles = 0

    def seed(self, url: str) -> FrontierItem:
        """Enqueue the starting URL as a page."""

        key = crawl_key(url)
        if key is None:
            raise ValueError(f"Cannot seed frontier with {url!r}")
        item = FrontierItem(url=key, key=visit_key(key), kind=ResourceKind.PAGE)
        self.frontier.enqueue(item)
        return item

    def run(self) -> None:
        """Run two-phase cycles until the frontier and auxiliary set are empty."""

        while not self.frontier.empty() or self.frontier.has_auxiliary():
            self.cycles += 1

            self.state = SchedulerState.DRAINING_FRONTIER
            self._drain_frontier()

            self.state = SchedulerState.DRAINING_AUXILIARY
            self._drain_auxiliary()

            if not self.frontier.empty():
                self.logger.normal(
                    f"Frontier reopened with {self.frontier.qsize()} pending item(s), starting another pass"
                )

        self.state = SchedulerState.IDLE
        self.stats.record_frontier_snapshot(self.frontier.snapshot())

    def _drain_frontier(self) -> None:
        while True:
            batch = self.frontier.dequeue_batch(self.config.workers)
            if not batch:
                return
            self._run_round(SchedulerState.DRAINING_FRONTIER, batch)

    def _drain_auxiliary(self) -> None:
        urls = self.frontier.drain_auxiliary()
        if not urls:
            return

        self.logger.emphasis(f"Downloading {len(urls)} auxiliary resource(s)")
        items = [
            FrontierItem(url=url, key=visit_key(url), kind=ResourceKind.AUXILIARY)
            for url in urls
        ]
        size = self.config.workers
        for start in range(0, len(items), size):
            self._run_round(SchedulerState.DRAINING_AUXILIARY, items[start : start + size])

    def _run_round(self, phase: SchedulerState, items: Sequence[FrontierItem]) -> None:
        self.stats.record_batch(phase.value, len(items))

        workers = [
            threading.Thread(
                target=self._guarded,
                args=(self.process_item, item),
                name=f"mirror-worker-{idx}",
                daemon=True,
            )
            for idx, item in enumerate(items)
        ]

        for worker in workers:
            worker.start()

        for worker in workers:
            worker.join()

    def _guarded(self, target: Callable[[FrontierItem], object], item: FrontierItem) -> None:
        try:
            target(item)
        except Exception as exc:
            message = f"Unexpected failure processing {item.url}: {exc.__class__.__name__}: {exc}"
            self.stats.record_error(message)
            self.logger.error(message)

    def process_item(self, item: FrontierItem) -> FetchOutcome:
        """Claim, download, and (for pages and stylesheets) drill into one item."""

        outcome = self._visit(item)

        if outcome.retryable:
            self._handle_transient_failure(item, outcome)
            return outcome

        if outcome.saved and item.drilldown:
            self._drilldown(item, outcome)
        return outcome

    def _visit(self, item: FrontierItem) -> FetchOutcome:
        if not self.frontier.try_claim(item.key):
            outcome = FetchOutcome(FetchStatus.SKIPPED_DUPLICATE_VISIT, url=item.url)
            self.stats.record_outcome(outcome)
            return outcome

        try:
            destination = item.destination or self.storage.map_url_to_local_path(item.url)
        except ValueError as exc:
            self.logger.insignificant(f"Skipping '{item.url}': {exc}")
            outcome = FetchOutcome(FetchStatus.SKIPPED_INVALID_URL, url=item.url, message=str(exc))
            self.stats.record_outcome(outcome)
            return outcome

        return self.fetcher.download(item.url, destination)

    def _handle_transient_failure(self, item: FrontierItem, outcome: FetchOutcome) -> None:
        if not self.config.retry_on_timeout:
            message = f"Timed out downloading {item.url}: {outcome.message}"
            self.stats.record_error(message)
            self.logger.error(message)
            return

        if not self._can_requeue(item):
            message = f"Timed out downloading {item.url}, giving up after {item.attempt} retries"
            self.stats.record_error(message)
            self.logger.error(message)
            return

        retry = replace(item, attempt=item.attempt + 1)
        self.frontier.release(item.key)
        self.frontier.enqueue(retry)
        self.stats.increment("timeout_requeues")

        message = f"Timed out downloading {item.url}, requeued (retry {retry.attempt})"
        self.stats.record_warning(message)
        self.logger.warning(message)

    def _can_requeue(self, item: FrontierItem) -> bool:
        ceiling = self.config.max_timeout_retries
        return self.config.retry_on_timeout and (ceiling is None or item.attempt < ceiling)

    def _drilldown(self, item: FrontierItem, outcome: FetchOutcome) -> None:
        document_url = outcome.final_url or item.url

        if self.config.is_stylesheet(item.url):
            self._rewrite_stylesheet(item, outcome, document_url)
            return

        # Auxiliary resources are stored, never used as crawl roots.
        if item.kind == ResourceKind.PAGE and self._is_page_document(item.url, outcome.content_type):
            self._expand_page_links(outcome, document_url)

    def _is_page_document(self, url: str, content_type: str | None) -> bool:
        if self.config.resource_kind(url) != ResourceKind.PAGE:
            return False
        if self.config.is_page_extension(url):
            return True
        return infer_content_kind(content_type) in {ContentKind.HTML, ContentKind.UNKNOWN}

    def _expand_page_links(self, outcome: FetchOutcome, document_url: str) -> None:
        links = self.html_parser.extract_links(outcome.body or b"")

        base_url = document_url
        if links.base_href:
            base_url = resolve_url(document_url, links.base_href) or document_url

        for href in links.page_links:
            self._route_link(href, base_url, ResourceKind.PAGE)
        for href in links.auxiliary_links:
            self._route_link(href, base_url, ResourceKind.AUXILIARY)

    def _resolve(self, href: str, document_url: str) -> ResolvedLink:
        resolved = normalize_link(href, document_url, self.config.base_host)
        if resolved.status == LinkStatus.INVALID:
            self.stats.increment("links_skipped_invalid")
            self.logger.insignificant(f"Ignoring link '{href}' in {document_url}: not a valid url")
        elif resolved.status == LinkStatus.OUT_OF_DOMAIN:
            self.stats.increment("links_skipped_cross_domain")
            self.logger.insignificant(
                f"Ignoring cross-domain link '{resolved.url}' in {document_url}"
            )
        return resolved

    def _route_link(self, href: str, document_url: str, kind: ResourceKind) -> None:
        resolved = self._resolve(href, document_url)
        if not resolved.ok or resolved.crawl_key is None:
            return

        if kind == ResourceKind.AUXILIARY:
            self.frontier.add_auxiliary(resolved.crawl_key)
            return

        self.frontier.enqueue(
            FrontierItem(
                url=resolved.crawl_key,
                key=visit_key(resolved.crawl_key),
                kind=ResourceKind.PAGE,
            )
        )

    def _rewrite_stylesheet(self, item: FrontierItem, outcome: FetchOutcome, document_url: str) -> None:
        if outcome.path is None:
            return

        text = self.css_parser.decode(outcome.body or b"")

        def replace_reference(reference: str) -> str:
            return self._process_stylesheet_reference(reference, document_url)

        rewritten = self.css_parser.rewrite(text, replace_reference)
        if rewritten != text:
            self.storage.replace_text(outcome.path, rewritten, encoding=self.css_parser.encoding)
            self.logger.normal(f"Rewrote query-string references in {outcome.path}")

    def _process_stylesheet_reference(self, reference: str, stylesheet_url: str) -> str:
        resolved = self._resolve(reference, stylesheet_url)
        if not resolved.ok or resolved.url is None or resolved.crawl_key is None:
            return reference

        if not has_query(resolved.url):
            self.process_item(
                FrontierItem(
                    url=resolved.crawl_key,
                    key=visit_key(resolved.crawl_key),
                    kind=ResourceKind.AUXILIARY,
                    drilldown=False,
                )
            )
            return reference

        key = visit_key(resolved.url)
        token = self.frontier.rename_token_for(key, self.storage.new_rename_token())
        mapped = self.storage.map_url_to_local_path(resolved.crawl_key)
        derived_reference, derived_path = self.storage.modify_paths(reference, mapped, token=token)

        item = FrontierItem(
            url=resolved.url,
            key=key,
            kind=ResourceKind.AUXILIARY,
            destination=derived_path,
            drilldown=False,
        )
        outcome = self.process_item(item)
        if self._derived_file_expected(item, outcome):
            return derived_reference

        self.logger.insignificant(f"Keeping '{reference}' in {stylesheet_url}: {derived_path} was not written")
        return reference

    def _derived_file_expected(self, item: FrontierItem, outcome: FetchOutcome) -> bool:
        """True when the renamed file exists now or will after a timeout retry."""

        if outcome.saved:
            return True
        if outcome.retryable:
            return self._can_requeue(item)
        return item.destination is not None and self.frontier.is_path_claimed(item.destination)


__all__ = ["CrawlScheduler", "SchedulerState"]
