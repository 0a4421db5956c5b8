"""End-to-end mirror run orchestration."""

from __future__ import annotations

import time
from typing import Any

from .config import MirrorConfig
from .fetcher import Fetcher
from .frontier import Frontier
from .output import OutputLogger
from .parsers import CSSParser, HTMLParser
from .scheduler import CrawlScheduler
from .stats import StatsCollector
from .storage import Storage


class Pipeline:
    """Owns the crawl state, drives the scheduler, and reports the summary."""

    def __init__(
        self,
        config: MirrorConfig,
        *,
        logger: OutputLogger | None = None,
        storage: Storage | None = None,
        frontier: Frontier | None = None,
        fetcher: Fetcher | None = None,
        stats: StatsCollector | None = None,
        html_parser: HTMLParser | None = None,
        css_parser: CSSParser | None = None,
    ) -> None:
        self.config = config

        self.logger = logger or OutputLogger()
        self.storage = storage or Storage(config.output_dir)
        self.frontier = frontier or Frontier()
        self.stats = stats or StatsCollector()
        self.fetcher = fetcher or Fetcher(
            config,
            storage=self.storage,
            frontier=self.frontier,
            stats=self.stats,
            logger=self.logger,
        )
        self.scheduler = CrawlScheduler(
            config,
            frontier=self.frontier,
            fetcher=self.fetcher,
            storage=self.storage,
            stats=self.stats,
            logger=self.logger,
            html_parser=html_parser,
            css_parser=css_parser,
        )

    def run(self) -> dict[str, Any]:
        """Mirror the configured site and return the run summary.

        Raises before any request is made when the output root is unusable.
        """

        self.storage.prepare()
        start_url = self.config.start_url

        self.logger.emphasis(
            f"Mirroring {start_url} into {self.storage.output_dir} "
            f"with {self.config.workers} worker(s)"
        )

        started = time.perf_counter()
        self.scheduler.seed(start_url)
        self.scheduler.run()
        elapsed_seconds = time.perf_counter() - started

        self.stats.finish()
        summary = self._build_summary(elapsed_seconds)
        self._log_summary(summary)
        return summary

    def _build_summary(self, elapsed_seconds: float) -> dict[str, Any]:
        warnings = self.stats.warnings
        errors = self.stats.errors
        return {
            "base_url": self.config.base_url,
            "output_dir": str(self.storage.output_dir),
            "downloads": self.stats.downloads,
            "warning_count": len(warnings),
            "warnings": warnings,
            "error_count": len(errors),
            "errors": errors,
            "elapsed_seconds": elapsed_seconds,
            "cycles": self.scheduler.cycles,
            "stats": self.stats.to_json(),
        }

    def _log_summary(self, summary: dict[str, Any]) -> None:
        self.logger.emphasis("=== Mirror Complete ===")
        self.logger.success(f"Downloaded {summary['downloads']} file(s)")

        if summary["warnings"]:
            self.logger.warning(f"{summary['warning_count']} warning(s):")
            for message in summary["warnings"]:
                self.logger.warning(f"  {message}")

        if summary["errors"]:
            self.logger.error(f"{summary['error_count']} error(s):")
            for message in summary["errors"]:
                self.logger.error(f"  {message}")

        self.logger.emphasis(f"Elapsed: {_format_duration(summary['elapsed_seconds'])}")


def _format_duration(seconds: float) -> str:
    minutes, secs = divmod(max(0.0, seconds), 60)
    hours, minutes = divmod(int(minutes), 60)
    return f"{hours:02d}:{minutes:02d}:{secs:06.3f}"


__all__ = ["Pipeline"]
