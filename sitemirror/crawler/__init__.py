"""Crawler package: config, shared types, and mirror engine components."""

from .config import MirrorConfig, load_config, normalize_extensions, save_config
from .fetcher import Fetcher, is_timeout_error
from .frontier import Frontier
from .output import ConsoleHandler, MessageType, OutputLogger, PrefixFormatter, setup_logging
from .parsers import CSSParser, ExtractedLinks, HTMLParser
from .pipeline import Pipeline
from .scheduler import CrawlScheduler, SchedulerState
from .stats import StatsCollector
from .storage import Storage
from .types import (
    ContentKind,
    FetchOutcome,
    FetchResult,
    FetchStatus,
    FrontierItem,
    ResourceKind,
    RunStatistics,
    infer_content_kind,
    utc_now_iso,
)
from .url import (
    LinkStatus,
    ResolvedLink,
    crawl_key,
    has_query,
    host_from_url,
    normalize_link,
    resolve_url,
)

__all__ = [
    "CSSParser",
    "ConsoleHandler",
    "ContentKind",
    "CrawlScheduler",
    "ExtractedLinks",
    "FetchOutcome",
    "FetchResult",
    "FetchStatus",
    "Fetcher",
    "Frontier",
    "FrontierItem",
    "HTMLParser",
    "LinkStatus",
    "MessageType",
    "MirrorConfig",
    "OutputLogger",
    "Pipeline",
    "PrefixFormatter",
    "ResolvedLink",
    "ResourceKind",
    "RunStatistics",
    "SchedulerState",
    "StatsCollector",
    "Storage",
    "crawl_key",
    "has_query",
    "host_from_url",
    "infer_content_kind",
    "is_timeout_error",
    "load_config",
    "normalize_extensions",
    "normalize_link",
    "resolve_url",
    "save_config",
    "setup_logging",
    "utc_now_iso",
]
