"""Typed mirror configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_TIMEOUT_RETRIES,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PAGE_EXTENSIONS,
    DEFAULT_RETRY_ON_TIMEOUT,
    DEFAULT_STYLESHEET_EXTENSIONS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
    default_worker_count,
)
from .types import JSONDict, ResourceKind
from .url import crawl_key, host_from_url, is_http_url, url_extension


def normalize_extensions(values: Iterable[str] | str) -> frozenset[str]:
    """Normalize extension lists: lower case, no leading dot, no blanks.

    Accepts an iterable or a comma separated string such as `"html, .HTM"`.
    """

    if isinstance(values, str):
        values = values.split(",")
    return frozenset(
        item.strip().strip(".").lower()
        for item in values
        if item and item.strip().strip(".")
    )


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


@dataclass(frozen=True, slots=True)
class MirrorConfig:
    """Run-wide mirror configuration, shared read-only by all workers."""

    base_url: str
    output_dir: str = DEFAULT_OUTPUT_DIR
    workers: int = field(default_factory=default_worker_count)

    page_extensions: frozenset[str] = DEFAULT_PAGE_EXTENSIONS
    stylesheet_extensions: frozenset[str] = DEFAULT_STYLESHEET_EXTENSIONS

    retry_on_timeout: bool = DEFAULT_RETRY_ON_TIMEOUT
    max_timeout_retries: int | None = DEFAULT_MAX_TIMEOUT_RETRIES
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    def __post_init__(self) -> None:
        base_url = (self.base_url or "").strip()
        if not base_url:
            raise ValueError("MirrorConfig requires a base URL")
        if not is_http_url(base_url) or not host_from_url(base_url):
            raise ValueError(f"Base URL must be an absolute http(s) URL: {base_url!r}")
        object.__setattr__(self, "base_url", base_url)

        output_dir = str(self.output_dir or "").strip() or DEFAULT_OUTPUT_DIR
        object.__setattr__(self, "output_dir", output_dir)

        object.__setattr__(self, "workers", max(1, int(self.workers)))

        object.__setattr__(self, "page_extensions", normalize_extensions(self.page_extensions))
        object.__setattr__(
            self,
            "stylesheet_extensions",
            normalize_extensions(self.stylesheet_extensions),
        )
        if not self.page_extensions:
            raise ValueError("page_extensions cannot be empty")

        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.max_timeout_retries is not None and self.max_timeout_retries < 0:
            raise ValueError("max_timeout_retries must be >= 0 when set")

    @property
    def base_host(self) -> str:
        """Lower-cased host every crawled URL must share."""

        return host_from_url(self.base_url)

    @property
    def start_url(self) -> str:
        """Canonical crawl key of the base URL."""

        key = crawl_key(self.base_url)
        if key is None:
            raise ValueError(f"Base URL cannot be canonicalized: {self.base_url!r}")
        return key

    def extension_of(self, url: str) -> str:
        return url_extension(url)

    def is_page_extension(self, url: str) -> bool:
        return self.extension_of(url) in self.page_extensions

    def is_stylesheet(self, url: str) -> bool:
        return self.extension_of(url) in self.stylesheet_extensions

    def resource_kind(self, url: str) -> ResourceKind:
        """Classify by extension: page-like or extensionless URLs are pages."""

        extension = self.extension_of(url)
        if not extension or extension in self.page_extensions:
            return ResourceKind.PAGE
        return ResourceKind.AUXILIARY

    def headers(self) -> dict[str, str]:
        """Return request headers for one GET."""

        merged: dict[str, str] = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for reproducibility."""

        return {
            "base_url": self.base_url,
            "output_dir": self.output_dir,
            "workers": self.workers,
            "page_extensions": sorted(self.page_extensions),
            "stylesheet_extensions": sorted(self.stylesheet_extensions),
            "retry_on_timeout": self.retry_on_timeout,
            "max_timeout_retries": self.max_timeout_retries,
            "timeout_seconds": self.timeout_seconds,
            "user_agent": self.user_agent,
            "default_headers": dict(self.default_headers),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MirrorConfig":
        """Build config from a parsed dictionary."""

        if "base_url" not in payload:
            raise ValueError("Config missing required key: 'base_url'")

        kwargs: dict[str, Any] = {"base_url": str(payload["base_url"])}

        if payload.get("output_dir") is not None:
            kwargs["output_dir"] = str(payload["output_dir"])
        if payload.get("workers") is not None:
            kwargs["workers"] = _as_int(payload["workers"], "workers")
        if payload.get("page_extensions") is not None:
            kwargs["page_extensions"] = normalize_extensions(payload["page_extensions"])
        if payload.get("stylesheet_extensions") is not None:
            kwargs["stylesheet_extensions"] = normalize_extensions(
                payload["stylesheet_extensions"]
            )
        if "retry_on_timeout" in payload:
            kwargs["retry_on_timeout"] = _as_bool(payload["retry_on_timeout"], "retry_on_timeout")
        if "max_timeout_retries" in payload:
            kwargs["max_timeout_retries"] = _as_int(
                payload["max_timeout_retries"],
                "max_timeout_retries",
            )
        if payload.get("timeout_seconds") is not None:
            kwargs["timeout_seconds"] = float(payload["timeout_seconds"])
        if payload.get("user_agent") is not None:
            kwargs["user_agent"] = str(payload["user_agent"])
        if payload.get("default_headers") is not None:
            kwargs["default_headers"] = {
                str(k): str(v) for k, v in dict(payload["default_headers"]).items()
            }

        return cls(**kwargs)


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def read_config_payload(path: str | Path) -> dict[str, Any]:
    """Read a JSON/YAML config file into a plain mapping."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")
    return payload


def load_config(path: str | Path) -> MirrorConfig:
    """Load MirrorConfig from JSON/YAML path."""

    return MirrorConfig.from_dict(read_config_payload(path))


def save_config(config: MirrorConfig, path: str | Path) -> None:
    """Save MirrorConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "MirrorConfig",
    "load_config",
    "normalize_extensions",
    "read_config_payload",
    "save_config",
]
