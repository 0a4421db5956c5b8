from __future__ import annotations

from dataclasses import dataclass
import threading
import time
from typing import Any, Callable

import pytest
import requests

from sitemirror.crawler import MirrorConfig, OutputLogger, Pipeline
from sitemirror.crawler import fetcher as fetcher_module


@dataclass
class FakeRoute:
    body: bytes = b""
    status: int = 200
    content_type: str | None = "text/html; charset=utf-8"
    final_url: str | None = None


class FakeWeb:
    """In-memory stand-in for `requests.get` with concurrency tracking."""

    def __init__(self) -> None:
        self.routes: dict[str, list[FakeRoute | BaseException]] = {}
        self.calls: list[str] = []
        self.delay = 0.0
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def add(
        self,
        url: str,
        body: bytes | str = b"",
        *,
        status: int = 200,
        content_type: str | None = "text/html; charset=utf-8",
        final_url: str | None = None,
    ) -> None:
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[self._key(url)] = [FakeRoute(body, status, content_type, final_url)]

    def add_sequence(self, url: str, responses: list[FakeRoute | BaseException]) -> None:
        """Serve responses in order; the last one repeats."""

        self.routes[self._key(url)] = list(responses)

    def calls_for(self, url: str) -> int:
        key = self._key(url)
        with self._lock:
            return sum(1 for call in self.calls if self._key(call) == key)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        with self._lock:
            self.calls.append(url)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            return self._respond(url)
        finally:
            with self._lock:
                self.active -= 1

    def _respond(self, url: str) -> requests.Response:
        with self._lock:
            queue = self.routes.get(self._key(url))
            if not queue:
                route: FakeRoute | BaseException = FakeRoute(b"not found", 404, "text/plain")
            elif len(queue) > 1:
                route = queue.pop(0)
            else:
                route = queue[0]

        if isinstance(route, BaseException):
            raise route

        response = requests.Response()
        response.status_code = route.status
        response._content = route.body
        if route.content_type is not None:
            response.headers["Content-Type"] = route.content_type
        response.url = route.final_url or url
        response.encoding = "utf-8"
        return response

    @staticmethod
    def _key(url: str) -> str:
        return url.rstrip("/")


@pytest.fixture
def fake_web(monkeypatch: pytest.MonkeyPatch) -> FakeWeb:
    web = FakeWeb()
    monkeypatch.setattr(fetcher_module.requests, "get", web.get)
    return web


@pytest.fixture
def make_pipeline(tmp_path) -> Callable[..., Pipeline]:
    def factory(base_url: str = "https://example.test/", **overrides: Any) -> Pipeline:
        overrides.setdefault("output_dir", str(tmp_path / "out"))
        overrides.setdefault("workers", 2)
        config = MirrorConfig(base_url=base_url, **overrides)
        return Pipeline(config, logger=OutputLogger("sitemirror.tests"))

    return factory
