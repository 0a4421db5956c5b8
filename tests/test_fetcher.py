from __future__ import annotations

import errno
import socket

import pytest
import requests

from sitemirror.crawler import (
    Fetcher,
    FetchStatus,
    Frontier,
    MirrorConfig,
    OutputLogger,
    StatsCollector,
    Storage,
    is_timeout_error,
)


@pytest.fixture
def fetcher(tmp_path) -> Fetcher:
    config = MirrorConfig(base_url="https://a.test/", output_dir=str(tmp_path / "out"))
    return Fetcher(
        config,
        storage=Storage(config.output_dir),
        frontier=Frontier(),
        stats=StatsCollector(),
        logger=OutputLogger("sitemirror.tests"),
    )


def test_download_saves_body(fake_web, fetcher, tmp_path):
    fake_web.add("https://a.test/logo.png", b"\x89PNG", content_type="image/png")
    destination = tmp_path / "out" / "logo.png"

    outcome = fetcher.download("https://a.test/logo.png", destination)

    assert outcome.status == FetchStatus.SAVED
    assert outcome.body == b"\x89PNG"
    assert destination.read_bytes() == b"\x89PNG"
    assert fetcher.stats.downloads == 1
    assert fetcher.stats.outcome_count("saved") == 1


def test_http_error_is_recorded(fake_web, fetcher, tmp_path):
    outcome = fetcher.download("https://a.test/missing", tmp_path / "out" / "missing")

    assert outcome.status == FetchStatus.FAILED_HTTP_STATUS
    assert outcome.status_code == 404
    assert fetcher.stats.errors == [
        "Failed to download https://a.test/missing: Server returned: HTTP 404"
    ]
    assert not (tmp_path / "out" / "missing").exists()


def test_timeout_is_transient_and_not_recorded(fake_web, fetcher, tmp_path):
    fake_web.add_sequence("https://a.test/slow", [requests.ReadTimeout("read timed out")])

    outcome = fetcher.download("https://a.test/slow", tmp_path / "out" / "slow")

    assert outcome.status == FetchStatus.FAILED_TRANSIENT
    assert outcome.retryable
    assert fetcher.stats.errors == []


def test_other_network_errors_are_recorded(fake_web, fetcher, tmp_path):
    fake_web.add_sequence("https://a.test/x", [requests.ConnectionError("connection refused")])

    outcome = fetcher.download("https://a.test/x", tmp_path / "out" / "x")

    assert outcome.status == FetchStatus.FAILED_OTHER
    assert len(fetcher.stats.errors) == 1
    assert "https://a.test/x" in fetcher.stats.errors[0]


def test_off_host_urls_are_never_requested(fake_web, fetcher, tmp_path):
    outcome = fetcher.download("https://b.test/x", tmp_path / "out" / "x")

    assert outcome.status == FetchStatus.SKIPPED_OUT_OF_DOMAIN
    assert fake_web.calls == []


def test_invalid_urls_are_skipped(fake_web, fetcher, tmp_path):
    outcome = fetcher.download("not-a-url", tmp_path / "out" / "x")

    assert outcome.status == FetchStatus.SKIPPED_INVALID_URL
    assert fake_web.calls == []


def test_off_host_redirect_is_not_saved(fake_web, fetcher, tmp_path):
    fake_web.add("https://a.test/go", "<html></html>", final_url="https://b.test/landing")

    outcome = fetcher.download("https://a.test/go", tmp_path / "out" / "go")

    assert outcome.status == FetchStatus.SKIPPED_OUT_OF_DOMAIN
    assert len(fetcher.stats.warnings) == 1
    assert not (tmp_path / "out" / "go").exists()


def test_second_write_to_same_path_is_skipped(fake_web, fetcher, tmp_path):
    fake_web.add("https://a.test/a", "first")
    fake_web.add("https://a.test/A", "second")
    destination = tmp_path / "out" / "a"

    first = fetcher.download("https://a.test/a", destination)
    second = fetcher.download("https://a.test/A", destination)

    assert first.status == FetchStatus.SAVED
    assert second.status == FetchStatus.SKIPPED_DUPLICATE_PATH
    assert destination.read_text() == "first"
    assert fetcher.stats.downloads == 1


def test_is_timeout_error_walks_wrapped_causes():
    try:
        try:
            raise socket.timeout("timed out")
        except OSError as inner:
            raise requests.ConnectionError("wrapped") from inner
    except requests.ConnectionError as exc:
        wrapped = exc

    assert is_timeout_error(requests.ConnectTimeout("connect timeout"))
    assert is_timeout_error(OSError(errno.ETIMEDOUT, "Connection timed out"))
    assert is_timeout_error(OSError(10060, "WSAETIMEDOUT"))
    assert is_timeout_error(wrapped)
    assert not is_timeout_error(requests.ConnectionError("connection refused"))
    assert not is_timeout_error(ValueError("nope"))
