from __future__ import annotations

import pytest

from sitemirror.crawler.url import (
    LinkStatus,
    crawl_key,
    has_query,
    host_from_url,
    normalize_link,
    resolve_url,
    url_extension,
    visit_key,
)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.test/", "https://example.test"),
        ("https://example.test", "https://example.test"),
        ("HTTPS://Example.TEST/About/", "https://example.test/About"),
        ("https://example.test/page?x=1#top", "https://example.test/page"),
        ("https://example.test:443/a//b/../c", "https://example.test/a/c"),
        ("http://example.test:8080/x", "http://example.test:8080/x"),
    ],
)
def test_crawl_key_strips_query_fragment_and_trailing_separators(url, expected):
    assert crawl_key(url) == expected


def test_query_variants_collapse_to_one_crawl_key():
    assert crawl_key("https://a.test/page?x=1") == crawl_key("https://a.test/page?x=2")


def test_resolve_url_keeps_query_and_drops_fragment():
    assert resolve_url("https://a.test/css/site.css", "../img/bg.png?v=2#frag") == (
        "https://a.test/img/bg.png?v=2"
    )


@pytest.mark.parametrize(
    "href",
    ["", "   ", "#section", "javascript:void(0)", "mailto:me@a.test", "data:image/png;base64,AA", "ftp://a.test/x", "http://[::1"],
)
def test_resolve_url_rejects_unusable_links(href):
    assert resolve_url("https://a.test/", href) is None


def test_normalize_link_resolves_relative_links():
    resolved = normalize_link("about/", "https://a.test/index.html", "a.test")

    assert resolved.status == LinkStatus.OK
    assert resolved.crawl_key == "https://a.test/about"
    assert resolved.url == "https://a.test/about/"


def test_normalize_link_drops_other_hosts_case_insensitively():
    assert normalize_link("https://b.test/x", "https://a.test/", "a.test").status == LinkStatus.OUT_OF_DOMAIN
    assert normalize_link("https://A.TEST/x", "https://a.test/", "a.test").ok
    assert normalize_link("//cdn.a.test/lib.js", "https://a.test/", "a.test").status == LinkStatus.OUT_OF_DOMAIN


def test_normalize_link_flags_malformed_links():
    resolved = normalize_link("http://[broken", "https://a.test/", "a.test")

    assert resolved.status == LinkStatus.INVALID
    assert not resolved.ok


def test_small_helpers():
    assert host_from_url("https://Sub.Example.Test:8443/x") == "sub.example.test"
    assert has_query("https://a.test/x?v=1")
    assert not has_query("https://a.test/x")
    assert url_extension("https://a.test/styles/Site.CSS?v=1") == "css"
    assert url_extension("https://a.test/about/") == ""
    assert visit_key("https://a.test/About") == visit_key("https://A.test/about")
