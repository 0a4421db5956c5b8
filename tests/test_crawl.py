from __future__ import annotations

import json

import pytest

from sitemirror import crawl


def test_build_config_from_arguments(tmp_path):
    args = crawl.parse_args(
        [
            "https://example.test/",
            "--output_dir",
            str(tmp_path / "mirror"),
            "--workers",
            "3",
            "--page_extensions",
            "html,PHP",
            "--retry_on_timeout",
            "--max_timeout_retries",
            "4",
        ]
    )

    config = crawl.build_config(args)

    assert config.base_url == "https://example.test/"
    assert config.output_dir == str(tmp_path / "mirror")
    assert config.workers == 3
    assert config.page_extensions == frozenset({"html", "php"})
    assert config.retry_on_timeout is True
    assert config.max_timeout_retries == 4


def test_cli_arguments_override_config_file(tmp_path):
    config_path = tmp_path / "mirror.json"
    config_path.write_text(
        json.dumps({"base_url": "https://a.test/", "workers": 8, "max_timeout_retries": 2})
    )

    args = crawl.parse_args(["--config", str(config_path), "--workers", "2", "--max_timeout_retries", "-1"])
    config = crawl.build_config(args)

    assert config.base_url == "https://a.test/"
    assert config.workers == 2
    assert config.max_timeout_retries is None


def test_missing_base_url_is_an_error():
    with pytest.raises(ValueError):
        crawl.build_config(crawl.parse_args([]))


def test_confirm_treats_eof_as_no(monkeypatch):
    def closed_stdin(prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", closed_stdin)
    config = crawl.build_config(crawl.parse_args(["https://example.test/"]))

    assert crawl.confirm(config, clean=False) is False


def test_run_returns_two_for_bad_config():
    args = crawl.parse_args(["not a url", "--yes"])

    assert crawl._run(args) == 2


def test_run_mirrors_with_clean(fake_web, tmp_path, capsys):
    output_dir = tmp_path / "mirror"
    output_dir.mkdir()
    (output_dir / "stale.txt").write_text("old")
    fake_web.add("https://example.test/", "<html></html>")

    args = crawl.parse_args(
        ["https://example.test/", "--output_dir", str(output_dir), "--clean", "--yes", "--workers", "1"]
    )

    assert crawl._run(args) == 0
    assert not (output_dir / "stale.txt").exists()
    assert (output_dir / "index.html").exists()
    assert "downloads: 1" in capsys.readouterr().out


def test_no_color_flag_defaults_off():
    assert crawl.parse_args(["https://example.test/"]).no_color is False
    assert crawl.parse_args(["https://example.test/", "--no_color"]).no_color is True
