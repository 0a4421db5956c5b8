from __future__ import annotations

import json

import pytest
import yaml

from sitemirror.crawler import MirrorConfig, ResourceKind, load_config, normalize_extensions, save_config


def test_defaults():
    config = MirrorConfig(base_url="https://example.test/")

    assert config.output_dir == "_SiteMirror_Output"
    assert config.workers >= 1
    assert config.page_extensions == frozenset({"html", "htm"})
    assert config.stylesheet_extensions == frozenset({"css"})
    assert config.retry_on_timeout is False
    assert config.max_timeout_retries is None
    assert config.base_host == "example.test"
    assert config.start_url == "https://example.test"


@pytest.mark.parametrize("base_url", ["", "example.test", "/relative/path", "ftp://example.test/"])
def test_rejects_unusable_base_url(base_url):
    with pytest.raises(ValueError):
        MirrorConfig(base_url=base_url)


def test_rejects_bad_numbers_and_empty_page_extensions():
    with pytest.raises(ValueError):
        MirrorConfig(base_url="https://a.test/", timeout_seconds=0)
    with pytest.raises(ValueError):
        MirrorConfig(base_url="https://a.test/", max_timeout_retries=-1)
    with pytest.raises(ValueError):
        MirrorConfig(base_url="https://a.test/", page_extensions=frozenset())


def test_worker_count_is_clamped():
    assert MirrorConfig(base_url="https://a.test/", workers=0).workers == 1
    assert MirrorConfig(base_url="https://a.test/", workers=-4).workers == 1


def test_normalize_extensions_accepts_strings_and_iterables():
    assert normalize_extensions(" HTML, .htm ,,") == frozenset({"html", "htm"})
    assert normalize_extensions([".CSS", "", "scss"]) == frozenset({"css", "scss"})


def test_resource_kind_by_extension():
    config = MirrorConfig(base_url="https://a.test/", page_extensions=frozenset({"html", "php"}))

    assert config.resource_kind("https://a.test/") == ResourceKind.PAGE
    assert config.resource_kind("https://a.test/about") == ResourceKind.PAGE
    assert config.resource_kind("https://a.test/index.PHP") == ResourceKind.PAGE
    assert config.resource_kind("https://a.test/logo.png") == ResourceKind.AUXILIARY
    assert config.is_stylesheet("https://a.test/site.css?v=3")


def test_headers_carry_user_agent():
    config = MirrorConfig(base_url="https://a.test/", user_agent="sitemirror-test/1.0")

    assert config.headers()["User-Agent"] == "sitemirror-test/1.0"


def test_from_dict_validates_types():
    with pytest.raises(ValueError):
        MirrorConfig.from_dict({})
    with pytest.raises(ValueError):
        MirrorConfig.from_dict({"base_url": "https://a.test/", "workers": "many"})
    with pytest.raises(ValueError):
        MirrorConfig.from_dict({"base_url": "https://a.test/", "retry_on_timeout": "yes"})


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_and_load_config(tmp_path, suffix):
    config = MirrorConfig(
        base_url="https://a.test/docs/",
        output_dir=str(tmp_path / "mirror"),
        workers=3,
        retry_on_timeout=True,
        max_timeout_retries=2,
    )
    path = tmp_path / f"mirror{suffix}"

    save_config(config, path)
    loaded = load_config(path)

    assert loaded == config


def test_load_config_reads_handwritten_files(tmp_path):
    json_path = tmp_path / "site.json"
    json_path.write_text(json.dumps({"base_url": "https://a.test/", "page_extensions": "html,aspx"}))
    yaml_path = tmp_path / "site.yml"
    yaml_path.write_text(yaml.safe_dump({"base_url": "https://a.test/", "workers": 2}))

    assert load_config(json_path).page_extensions == frozenset({"html", "aspx"})
    assert load_config(yaml_path).workers == 2


def test_unsupported_suffix(tmp_path):
    with pytest.raises(ValueError):
        load_config(tmp_path / "site.toml")
    with pytest.raises(ValueError):
        save_config(MirrorConfig(base_url="https://a.test/"), tmp_path / "site.ini")
