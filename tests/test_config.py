import json

import pytest

from linkcrawler.config import CrawlConfig, load_config, parse_meta_types, save_config
from linkcrawler.errors import ConfigurationError
from linkcrawler.types import FetchBackend, MetaType, RedirectScope


def test_defaults_and_derived_values():
    config = CrawlConfig(seed_url="http://Ex.com/start", domain_aliases=["https://www.ex.com"])

    assert config.canonical_host == "ex.com"
    assert config.valid_domains == ["https://www.ex.com", "http://Ex.com/start"]
    assert config.backend == FetchBackend.SELENIUM
    assert config.redirect_scope == RedirectScope.REQUESTED
    assert config.retry_attempts == 3
    assert config.delay_seconds == 0.5
    assert not config.collects_meta
    assert config.request_headers()["User-Agent"] == config.user_agent


def test_parse_meta_types():
    assert parse_meta_types("anchors, lighthouse,,anchors") == [MetaType.ANCHORS, MetaType.LIGHTHOUSE]
    assert parse_meta_types(None) == []
    assert parse_meta_types("") == []
    with pytest.raises(ConfigurationError, match="is not a valid meta type"):
        parse_meta_types("anchors,screenshots")


@pytest.mark.parametrize(
    "overrides",
    [
        {"seed_url": ""},
        {"seed_url": "ex.com"},
        {"seed_url": "https://ex.com/", "collect_meta": ["bogus"]},
        {"seed_url": "https://ex.com/", "backend": "curl"},
        {"seed_url": "https://ex.com/", "delay_seconds": -1},
        {"seed_url": "https://ex.com/", "retry_attempts": 0},
        {"seed_url": "https://ex.com/", "domain_aliases": ["www.ex.com"]},
    ],
)
def test_invalid_configs_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        CrawlConfig(**overrides)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        CrawlConfig(seed_url="")


def test_from_dict_requires_seed_url():
    with pytest.raises(ConfigurationError, match="seed_url"):
        CrawlConfig.from_dict({"collect_meta": "anchors"})


def test_from_dict_rejects_non_bool_flags():
    with pytest.raises(ConfigurationError):
        CrawlConfig.from_dict({"seed_url": "https://ex.com/", "check_externals": "yes"})


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_save_and_load_round_trip(tmp_path, suffix):
    config = CrawlConfig(
        seed_url="https://ex.com/",
        domain_aliases=["https://www.ex.com"],
        exclude_paths=["/admin/**"],
        collect_meta=["anchors", "resources"],
        backend="requests",
        redirect_scope="final",
        check_externals=True,
    )
    path = tmp_path / f"crawl{suffix}"

    save_config(config, path)
    loaded = load_config(path)

    assert loaded.to_dict() == config.to_dict()
    assert loaded.backend == FetchBackend.REQUESTS
    assert loaded.collect_meta == [MetaType.ANCHORS, MetaType.RESOURCES]


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="Unsupported config suffix"):
        load_config(tmp_path / "crawl.toml")

    broken = tmp_path / "crawl.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(broken)

    listing = tmp_path / "list.json"
    listing.write_text(json.dumps(["https://ex.com/"]), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(listing)
