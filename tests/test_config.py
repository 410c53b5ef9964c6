"""Tests for settings loading and validation."""

import json
from datetime import datetime
from pathlib import Path

import pytest

from forum_reply_miner.config import DEFAULT_PORT, Settings, load_settings
from forum_reply_miner.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("MINER_SITE_URL", "MINER_USER_NAME", "MINER_PORT"):
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env in the working directory out of the tests
    monkeypatch.chdir(tmp_path)


def write_config(tmp_path, **values):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(values))
    return path


def test_defaults_from_file(tmp_path):
    settings = load_settings(write_config(tmp_path, site_url="https://x/group/", user_name="alice"))
    assert settings.port == DEFAULT_PORT
    assert settings.crawl_start_time is None
    assert settings.short_interval == 600
    assert settings.long_interval == 1800
    assert settings.max_no_new_short_crawl == 3
    assert settings.max_attempts == 5
    assert settings.email_enabled is False
    assert settings.user_dir == Path(".") / "alice"


def test_start_time_parsed(tmp_path):
    settings = load_settings(write_config(
        tmp_path, site_url="https://x/", user_name="alice",
        crawl_start_time="2024-01-01 08:00:00 +0800 CST",
    ))
    assert settings.crawl_start_time == datetime(2024, 1, 1, 8, 0, 0)


def test_invalid_start_time(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(write_config(tmp_path, site_url="https://x/", user_name="alice",
                                   crawl_start_time="soon"))


@pytest.mark.parametrize("values", [
    {"site_url": "https://x/"},
    {"user_name": "alice"},
    {"site_url": "", "user_name": "alice"},
])
def test_missing_required_values(tmp_path, values):
    with pytest.raises(ConfigurationError):
        load_settings(write_config(tmp_path, **values))


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("MINER_SITE_URL", "https://x/")
    monkeypatch.setenv("MINER_USER_NAME", "bob")
    monkeypatch.setenv("MINER_PORT", "9000")
    settings = load_settings()
    assert settings.user_name == "bob"
    assert settings.port == 9000


def test_file_wins_over_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("MINER_USER_NAME", "bob")
    settings = load_settings(write_config(tmp_path, site_url="https://x/", user_name="alice"))
    assert settings.user_name == "alice"


def test_unreadable_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "missing.json")


def test_non_object_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_invalid_attempts(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(write_config(tmp_path, site_url="https://x/", user_name="a", max_attempts=0))


def test_email_enabled():
    settings = Settings(site_url="https://x/", user_name="a", email_addr="smtp.example.com")
    assert settings.email_enabled


def test_legacy_config_keys(tmp_path):
    settings = load_settings(write_config(
        tmp_path,
        Url="https://www.example.com/group/test/discussion",
        UserName="alice",
        Port="9000",
        CrawlStartTime="2024-01-01 08:00:00 +0800 CST",
        EmailAddr="smtp.example.com",
        EmailPort=587,
        EmailUser="bot@example.com",
        EmailPassword="secret",
        EmailTo="me@example.com",
    ))
    assert settings.site_url == "https://www.example.com/group/test/discussion"
    assert settings.user_name == "alice"
    assert settings.port == 9000
    assert settings.crawl_start_time == datetime(2024, 1, 1, 8, 0, 0)
    assert settings.email_port == 587
    assert settings.email_to == "me@example.com"
    assert settings.email_enabled


def test_empty_legacy_port_uses_default(tmp_path):
    settings = load_settings(write_config(tmp_path, Url="https://x/", UserName="alice", Port=""))
    assert settings.port == DEFAULT_PORT


def test_field_names_win_over_legacy_keys(tmp_path):
    settings = load_settings(write_config(
        tmp_path, site_url="https://x/", user_name="alice", UserName="bob",
    ))
    assert settings.user_name == "alice"
