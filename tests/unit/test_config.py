"""
Unit tests for StartOptions.
"""

import dataclasses

import pytest

from liveserver.config import StartOptions, clean_base_url, display_host
from liveserver.errors import ConfigurationError


class TestCleanBaseURL:

    @pytest.mark.parametrize("url, expected", [
        (None, "/"),
        ("", "/"),
        ("/", "/"),
        ("app", "/app/"),
        ("/app", "/app/"),
        ("app/", "/app/"),
        ("//app/admin//", "/app/admin/"),
    ])
    def test_clean_base_url(self, url, expected):
        assert clean_base_url(url) == expected

    def test_display_host(self):
        assert display_host(None) == "localhost"
        assert display_host("") == "localhost"
        assert display_host("0.0.0.0") == "0.0.0.0"


class TestStartOptions:

    def test_defaults(self):
        options = StartOptions()

        assert options.port == 4200
        assert options.restart_delay == 0.1
        assert options.compression is True
        assert options.display_host == "localhost"
        assert options.scheme == "http"

    def test_empty_root_url_means_root(self):
        assert StartOptions(root_url="", base_url="/ignored/").base_path == "/"

    def test_root_url_wins_over_base_url(self):
        assert StartOptions(root_url="app", base_url="other").base_path == "/app/"

    def test_base_url_used_without_root_url(self):
        assert StartOptions(base_url="other").base_path == "/other/"

    def test_scheme_follows_tls(self):
        assert StartOptions(use_tls=True).scheme == "https"

    def test_frozen(self):
        options = StartOptions()

        with pytest.raises(dataclasses.FrozenInstanceError):
            options.port = 3000

        assert dataclasses.replace(options, port=3000).port == 3000


class TestFromEnv:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LIVESERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("LIVESERVER_PORT", "3000")
        monkeypatch.setenv("LIVESERVER_SSL", "true")
        monkeypatch.setenv("LIVESERVER_ROOT_URL", "app")
        monkeypatch.setenv("LIVESERVER_RESTART_DELAY", "0.5")
        monkeypatch.setenv("LIVESERVER_ACCESS_LOG", "1")
        monkeypatch.setenv("LIVESERVER_ACCESS_LOG_FORMAT", "json")

        options = StartOptions.from_env()

        assert options.host == "127.0.0.1"
        assert options.port == 3000
        assert options.use_tls is True
        assert options.base_path == "/app/"
        assert options.restart_delay == 0.5
        assert options.tls_key_path == "ssl/server.key"
        assert options.access_log is True
        assert options.access_log_format == "json"

    def test_overrides_win_and_none_is_ignored(self, monkeypatch):
        monkeypatch.setenv("LIVESERVER_PORT", "3000")

        options = StartOptions.from_env(port=5000, host=None)

        assert options.port == 5000
        assert options.host is None


class TestValidate:

    def test_valid_defaults(self):
        StartOptions().validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"use_tls": True, "tls_key_path": None, "tls_cert_path": "cert.pem"},
        {"restart_delay": -0.1},
        {"max_workers": 0},
        {"read_timeout": 0},
        {"access_log_format": "xml"},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            StartOptions(**overrides).validate()
