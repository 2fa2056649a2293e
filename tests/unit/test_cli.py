"""
Unit tests for the command-line entry point.
"""

import sys
import types

import pytest

from liveserver.__main__ import build_options, build_parser, load_addon, watch_paths
from liveserver.errors import ConfigurationError
from liveserver.watcher import FileWatcher


@pytest.fixture
def addon_module(monkeypatch):
    module = types.ModuleType("fake_addons")

    class ProxyAddon:
        name = "proxy"

        def server_middleware(self, context):
            pass

    module.ProxyAddon = ProxyAddon
    module.instance = ProxyAddon()
    monkeypatch.setitem(sys.modules, "fake_addons", module)
    return module


def parse(*argv):
    return build_parser().parse_args(list(argv))


class TestLoadAddon:

    def test_class_is_instantiated(self, addon_module):
        assert isinstance(load_addon("fake_addons:ProxyAddon"), addon_module.ProxyAddon)

    def test_instance_is_used_as_is(self, addon_module):
        assert load_addon("fake_addons:instance") is addon_module.instance

    @pytest.mark.parametrize("spec", ["fake_addons", "fake_addons:missing", "no_such_module_xyz:thing"])
    def test_invalid(self, addon_module, spec):
        with pytest.raises(ConfigurationError):
            load_addon(spec)


class TestBuildOptions:

    def test_cli_overrides_environment(self, monkeypatch, ui):
        monkeypatch.setenv("LIVESERVER_PORT", "3000")
        monkeypatch.setenv("LIVESERVER_ROOT_URL", "env")

        options = build_options(parse("--port", "5000", "--no-watch"), ui)

        assert options.port == 5000
        assert options.base_path == "/env/"
        assert options.watcher is None
        assert options.ui is ui

    def test_flags(self, addon_module, ui):
        options = build_options(parse(
            "--ssl",
            "--ssl-key", "k.pem",
            "--ssl-cert", "c.pem",
            "--no-compression",
            "--access-log",
            "--access-log-format", "json",
            "--restart-delay", "0.3",
            "--addon", "fake_addons:instance",
            "--no-watch",
        ), ui)

        assert options.use_tls is True
        assert options.tls_key_path == "k.pem"
        assert options.compression is False
        assert options.access_log is True
        assert options.access_log_format == "json"
        assert options.restart_delay == 0.3
        assert options.addons == (addon_module.instance,)

    def test_defaults_keep_compression(self, ui):
        options = build_options(parse("--no-watch"), ui)

        assert options.compression is True
        assert options.access_log is False
        assert options.addons == ()

    def test_watcher_follows_server_root(self, tmp_path, ui):
        root = str(tmp_path / "mocks")

        options = build_options(parse("--server-root", root), ui)

        assert isinstance(options.watcher, FileWatcher)
        assert options.watcher.paths == [root, root + ".py"]
        assert options.watcher.polling is False

    def test_poll_flag_selects_polling_watcher(self, tmp_path, ui):
        options = build_options(parse("--server-root", str(tmp_path / "mocks"), "--poll"), ui)

        assert options.watcher.polling is True


def test_watch_paths():
    assert watch_paths(None) == []
    assert watch_paths("server") == ["server", "server.py"]
    assert watch_paths("mocks/server.py") == ["mocks/server.py"]
