"""Tests for CLI helpers."""

import json
import logging
from unittest.mock import patch

import pytest

from npmcdn import cli
from npmcdn.args import parse_args
from npmcdn.cli import _enforce_local_binding, _is_local_bind_host, _load_config_file, build_config


def test_is_local_bind_host_loopback():
    """Loopback hosts should be treated as local."""
    assert _is_local_bind_host("127.0.0.1") is True
    assert _is_local_bind_host("localhost") is True
    assert _is_local_bind_host("::1") is True


def test_is_local_bind_host_external():
    """Non-local hosts should be treated as external."""
    assert _is_local_bind_host("0.0.0.0") is False
    assert _is_local_bind_host("192.168.1.10") is False
    assert _is_local_bind_host("") is False


def test_enforce_local_binding_rejects_external():
    """External bindings must be explicitly allowed."""
    with pytest.raises(SystemExit):
        _enforce_local_binding("0.0.0.0", False)


def test_enforce_local_binding_allows_with_flag():
    """External bindings are allowed only when flag is set."""
    _enforce_local_binding("0.0.0.0", True)


def test_parse_args_defaults():
    """Unset flags stay None so config values are not overridden."""
    args = parse_args([])
    assert args.PORT is None
    assert args.NO_AUTO_INDEX is False
    assert args.LOG_LEVEL == "INFO"


def test_load_yaml_config(tmp_path):
    """YAML config files are read, preferring a server section."""
    path = tmp_path / "npmcdn.yml"
    path.write_text("server:\n  port: 9100\n  redirect_ttl: 60\n  auto_index: false\n")
    assert _load_config_file(str(path)) == {"port": 9100, "redirect_ttl": 60, "auto_index": False}


def test_load_json_config(tmp_path):
    """JSON config files are read as well."""
    path = tmp_path / "npmcdn.json"
    path.write_text(json.dumps({"max_depth": 2}))
    assert _load_config_file(str(path)) == {"max_depth": 2}


def test_missing_config_file(tmp_path, caplog):
    """A missing config file is reported and ignored."""
    with caplog.at_level(logging.WARNING):
        assert _load_config_file(str(tmp_path / "missing.yml")) == {}
    assert "Config file not found" in caplog.text


def test_cli_flags_override_config_file(tmp_path):
    """Flags win over values from the config file."""
    path = tmp_path / "npmcdn.yml"
    path.write_text("port: 9100\nredirect_ttl: 60\ncache_dir: /srv/cache\n")
    args = parse_args(["--config", str(path), "--port", "9200", "--no-auto-index"])

    config = build_config(args)

    assert config.port == 9200
    assert config.redirect_ttl == 60
    assert config.cache_dir == "/srv/cache"
    assert config.auto_index is False


def test_main_runs_server(tmp_path):
    """main() builds the config and hands it to the server runner."""
    with patch.object(cli, "run_server_sync") as run, patch.object(cli, "configure_logging"):
        cli.main(["--port", "9300", "--cache-dir", str(tmp_path)])

    config = run.call_args[0][0]
    assert config.port == 9300
    assert config.cache_dir == str(tmp_path)


def test_main_rejects_external_host():
    """main() refuses non-local hosts without --allow-external."""
    with patch.object(cli, "run_server_sync") as run, patch.object(cli, "configure_logging"):
        with pytest.raises(SystemExit):
            cli.main(["--host", "0.0.0.0"])
    run.assert_not_called()
