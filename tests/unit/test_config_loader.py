"""
Module: tests/unit/test_config_loader.py

What:
    Validate the runtime configuration loader: path precedence, YAML parsing,
    schema validation, built-in defaults and cache behaviour.

Why:
    Every session derives its port, TLS mode, socket timeout and probe
    interval from this configuration. A silently ignored typo would leave
    sessions running with unexpected timeouts.

How:
    Write YAML payloads to temporary files, point the loader at them through
    the argument or ``IMAPBOX_CONFIG_PATH``, and assert on the validated
    models or raised exceptions.

Interfaces:
    test_canned_configuration_is_applied, test_explicit_path_beats_environment,
    test_missing_explicit_file_raises, test_invalid_payloads_raise,
    test_builtin_defaults_without_any_file, test_cache_and_reload

Invariants & Safety Rules:
    - The autouse ``runtime_config`` fixture resets the cache around each test.
"""

from pathlib import Path

import pytest

from imapbox.config import loader
from imapbox.config.loader import (
    ConfigLoadError,
    RuntimeConfigError,
    get_runtime_config,
    load_runtime_config,
    reset_runtime_config,
)
from imapbox.config.schema import RuntimeConfig


def test_canned_configuration_is_applied(runtime_config):
    """
    What:
        The file named by ``IMAPBOX_CONFIG_PATH`` is the one loaded.

    Why:
        The whole unit suite depends on the short timeout and small body cap
        from ``tests/data/config.yaml``.
    """
    runtime = get_runtime_config()
    assert runtime.imap.timeout == 5
    assert runtime.imap.probe_interval is None
    assert runtime.message.max_body_bytes == 4096


def test_explicit_path_beats_environment(tmp_path):
    config_path = tmp_path / "imapbox.yaml"
    config_path.write_text("imap:\n  port: 143\n  ssl: false\n")

    runtime = load_runtime_config(config_path)

    assert runtime.imap.port == 143
    assert runtime.imap.ssl is False
    assert runtime.imap.timeout == 30.0
    assert runtime.message.max_body_bytes == 1_000_000


def test_missing_explicit_file_raises(tmp_path, monkeypatch):
    """
    What:
        Missing files named explicitly, by argument or environment, raise
        ``RuntimeConfigError``.

    Why:
        An operator who points at a configuration file expects it to be used;
        falling back to defaults would hide the mistake.
    """
    with pytest.raises(RuntimeConfigError):
        load_runtime_config(tmp_path / "absent.yaml")

    monkeypatch.setenv("IMAPBOX_CONFIG_PATH", str(tmp_path / "also-absent.yaml"))
    reset_runtime_config()
    with pytest.raises(RuntimeConfigError):
        get_runtime_config()


@pytest.mark.parametrize(
    "payload",
    [
        "imap: [unterminated",
        "- just\n- a list\n",
        "imap:\n  port: 0\n",
        "imap:\n  hostname: typo.example.com\n",
        "message:\n  max_body_bytes: -1\n",
        "imap:\n  probe_interval: -5\n",
    ],
)
def test_invalid_payloads_raise(tmp_path, payload):
    config_path = tmp_path / "broken.yaml"
    config_path.write_text(payload)

    with pytest.raises(ConfigLoadError):
        load_runtime_config(config_path)


def test_empty_file_yields_defaults(tmp_path):
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("")

    assert load_runtime_config(config_path) == RuntimeConfig()


def test_builtin_defaults_without_any_file(tmp_path, monkeypatch):
    """
    What:
        With no environment override and no default file present, the loader
        returns the built-in defaults.

    How:
        Remove the environment variable and redirect the default search
        locations into an empty temporary directory.
    """
    monkeypatch.delenv("IMAPBOX_CONFIG_PATH")
    monkeypatch.setattr(loader, "_DEFAULT_LOCATIONS", (tmp_path / "imapbox.yaml",))
    reset_runtime_config()

    runtime = get_runtime_config()

    assert runtime == RuntimeConfig()
    assert runtime.imap.port == 993
    assert runtime.imap.probe_interval == 60.0


def test_default_location_is_used_when_present(tmp_path, monkeypatch):
    default_path = tmp_path / "imapbox.yaml"
    default_path.write_text("imap:\n  port: 1993\n")
    monkeypatch.delenv("IMAPBOX_CONFIG_PATH")
    monkeypatch.setattr(loader, "_DEFAULT_LOCATIONS", (Path(tmp_path / "missing.yaml"), default_path))
    reset_runtime_config()

    assert get_runtime_config().imap.port == 1993


def test_cache_and_reload(tmp_path, monkeypatch):
    """
    What:
        The configuration is cached until ``reload=True`` or a reset.

    Why:
        Sessions read defaults on every construction; re-reading the file each
        time would make behaviour depend on edits made mid-run.
    """
    config_path = tmp_path / "imapbox.yaml"
    config_path.write_text("imap:\n  timeout: 10\n")
    monkeypatch.setenv("IMAPBOX_CONFIG_PATH", str(config_path))
    reset_runtime_config()

    first = get_runtime_config()
    config_path.write_text("imap:\n  timeout: 20\n")

    assert get_runtime_config() is first
    assert load_runtime_config(reload=True).imap.timeout == 20
    reset_runtime_config()
    assert get_runtime_config().imap.timeout == 20
