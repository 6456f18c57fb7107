"""
Settings resolution from environment, YAML and command-line overrides.
"""

from pathlib import Path

import pytest

from aruba1830.config import (
    load_mac_alias_resolver,
    load_settings,
    resolve_mac_alias_file,
    resolve_port_mac_file,
    sanitize_for_filename,
)
from aruba1830.errors import MissingCredentialsError

_ENV_VARS = [
    "ARUBA_CONFIG_FILE",
    "ARUBA_HOST",
    "ARUBA_USERNAME",
    "ARUBA_PASSWORD",
    "ARUBA_PASSWORD_FILE",
    "ARUBA_SESSION_TOKEN",
    "ARUBA_SESSION_COOKIE",
    "ARUBA_TIMEOUT",
    "ARUBA_RESOURCE_TIMEOUT",
    "ARUBA_PORT_MAC_FILE",
    "ARUBA_MAC_ALIAS_FILE",
    "LOG_LEVEL",
    "ARUBA_LOG_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # default alias file is looked up in the working directory
    monkeypatch.chdir(tmp_path)


class TestFromEnv:
    def test_basic(self, monkeypatch):
        monkeypatch.setenv("ARUBA_HOST", "10.0.0.2")
        monkeypatch.setenv("ARUBA_USERNAME", "admin")
        monkeypatch.setenv("ARUBA_PASSWORD", "secret")
        monkeypatch.setenv("ARUBA_TIMEOUT", "10")

        settings = load_settings()

        assert settings.host == "10.0.0.2"
        assert settings.password == "secret"
        assert settings.timeout == 10
        assert settings.resource_timeout == 60
        assert settings.log_level == "WARNING"
        assert settings.port_mac_file == Path(".aruba1830_10.0.0.2.ports")
        assert settings.mac_alias_file is None
        assert settings.log_dir is None

    def test_password_file(self, monkeypatch, tmp_path):
        secret = tmp_path / "pw"
        secret.write_text("from-file\n", encoding="utf-8")
        monkeypatch.setenv("ARUBA_HOST", "sw1")
        monkeypatch.setenv("ARUBA_USERNAME", "admin")
        monkeypatch.setenv("ARUBA_PASSWORD_FILE", str(secret))

        assert load_settings().password == "from-file"

    def test_empty_password_is_allowed(self, monkeypatch):
        monkeypatch.setenv("ARUBA_HOST", "sw1")
        monkeypatch.setenv("ARUBA_USERNAME", "admin")
        monkeypatch.setenv("ARUBA_PASSWORD", "")

        assert load_settings().password == ""

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.setenv("ARUBA_HOST", "sw1")

        with pytest.raises(MissingCredentialsError):
            load_settings()

    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("ARUBA_HOST", "sw1")
        monkeypatch.setenv("ARUBA_USERNAME", "admin")
        monkeypatch.setenv("ARUBA_PASSWORD", "pw")
        monkeypatch.setenv("ARUBA_TIMEOUT", "soon")

        with pytest.raises(RuntimeError, match="timeout"):
            load_settings()


class TestOverrides:
    def test_overrides_win_over_env(self, monkeypatch):
        monkeypatch.setenv("ARUBA_HOST", "sw1")
        monkeypatch.setenv("ARUBA_USERNAME", "admin")
        monkeypatch.setenv("ARUBA_PASSWORD", "pw")

        settings = load_settings(host="sw2", username=None, port_mac_file="/tmp/p.json")

        assert settings.host == "sw2"
        assert settings.username == "admin"
        assert settings.port_mac_file == Path("/tmp/p.json")

    def test_overrides_alone(self):
        settings = load_settings(host="sw1", username="admin", password="pw", session_token="tok")

        assert settings.session_token == "tok"

    def test_unknown_override(self):
        with pytest.raises(TypeError):
            load_settings(hostname="sw1")


class TestFromYaml:
    def test_yaml(self, tmp_path):
        config = tmp_path / "aruba.yaml"
        config.write_text(
            "switch:\n"
            "  host: 192.168.1.10\n"
            "  username: admin\n"
            "  password: 12345\n"
            "  resource_timeout: 90\n"
            "runtime:\n"
            "  log_level: DEBUG\n"
            "  mac_alias_file: aliases.txt\n"
            "  log_dir: logs\n",
            encoding="utf-8",
        )

        settings = load_settings(str(config))

        assert settings.host == "192.168.1.10"
        assert settings.password == "12345"
        assert settings.resource_timeout == 90
        assert settings.log_level == "DEBUG"
        assert settings.mac_alias_file == Path("aliases.txt")
        assert settings.log_dir == Path("logs")

    def test_yaml_from_env_var(self, monkeypatch, tmp_path):
        config = tmp_path / "aruba.yaml"
        config.write_text("switch: {host: h, username: u, password: p}\n", encoding="utf-8")
        monkeypatch.setenv("ARUBA_CONFIG_FILE", str(config))

        assert load_settings().host == "h"

    def test_missing_file(self, tmp_path):
        with pytest.raises(RuntimeError, match="not found"):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_bad_root(self, tmp_path):
        config = tmp_path / "aruba.yaml"
        config.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(RuntimeError, match="mapping"):
            load_settings(str(config))


class TestPaths:
    def test_sanitize(self):
        assert sanitize_for_filename("fe80::1%eth0") == "fe80__1_eth0"
        assert sanitize_for_filename("sw-1.lab") == "sw-1.lab"

    def test_port_mac_file(self):
        assert resolve_port_mac_file("10.0.0.2") == Path(".aruba1830_10.0.0.2.ports")
        assert resolve_port_mac_file("10.0.0.2", "x.json") == Path("x.json")

    def test_default_alias_file_only_when_present(self, tmp_path):
        assert resolve_mac_alias_file() is None

        (tmp_path / ".aruba1830-macaliases.txt").write_text("", encoding="utf-8")

        assert resolve_mac_alias_file() == Path(".aruba1830-macaliases.txt")

    def test_unreadable_alias_file_gives_empty_resolver(self, tmp_path):
        resolver = load_mac_alias_resolver(tmp_path / "missing.txt")

        assert resolver.describe("AppleTV") == ("AppleTV", "AppleTV")


def test_log_dir_from_env(monkeypatch):
    monkeypatch.setenv("ARUBA_LOG_DIR", "/var/log/aruba1830")

    settings = load_settings(host="sw1", username="admin", password="pw")

    assert settings.log_dir == Path("/var/log/aruba1830")
