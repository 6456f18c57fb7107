import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .aliases import MacAliasResolver
from .errors import MissingCredentialsError
from .http_client import DEFAULT_RESOURCE_TIMEOUT, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_MAC_ALIAS_FILE = ".aruba1830-macaliases.txt"


@dataclass
class Settings:
    host: str
    username: str
    password: str
    port_mac_file: Path
    session_token: Optional[str] = None
    session_cookie: Optional[str] = None
    mac_alias_file: Optional[Path] = None
    timeout: int = DEFAULT_TIMEOUT
    resource_timeout: int = DEFAULT_RESOURCE_TIMEOUT
    log_level: str = "WARNING"
    log_dir: Optional[Path] = None


def _read_secret_file(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    p = Path(path)
    if not p.is_file():
        logger.warning("Secret file %s does not exist", p)
        return None
    return p.read_text(encoding="utf-8").strip()


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _as_int(name: str, value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{name} must be an integer (seconds), got {value!r}") from exc
    if result <= 0:
        raise RuntimeError(f"{name} must be > 0, got {result}")
    return result


def sanitize_for_filename(value: str) -> str:
    """Keep alphanumerics and '._-'; everything else becomes '_'."""
    return re.sub(r"[^A-Za-z0-9._-]", "_", value)


def resolve_port_mac_file(host: str, override: Optional[str] = None) -> Path:
    """Explicit path, else ``.aruba1830_<host>.ports`` in the working directory."""
    if override:
        return Path(override)
    return Path(f".aruba1830_{sanitize_for_filename(host)}.ports")


def resolve_mac_alias_file(override: Optional[str] = None) -> Optional[Path]:
    """Explicit path, else the default alias file if it exists, else None."""
    if override:
        return Path(override)
    default = Path(DEFAULT_MAC_ALIAS_FILE)
    if default.is_file():
        return default
    return None


def load_mac_alias_resolver(path: Optional[Path]) -> MacAliasResolver:
    if path is None:
        return MacAliasResolver.empty()
    try:
        return MacAliasResolver.load(path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to load MAC alias file at %s: %s", path, exc)
        return MacAliasResolver.empty()


def _values_from_yaml(path: str) -> Dict[str, Any]:
    """
    Example::

        switch:
          host: 192.168.1.10
          username: admin
          password_file: secrets/aruba_password
          timeout: 30
        runtime:
          log_level: WARNING
          log_dir: /var/log/aruba1830
          port_mac_file: /var/lib/aruba1830/ports.json
          mac_alias_file: /etc/aruba1830/aliases.txt
    """
    p = Path(path)
    if not p.is_file():
        raise RuntimeError(f"Config file not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        raise RuntimeError(f"Failed to read YAML config: {path}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise RuntimeError("YAML config root must be a mapping/object")

    switch = raw.get("switch") or {}
    runtime = raw.get("runtime") or {}
    if not isinstance(switch, dict):
        raise RuntimeError("switch must be a mapping/object")
    if not isinstance(runtime, dict):
        raise RuntimeError("runtime must be a mapping/object")

    password = switch.get("password")
    if password is not None:
        password = str(password)
    else:
        password = _read_secret_file(_clean(switch.get("password_file")))

    return {
        "host": _clean(switch.get("host")),
        "username": _clean(switch.get("username")),
        "password": password,
        "session_token": _clean(switch.get("session_token")),
        "session_cookie": _clean(switch.get("session_cookie")),
        "timeout": switch.get("timeout"),
        "resource_timeout": switch.get("resource_timeout"),
        "port_mac_file": _clean(runtime.get("port_mac_file")),
        "mac_alias_file": _clean(runtime.get("mac_alias_file")),
        "log_level": _clean(runtime.get("log_level")),
        "log_dir": _clean(runtime.get("log_dir")),
    }


def _values_from_env() -> Dict[str, Any]:
    password = os.getenv("ARUBA_PASSWORD")
    if password is None:
        password = _read_secret_file(os.getenv("ARUBA_PASSWORD_FILE"))

    return {
        "host": _clean(os.getenv("ARUBA_HOST")),
        "username": _clean(os.getenv("ARUBA_USERNAME")),
        "password": password,
        "session_token": _clean(os.getenv("ARUBA_SESSION_TOKEN")),
        "session_cookie": _clean(os.getenv("ARUBA_SESSION_COOKIE")),
        "timeout": os.getenv("ARUBA_TIMEOUT"),
        "resource_timeout": os.getenv("ARUBA_RESOURCE_TIMEOUT"),
        "port_mac_file": _clean(os.getenv("ARUBA_PORT_MAC_FILE")),
        "mac_alias_file": _clean(os.getenv("ARUBA_MAC_ALIAS_FILE")),
        "log_level": _clean(os.getenv("LOG_LEVEL")),
        "log_dir": _clean(os.getenv("ARUBA_LOG_DIR")),
    }


def load_settings(config_file: Optional[str] = None, **overrides: Optional[str]) -> Settings:
    """
    Resolve settings from a YAML file (``config_file`` or ``ARUBA_CONFIG_FILE``)
    or the ``ARUBA_*`` environment variables. ``overrides`` that are not None
    (command-line values, same keys as Settings) take precedence.

    Raises:
        MissingCredentialsError: host, username or password not resolved.
        RuntimeError: invalid config file or values.
    """
    config_file = config_file or os.getenv("ARUBA_CONFIG_FILE")
    if config_file:
        logger.debug("Loading settings from %s", config_file)
        values = _values_from_yaml(config_file)
    else:
        values = _values_from_env()

    for key, value in overrides.items():
        if key not in values:
            raise TypeError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    host, username, password = values["host"], values["username"], values["password"]
    if not host or not username or password is None:
        raise MissingCredentialsError()

    return Settings(
        host=host,
        username=username,
        password=password,
        session_token=values["session_token"],
        session_cookie=values["session_cookie"],
        port_mac_file=resolve_port_mac_file(host, values["port_mac_file"]),
        mac_alias_file=resolve_mac_alias_file(values["mac_alias_file"]),
        timeout=_as_int("timeout", values["timeout"], DEFAULT_TIMEOUT),
        resource_timeout=_as_int("resource_timeout", values["resource_timeout"], DEFAULT_RESOURCE_TIMEOUT),
        log_level=values["log_level"] or "WARNING",
        log_dir=Path(values["log_dir"]) if values["log_dir"] else None,
    )
