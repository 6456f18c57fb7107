"""
Typed exceptions for the Aruba 1830 client.

Hierarchy:
    ArubaError (base)
    ├── InvalidURLError
    ├── HTTPError
    ├── NetworkError
    ├── InvalidResponseError
    ├── ParseError
    ├── AuthenticationError
    ├── InvalidCredentialsError
    ├── MissingCredentialsError
    ├── MissingArgumentError
    ├── ConfigurationError (device rejected a write)
    ├── PortNotFoundError
    ├── MultipleMACsOnPortError
    ├── InvalidMACAddressError
    └── PortLogError
        ├── PortLogReadError
        └── PortLogWriteError
"""

from pathlib import Path
from typing import Optional


class ArubaError(Exception):
    """
    Base exception for every error raised by this package.

    Attributes:
        message: Human readable description
        details: Extra context (dict), used for logs/reports
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# === Transport ===

class InvalidURLError(ArubaError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL: {url}", {"url": url})


class HTTPError(ArubaError):
    """Non-2xx response from the switch."""

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(
            f"HTTP Error {status_code}: {reason}",
            {"status_code": status_code, "reason": reason},
        )


class NetworkError(ArubaError):
    def __init__(self, details: str):
        super().__init__(f"Network error: {details}")


class InvalidResponseError(ArubaError):
    def __init__(self):
        super().__init__("Invalid response from switch")


class ParseError(ArubaError):
    def __init__(self, details: str):
        super().__init__(f"Failed to parse response: {details}")


# === Authentication / invocation ===

class AuthenticationError(ArubaError):
    """
    Session could not be established (token or cookie missing) or the
    switch refused the request (401/403).
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Authentication failed: {reason}")


class InvalidCredentialsError(ArubaError):
    def __init__(self):
        super().__init__("Invalid credentials provided")


class MissingCredentialsError(ArubaError):
    def __init__(self):
        super().__init__(
            "Missing credentials. Provide --host, --user and --password, "
            "ARUBA_* environment variables or a config file"
        )


class MissingArgumentError(ArubaError):
    pass


# === Device operations ===

class ConfigurationError(ArubaError):
    """The switch answered a write with a non-zero ActionStatus."""

    def __init__(self, status_string: str):
        self.status_string = status_string
        super().__init__(f"Configuration failed: {status_string}")


class PortNotFoundError(ArubaError):
    def __init__(self, port: Optional[str] = None, mac: Optional[str] = None):
        self.port = port
        self.mac = mac
        if mac:
            super().__init__(f"Port not found for MAC {mac}")
        else:
            super().__init__(f"Port not found: {port}")


class MultipleMACsOnPortError(ArubaError):
    """
    Disabling the port would cut off other devices sharing it.

    Only resolved by retrying with force=True.
    """

    def __init__(self, port: str, count: int):
        self.port = port
        self.count = count
        super().__init__(
            f"Multiple MAC addresses ({count}) found on port {port}. "
            "Use --force to disable anyway.",
            {"port": port, "count": count},
        )


class InvalidMACAddressError(ArubaError):
    def __init__(self, mac: str):
        self.mac = mac
        super().__init__(f"Invalid MAC address format: {mac}")


# === Port activity log ===

class PortLogError(ArubaError):
    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(message, {"path": str(path)})


class PortLogReadError(PortLogError):
    def __init__(self, path: Path, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to read port MAC log {path}: {cause}", path)


class PortLogWriteError(PortLogError):
    def __init__(self, path: Path, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to write port MAC log {path}: {cause}", path)
