import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from .mac import is_canonical_mac, normalize_mac

logger = logging.getLogger(__name__)


class MacAliasResolver:
    """
    Friendly names for MAC addresses.

    File format, one alias per line::

        # comment
        6c:4a:85:4f:7d:f4    AppleTV
        5C-ED-F4-B0-88-CE    living-room-tablet

    Aliases are case-insensitive. Lines that do not parse are skipped.
    """

    def __init__(self, alias_to_mac: Optional[Dict[str, str]] = None):
        self._alias_to_mac: Dict[str, str] = dict(alias_to_mac or {})

    @classmethod
    def empty(cls) -> "MacAliasResolver":
        return cls()

    def resolve(self, value: str) -> Optional[str]:
        """Canonical MAC for alias ``value``, or None if it is not an alias."""
        return self._alias_to_mac.get(value.strip().lower())

    def describe(self, value: str) -> Tuple[str, str]:
        """
        Resolve ``value`` and return ``(mac_candidate, description)``.

        The description names the alias when one was used, e.g.
        ``"6c:4a:85:4f:7d:f4 (alias: AppleTV)"``.
        """
        resolved = self.resolve(value)
        if resolved is None:
            return value, value
        if resolved.lower() == value.strip().lower():
            return resolved, resolved
        return resolved, f"{resolved} (alias: {value})"

    @classmethod
    def load(cls, path: Path) -> "MacAliasResolver":
        """Raises OSError / UnicodeDecodeError when the file cannot be read."""
        mapping: Dict[str, str] = {}
        for lineno, raw_line in enumerate(Path(path).read_text(encoding="utf-8").splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            parsed = _parse_line(line)
            if parsed is None:
                logger.debug("Skipping malformed alias line %s:%d: %r", path, lineno, raw_line)
                continue
            mac, alias = parsed
            mapping[alias.lower()] = mac

        logger.info("Loaded %d MAC alias(es) from %s", len(mapping), path)
        return cls(mapping)


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    parts = line.split(None, 1)
    if len(parts) != 2:
        return None
    mac_part, alias = parts[0], parts[1].strip()
    if not alias:
        return None
    mac = normalize_mac(mac_part)
    if not is_canonical_mac(mac):
        return None
    return mac, alias
