"""MAC address canonicalization and validation."""
import re

_HEX_DIGITS = set("0123456789abcdef")

CANONICAL_MAC_RE = re.compile(r"^[0-9a-f]{2}(:[0-9a-f]{2}){5}$")

# Forms accepted on input: aa:bb:cc:dd:ee:ff, AA-BB-CC-DD-EE-FF, aabbccddeeff
MAC_INPUT_RE = re.compile(r"^(?:[0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$|^[0-9A-Fa-f]{12}$")


def normalize_mac(mac: str) -> str:
    """
    Return the canonical form ``xx:xx:xx:xx:xx:xx`` (lowercase).

    Separators are ignored. Values that do not contain exactly 12 hex digits
    are returned lowercased but otherwise unchanged.
    """
    lowered = mac.strip().lower()
    digits = "".join(ch for ch in lowered if ch in _HEX_DIGITS)
    if len(digits) != 12:
        return lowered
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def is_canonical_mac(value: str) -> bool:
    return bool(CANONICAL_MAC_RE.match(value))


def looks_like_mac(value: str) -> bool:
    """True when ``value`` is a MAC in one of the accepted input forms."""
    return bool(MAC_INPUT_RE.match(value.strip()))
