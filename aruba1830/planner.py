"""Decide what a MAC ban has to do, given the saved port and the live MAC table."""
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from .models import MACTableEntry


@dataclass(frozen=True)
class AlreadyBanned:
    """MAC is gone from the live table but the log has it on ``port``."""

    port: str


@dataclass(frozen=True)
class BanOn:
    """
    Disable ``port``. When ``previous_port`` is set the MAC moved since the
    last ban and that port must be re-enabled first.
    """

    port: str
    previous_port: Optional[str] = None


BanAction = Union[AlreadyBanned, BanOn]


def plan(saved_port: Optional[str], live_entries: Sequence[MACTableEntry]) -> Optional[BanAction]:
    """
    Only the first live entry is consulted. Returns None when the MAC is
    neither live nor logged.
    """
    if live_entries:
        current_port = live_entries[0].interface_name
        if saved_port is not None and saved_port != current_port:
            return BanOn(port=current_port, previous_port=saved_port)
        return BanOn(port=current_port)

    if saved_port is not None:
        return AlreadyBanned(port=saved_port)

    return None
