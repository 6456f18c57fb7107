"""
Port enable / disable / ban flows.

These combine the live switch (ArubaClient), the PortActivityLog and the ban
planner:

- disabling a port records the MACs seen on it, because the switch stops
  reporting them once the port is down;
- enabling by MAC falls back to that record when the MAC is not live;
- banning a MAC that moved re-enables the old port before disabling the new one.

Port log failures never abort a switch operation; they are logged as warnings.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .aliases import MacAliasResolver
from .client import ArubaClient
from .errors import InvalidMACAddressError, MissingArgumentError, PortLogError, PortNotFoundError
from .mac import looks_like_mac
from .models import Session
from .planner import AlreadyBanned, plan
from .port_log import PortActivityLog

logger = logging.getLogger(__name__)

ALL_PORTS = "all"


@dataclass
class ActionResult:
    message: str
    ports: List[str] = field(default_factory=list)


def open_port_log(path: Path) -> PortActivityLog:
    """Create and load the port log; a read failure is only a warning."""
    port_log = PortActivityLog(path)
    try:
        port_log.load()
    except PortLogError as exc:
        logger.warning("Failed to load port MAC log at %s: %s", path, exc)
    return port_log


def _update_log(port: str, operation: Callable[[], None]) -> None:
    try:
        operation()
    except PortLogError as exc:
        logger.warning("Failed to update port MAC log for port %s: %s", port, exc)


def _saved_port(port_log: PortActivityLog, mac: str, description: str) -> Optional[str]:
    try:
        return port_log.port_for_mac(mac)
    except PortLogError as exc:
        logger.warning("Failed to read cached port for MAC %s: %s", description, exc)
        return None


def _require(identifier: Optional[str], verb: str) -> str:
    if not identifier or not identifier.strip():
        raise MissingArgumentError(
            f"Port number, MAC address, or 'all' required. Use 'aruba1830 port {verb} <PORT/MAC/all>'"
        )
    return identifier.strip()


def enable(
    client: ArubaClient,
    session: Session,
    port_log: PortActivityLog,
    identifier: Optional[str],
    aliases: Optional[MacAliasResolver] = None,
) -> ActionResult:
    """Enable a port given a port number, a MAC (or alias) or 'all'."""
    identifier = _require(identifier, "enable")
    aliases = aliases or MacAliasResolver.empty()

    if identifier.lower() == ALL_PORTS:
        enabled: List[str] = []
        for port in client.get_ports(session):
            if not port.is_enabled:
                client.set_port_state(session, port.port, enabled=True)
                enabled.append(port.port)
            _update_log(port.port, lambda p=port.port: port_log.remove_port(p))
        return ActionResult(f"Enabled {len(enabled)} port(s)", enabled)

    mac, description = aliases.describe(identifier)
    if looks_like_mac(mac):
        live = client.find_mac_address(session, mac)
        if live:
            port = live[0].port
            client.set_port_state(session, port, enabled=True)
            _update_log(port, lambda: port_log.remove_port(port))
            return ActionResult(f"Port {port} (MAC: {description}) enabled successfully", [port])

        cached = _saved_port(port_log, mac, description)
        if cached is not None:
            logger.info("MAC %s not in live table, using logged port %s", description, cached)
            client.set_port_state(session, cached, enabled=True)
            _update_log(cached, lambda: port_log.remove_port(cached))
            return ActionResult(f"Port {cached} (MAC: {description}) enabled using cached mapping", [cached])

        raise PortNotFoundError(mac=description)

    client.set_port_state(session, identifier, enabled=True)
    _update_log(identifier, lambda: port_log.remove_port(identifier))
    return ActionResult(f"Port {identifier} enabled successfully", [identifier])


def disable(
    client: ArubaClient,
    session: Session,
    port_log: PortActivityLog,
    identifier: Optional[str],
    force: bool = False,
    aliases: Optional[MacAliasResolver] = None,
) -> ActionResult:
    """
    Disable a port given a port number, a MAC (or alias) or 'all', recording
    the MACs that were on each disabled port.

    Raises:
        MultipleMACsOnPortError: disabling by MAC would cut off other MACs
            on the same port and ``force`` is False.
    """
    identifier = _require(identifier, "disable")
    aliases = aliases or MacAliasResolver.empty()

    if identifier.lower() == ALL_PORTS:
        macs_by_port: Dict[str, List[str]] = defaultdict(list)
        for entry in client.get_mac_table(session):
            macs_by_port[entry.port].append(entry.mac_address)

        disabled: List[str] = []
        for port in client.get_ports(session):
            if not port.is_enabled:
                continue
            client.set_port_state(session, port.port, enabled=False)
            _update_log(port.port, lambda p=port.port: port_log.record(p, macs_by_port.get(p, [])))
            disabled.append(port.port)
        return ActionResult(f"Disabled {len(disabled)} port(s)", disabled)

    mac, description = aliases.describe(identifier)
    if looks_like_mac(mac):
        result = client.disable_port_by_mac(session, mac, force=force)
        _update_log(result.port, lambda: port_log.record(result.port, [e.mac_address for e in result.macs]))
        return ActionResult(f"Port {result.port} (MAC: {description}) disabled successfully", [result.port])

    entries = client.get_mac_table_filtered(session, port=identifier)
    client.set_port_state(session, identifier, enabled=False)
    _update_log(identifier, lambda: port_log.record(identifier, [e.mac_address for e in entries]))
    return ActionResult(f"Port {identifier} disabled successfully", [identifier])


def ban(
    client: ArubaClient,
    session: Session,
    port_log: PortActivityLog,
    mac_address: str,
    force: bool = False,
    aliases: Optional[MacAliasResolver] = None,
) -> ActionResult:
    """
    Ban a MAC by disabling the port it is on.

    If the port log shows the MAC banned on another port, that port is
    re-enabled first. If the MAC is no longer live but logged, nothing is
    changed.

    Raises:
        InvalidMACAddressError: ``mac_address`` is neither a MAC nor an alias.
        PortNotFoundError: MAC neither live nor logged.
        MultipleMACsOnPortError: see ``disable``.
    """
    aliases = aliases or MacAliasResolver.empty()
    mac, description = aliases.describe(mac_address)
    if not looks_like_mac(mac):
        raise InvalidMACAddressError(mac_address)

    saved_port = _saved_port(port_log, mac, description)
    live = client.find_mac_address(session, mac)

    action = plan(saved_port, live)
    if action is None:
        raise PortNotFoundError(mac=description)

    if isinstance(action, AlreadyBanned):
        return ActionResult(f"MAC {description} is already banned on port {action.port} (cached)", [action.port])

    messages: List[str] = []
    if action.previous_port is not None:
        previous = action.previous_port
        client.set_port_state(session, previous, enabled=True)
        _update_log(previous, lambda: port_log.remove_mac(mac, previous))
        logger.info("MAC %s moved from port %s to %s", description, previous, action.port)
        messages.append(f"Port {previous} re-enabled because MAC moved to port {action.port}")

    result = client.disable_port_by_mac(session, mac, force=force)
    if result.port != action.port:
        logger.warning("MAC %s found on unexpected port %s; expected %s", description, result.port, action.port)
    _update_log(result.port, lambda: port_log.record(result.port, [e.mac_address for e in result.macs]))

    messages.append(f"Port {result.port} (MAC: {description}) banned successfully")
    ports = [action.previous_port, result.port] if action.previous_port else [result.port]
    return ActionResult("\n".join(messages), ports)
