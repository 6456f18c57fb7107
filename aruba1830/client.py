import logging
from dataclasses import dataclass
from typing import List, Optional
from xml.sax.saxutils import escape

from . import xml_parser
from .auth import login
from .errors import ConfigurationError, InvalidMACAddressError, MultipleMACsOnPortError, PortNotFoundError
from .http_client import ArubaHTTPClient
from .mac import looks_like_mac, normalize_mac
from .models import (
    LogEntry,
    MACTableEntry,
    PoEPortInfo,
    PortInfo,
    Session,
    SystemInfo,
    VLANInfo,
)

logger = logging.getLogger(__name__)

ADMIN_UP = 1
ADMIN_DOWN = 2


@dataclass
class DisableResult:
    """Port disabled by ``disable_port_by_mac`` and the MACs that were on it."""

    port: str
    macs: List[MACTableEntry]


def _port_state_body(port: str, enabled: bool) -> str:
    port = escape(port)
    return f"""<?xml version='1.0' encoding='utf-8'?>
<DeviceConfiguration>
  <Standard802_3List action="set">
    <Entry>
      <adminState>{ADMIN_UP if enabled else ADMIN_DOWN}</adminState>
      <interfaceName>{port}</interfaceName>
      <interfaceDescription></interfaceDescription>
      <autoNegotiationAdminEnabled>1</autoNegotiationAdminEnabled>
      <adminAdvertisementList>100000000000000000000000</adminAdvertisementList>
    </Entry>
  </Standard802_3List>
  <STP action="set">
    <InterfaceList>
      <InterfaceEntry>
        <interfaceName>{port}</interfaceName>
        <STPEnabled>1</STPEnabled>
        <timeRangeName></timeRangeName>
      </InterfaceEntry>
    </InterfaceList>
  </STP>
  <TimeBasedPortTable action="delete">
    <Entry>
      <interfaceName>{port}</interfaceName>
      <timeRangeName></timeRangeName>
    </Entry>
  </TimeBasedPortTable>
</DeviceConfiguration>
"""


def _poe_state_body(port: str, enabled: bool) -> str:
    return f"""<?xml version='1.0' encoding='utf-8'?>
<DeviceConfiguration>
  <PoEPSEInterfaceList action="set">
    <Entry>
      <interfaceName>{escape(port)}</interfaceName>
      <adminEnabled>{ADMIN_UP if enabled else ADMIN_DOWN}</adminEnabled>
    </Entry>
  </PoEPSEInterfaceList>
</DeviceConfiguration>
"""


class ArubaClient:
    """
    Client for the Aruba 1830 web-management interface.

    Reads are ``GET {base_url}/wcd?{Section}``; writes are
    ``POST {base_url}/wcd?{Section}...`` with a <DeviceConfiguration> body.
    The Session is passed to every call; the client keeps no login state.
    """

    def __init__(self, http: Optional[ArubaHTTPClient] = None):
        self.http = http or ArubaHTTPClient()

    def login(
        self,
        host: str,
        username: str,
        password: str,
        session_token: Optional[str] = None,
        session_cookie: Optional[str] = None,
    ) -> Session:
        return login(host, username, password, session_token, session_cookie, http=self.http)

    def _log(self, session: Session) -> logging.Logger:
        return logging.getLogger(f"{__name__}.{session.host}")

    def _read(self, session: Session, section: str) -> bytes:
        self._log(session).debug("Reading section %s", section)
        return self.http.get(f"{session.base_url}/wcd?{{{section}}}", session)

    def _write(self, session: Session, sections: List[str], body: str) -> None:
        query = "".join(f"{{{s}}}" for s in sections)
        data = self.http.post(f"{session.base_url}/wcd?{query}", session, body)
        status = xml_parser.parse_action_status(data)
        if not status.is_success:
            self._log(session).error(
                "Switch rejected %s: status=%s (%s) device_status=%s",
                query,
                status.status_code,
                status.status_string,
                status.device_status_code,
            )
            raise ConfigurationError(status.status_string)

    # MAC table

    def get_mac_table(self, session: Session) -> List[MACTableEntry]:
        return xml_parser.parse_forwarding_table(self._read(session, "ForwardingTable"))

    def get_mac_table_filtered(
        self, session: Session, vlan_id: Optional[int] = None, port: Optional[str] = None
    ) -> List[MACTableEntry]:
        entries = self.get_mac_table(session)
        if vlan_id is not None:
            entries = [e for e in entries if e.vlan_id == vlan_id]
        if port is not None:
            entries = [e for e in entries if e.interface_name == port]
        return entries

    def find_mac_address(self, session: Session, mac_address: str) -> List[MACTableEntry]:
        wanted = normalize_mac(mac_address)
        return [e for e in self.get_mac_table(session) if normalize_mac(e.mac_address) == wanted]

    # Ports

    def get_ports(self, session: Session) -> List[PortInfo]:
        return xml_parser.parse_ports(self._read(session, "Standard802_3List"))

    def set_port_state(self, session: Session, port: str, enabled: bool) -> None:
        self._log(session).info("%s port %s", "Enabling" if enabled else "Disabling", port)
        self._write(
            session,
            ["Standard802_3List", "STP", "TimeBasedPortTable"],
            _port_state_body(port, enabled),
        )

    def disable_port_by_mac(self, session: Session, mac_address: str, force: bool = False) -> DisableResult:
        """
        Disable the port ``mac_address`` is currently learned on.

        Raises:
            InvalidMACAddressError: malformed MAC.
            PortNotFoundError: MAC not present in the MAC table.
            MultipleMACsOnPortError: other MACs share the port and ``force`` is False.
        """
        if not looks_like_mac(mac_address):
            raise InvalidMACAddressError(mac_address)

        entries = self.find_mac_address(session, mac_address)
        if not entries:
            raise PortNotFoundError(mac=normalize_mac(mac_address))

        port = entries[0].interface_name
        macs_on_port = self.get_mac_table_filtered(session, port=port)
        if len(macs_on_port) > 1 and not force:
            raise MultipleMACsOnPortError(port, len(macs_on_port))

        self.set_port_state(session, port, enabled=False)
        return DisableResult(port=port, macs=macs_on_port)

    # System

    def get_system_info(self, session: Session) -> Optional[SystemInfo]:
        return xml_parser.parse_system_info(self._read(session, "Units"))

    def get_logs(self, session: Session) -> List[LogEntry]:
        return xml_parser.parse_logs(self._read(session, "MemoryLogTable"))

    # VLAN

    def get_vlans(self, session: Session) -> List[VLANInfo]:
        return xml_parser.parse_vlans(self._read(session, "VLANList"))

    # PoE

    def get_poe_ports(self, session: Session) -> List[PoEPortInfo]:
        return xml_parser.parse_poe_ports(self._read(session, "PoEPSEInterfaceList"))

    def set_poe_state(self, session: Session, port: str, enabled: bool) -> None:
        self._log(session).info("%s PoE on port %s", "Enabling" if enabled else "Disabling", port)
        self._write(session, ["PoEPSEInterfaceList"], _poe_state_body(port, enabled))
