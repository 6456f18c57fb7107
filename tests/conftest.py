"""
Shared fixtures.

- session: authenticated Session without any network round-trip
- switch: in-memory switch speaking the wcd XML dialect, usable as the
  transport of ArubaClient
- client: ArubaClient wired to ``switch``
- port_log: PortActivityLog in a temporary directory
"""

import re
from typing import Dict, List, Optional, Tuple

import pytest

from aruba1830.client import ArubaClient
from aruba1830.models import Session
from aruba1830.port_log import PortActivityLog

_SECTION_RE = re.compile(r"wcd\?\{(\w+)\}")
_PORT_STATE_RE = re.compile(r"<adminState>(\d)</adminState>\s*<interfaceName>([^<]+)</interfaceName>")
_POE_STATE_RE = re.compile(r"<interfaceName>([^<]+)</interfaceName>\s*<adminEnabled>(\d)</adminEnabled>")


def _document(section: str, entries: List[Dict[str, object]]) -> bytes:
    rows = "".join(
        "<Entry>" + "".join(f"<{k}>{v}</{k}>" for k, v in entry.items()) + "</Entry>"
        for entry in entries
    )
    return (
        "<?xml version='1.0' encoding='UTF-8'?>"
        f"<ResponseData><DeviceConfiguration><{section} type=\"section\">{rows}</{section}>"
        "</DeviceConfiguration></ResponseData>"
    ).encode("utf-8")


def action_status_xml(code: int = 0, text: str = "OK") -> bytes:
    return (
        "<?xml version='1.0' encoding='UTF-8'?><ResponseData><ActionStatus>"
        f"<version>1.0</version><statusCode>{code}</statusCode>"
        f"<deviceStatusCode>{code}</deviceStatusCode><statusString>{text}</statusString>"
        "</ActionStatus></ResponseData>"
    ).encode("utf-8")


class FakeSwitch:
    """
    Stands in for ArubaHTTPClient.

    Like the real switch, MACs learned on an administratively down port are
    not reported in the forwarding table.
    """

    def __init__(self, ports: int = 8):
        self.port_enabled: Dict[str, bool] = {str(p): True for p in range(1, ports + 1)}
        self.poe_enabled: Dict[str, bool] = {str(p): True for p in range(1, ports + 1)}
        self.learned: List[Tuple[int, str, str]] = []  # (vlan, mac, port)
        self.gets: List[str] = []
        self.posts: List[Tuple[str, str]] = []
        self.reject_writes: Optional[str] = None
        self.extra: Dict[str, bytes] = {}

    def learn(self, mac: str, port: str, vlan: int = 1) -> None:
        self.learned.append((vlan, mac, port))

    def forget(self, mac: str) -> None:
        self.learned = [row for row in self.learned if row[1] != mac]

    # transport interface

    def get(self, url: str, aruba_session: Session) -> bytes:
        self.gets.append(url)
        section = _SECTION_RE.search(url).group(1)
        if section in self.extra:
            return self.extra[section]
        if section == "ForwardingTable":
            return _document(section, [
                {
                    "VLANID": vlan,
                    "MACAddress": mac,
                    "interfaceType": 1,
                    "interfaceName": port,
                    "addressType": 3,
                }
                for vlan, mac, port in self.learned
                if self.port_enabled.get(port, False)
            ])
        if section == "Standard802_3List":
            return _document(section, [
                {"interfaceName": port, "adminState": 1 if up else 2, "operationalStatus": "up" if up else "down"}
                for port, up in self.port_enabled.items()
            ])
        if section == "PoEPSEInterfaceList":
            return _document(section, [
                {"interfaceName": port, "adminEnabled": 1 if up else 2, "detectionStatus": "deliveringPower",
                 "powerUsage": "3.5"}
                for port, up in self.poe_enabled.items()
            ])
        return _document(section, [])

    def post(self, url: str, aruba_session: Session, xml_body: str) -> bytes:
        self.posts.append((url, xml_body))
        if self.reject_writes is not None:
            return action_status_xml(1, self.reject_writes)
        for state, port in _PORT_STATE_RE.findall(xml_body):
            self.port_enabled[port] = state == "1"
        if "PoEPSEInterfaceList" in url:
            for port, state in _POE_STATE_RE.findall(xml_body):
                self.poe_enabled[port] = state == "1"
        return action_status_xml()

    def written_ports(self) -> List[Tuple[str, bool]]:
        """(port, enabled) for each port state POST, in order."""
        result = []
        for url, body in self.posts:
            if "Standard802_3List" in url:
                state, port = _PORT_STATE_RE.search(body).groups()
                result.append((port, state == "1"))
        return result


@pytest.fixture
def session() -> Session:
    return Session(host="10.0.0.2", session_token="cs2d4faf80", session_cookie="abc123", username="admin")


@pytest.fixture
def switch() -> FakeSwitch:
    return FakeSwitch()


@pytest.fixture
def client(switch) -> ArubaClient:
    return ArubaClient(switch)


@pytest.fixture
def port_log(tmp_path) -> PortActivityLog:
    log = PortActivityLog(tmp_path / "ports.json")
    log.load()
    return log
