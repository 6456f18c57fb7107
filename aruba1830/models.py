from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Session:
    """
    Authenticated web-UI session on one switch.

    - session_token: opaque path segment the switch puts in every URL
    - session_cookie: value of the sessionID cookie set by the login endpoint
    """

    host: str
    session_token: str
    session_cookie: str
    username: str

    @property
    def base_url(self) -> str:
        return f"http://{self.host}/{self.session_token}/hpe"

    @property
    def cookie_header(self) -> str:
        return f"sessionID={self.session_cookie}; userName={self.username}"

    def __repr__(self) -> str:
        return f"Session(host={self.host!r}, session_token={self.session_token!r}, username={self.username!r})"


@dataclass
class MACTableEntry:
    """One row of the switch forwarding table."""

    vlan_id: int
    mac_address: str
    interface_type: int
    interface_name: str
    address_type: int

    @property
    def is_dynamic(self) -> bool:
        return self.address_type == 3

    @property
    def port(self) -> str:
        return self.interface_name


@dataclass
class PortInfo:
    interface_name: str
    admin_state: int  # 1 = up, 2 = down
    operational_status: Optional[str] = None
    speed: Optional[str] = None
    duplex: Optional[str] = None

    @property
    def is_enabled(self) -> bool:
        return self.admin_state == 1

    @property
    def port(self) -> str:
        return self.interface_name


@dataclass
class VLANInfo:
    vlan_id: int
    vlan_name: str
    status: Optional[str] = None


@dataclass
class SystemInfo:
    device_name: str
    model: str
    serial_number: str
    firmware_version: str
    mac_address: str


@dataclass
class LogEntry:
    timestamp: str
    severity: str
    message: str


@dataclass
class PoEPortInfo:
    interface_name: str
    poe_enabled: bool
    power_status: Optional[str] = None
    power_usage: Optional[float] = None


@dataclass
class ActionStatus:
    """Result the switch reports for a configuration POST."""

    status_code: int
    status_string: str
    device_status_code: int

    @property
    def is_success(self) -> bool:
        return self.status_code == 0
