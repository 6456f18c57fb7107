"""
Entry parser for the switch's XML responses.

Every ``wcd?{Section}`` response wraps its rows in ``<Entry>`` elements and
every configuration POST answers with an ``<ActionStatus>`` block. The
parser flattens each of those into a ``{tag: text}`` dict, keeping only leaf
text, and the ``parse_*`` builders turn the dicts into typed records.

Example response:

    <ResponseData>
      <DeviceConfiguration>
        <ForwardingTable type="section">
          <Entry>
            <VLANID>1</VLANID>
            <MACAddress>00:11:22:33:44:55</MACAddress>
            ...
          </Entry>
        </ForwardingTable>
      </DeviceConfiguration>
    </ResponseData>
"""
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, TypeVar

from .errors import ParseError
from .models import (
    ActionStatus,
    LogEntry,
    MACTableEntry,
    PoEPortInfo,
    PortInfo,
    SystemInfo,
    VLANInfo,
)

logger = logging.getLogger(__name__)

Entry = Dict[str, str]
T = TypeVar("T")

ENTRY_TAG = "Entry"
ACTION_STATUS_TAG = "ActionStatus"
_RECORD_TAGS = {ENTRY_TAG, ACTION_STATUS_TAG}

_CHUNK_SIZE = 64 * 1024


@dataclass
class ParsedDocument:
    entries: List[Entry] = field(default_factory=list)
    action_status: Optional[ActionStatus] = None


@dataclass
class _Frame:
    tag: str
    fields: Entry = field(default_factory=dict)


def _local_name(tag: str) -> str:
    # "{urn:ns}Entry" -> "Entry"
    return tag.rsplit("}", 1)[-1]


def _to_int(value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _action_status_from(fields: Entry) -> ActionStatus:
    return ActionStatus(
        status_code=_to_int(fields.get("statusCode"), 0),
        status_string=fields.get("statusString", "Unknown"),
        device_status_code=_to_int(fields.get("deviceStatusCode"), 0),
    )


def parse_entries(data: bytes) -> ParsedDocument:
    """
    Single streaming pass over ``data``.

    Raises:
        ParseError: the document is not well-formed XML (including empty input).
    """
    parser = ET.XMLPullParser(events=("start", "end"))
    doc = ParsedDocument()
    frames: List[_Frame] = []

    def handle_events() -> None:
        for event, elem in parser.read_events():
            tag = _local_name(elem.tag)
            if event == "start":
                if tag in _RECORD_TAGS:
                    frames.append(_Frame(tag))
                continue

            if tag in _RECORD_TAGS and frames and frames[-1].tag == tag:
                frame = frames.pop()
                if tag == ENTRY_TAG:
                    doc.entries.append(frame.fields)
                else:
                    doc.action_status = _action_status_from(frame.fields)
                elem.clear()
                continue

            if frames and len(elem) == 0:
                text = (elem.text or "").strip()
                if text:
                    frames[-1].fields[tag] = text

    try:
        for start in range(0, len(data), _CHUNK_SIZE):
            parser.feed(data[start:start + _CHUNK_SIZE])
            handle_events()
        parser.close()
        handle_events()
    except ET.ParseError as exc:
        raise ParseError(f"malformed XML: {exc}") from exc

    logger.debug("Parsed %d entries (action status: %s)", len(doc.entries), doc.action_status is not None)
    return doc


# --- field extraction -------------------------------------------------------

def _first(entry: Entry, *names: str) -> Optional[str]:
    """Value of the first of ``names`` present in ``entry``."""
    for name in names:
        if name in entry:
            return entry[name]
    return None


def _build_all(entries: List[Entry], builder: Callable[[Entry], Optional[T]], kind: str) -> List[T]:
    records: List[T] = []
    for entry in entries:
        record = builder(entry)
        if record is None:
            logger.debug("Skipping %s entry with missing/invalid fields: %s", kind, entry)
            continue
        records.append(record)
    return records


def _mac_entry(entry: Entry) -> Optional[MACTableEntry]:
    vlan_id = _to_int(entry.get("VLANID"))
    mac = entry.get("MACAddress")
    interface_type = _to_int(entry.get("interfaceType"))
    interface_name = entry.get("interfaceName")
    address_type = _to_int(entry.get("addressType"))
    if None in (vlan_id, mac, interface_type, interface_name, address_type):
        return None
    return MACTableEntry(
        vlan_id=vlan_id,
        mac_address=mac,
        interface_type=interface_type,
        interface_name=interface_name,
        address_type=address_type,
    )


def _port(entry: Entry) -> Optional[PortInfo]:
    name = entry.get("interfaceName")
    admin_state = _to_int(entry.get("adminState"))
    if name is None or admin_state is None:
        return None
    return PortInfo(
        interface_name=name,
        admin_state=admin_state,
        operational_status=entry.get("operationalStatus"),
        speed=entry.get("speed"),
        duplex=entry.get("duplex"),
    )


def _vlan(entry: Entry) -> Optional[VLANInfo]:
    vlan_id = _to_int(entry.get("VLANID"))
    if vlan_id is None:
        return None
    return VLANInfo(vlan_id=vlan_id, vlan_name=entry.get("vlanName", ""), status=entry.get("status"))


def _log(entry: Entry) -> Optional[LogEntry]:
    timestamp = _first(entry, "timestamp", "logTime")
    message = _first(entry, "message", "logText")
    if timestamp is None or message is None:
        return None
    severity = _first(entry, "severity", "logLevel") or "INFO"
    return LogEntry(timestamp=timestamp, severity=severity, message=message)


def _poe_port(entry: Entry) -> Optional[PoEPortInfo]:
    name = entry.get("interfaceName")
    if name is None:
        return None

    power_usage: Optional[float] = None
    raw_usage = entry.get("powerUsage")
    if raw_usage is not None:
        try:
            power_usage = float(raw_usage)
        except ValueError:
            power_usage = None

    return PoEPortInfo(
        interface_name=name,
        poe_enabled=_first(entry, "poeEnabled", "adminEnabled") == "1",
        power_status=_first(entry, "powerStatus", "detectionStatus"),
        power_usage=power_usage,
    )


# --- builders per query ------------------------------------------------------

def parse_forwarding_table(data: bytes) -> List[MACTableEntry]:
    return _build_all(parse_entries(data).entries, _mac_entry, "ForwardingTable")


def parse_ports(data: bytes) -> List[PortInfo]:
    return _build_all(parse_entries(data).entries, _port, "Standard802_3List")


def parse_vlans(data: bytes) -> List[VLANInfo]:
    return _build_all(parse_entries(data).entries, _vlan, "VLANList")


def parse_logs(data: bytes) -> List[LogEntry]:
    return _build_all(parse_entries(data).entries, _log, "MemoryLogTable")


def parse_poe_ports(data: bytes) -> List[PoEPortInfo]:
    return _build_all(parse_entries(data).entries, _poe_port, "PoEPSEInterfaceList")


def parse_system_info(data: bytes) -> Optional[SystemInfo]:
    """Build SystemInfo from the first entry of a ``Units`` response (None if empty)."""
    entries = parse_entries(data).entries
    if not entries:
        return None
    entry = entries[0]
    return SystemInfo(
        device_name=entry.get("deviceName", ""),
        model=_first(entry, "model", "modelName") or "",
        serial_number=entry.get("serialNumber", ""),
        firmware_version=_first(entry, "firmwareVersion", "swVersion") or "",
        mac_address=_first(entry, "macAddress", "systemMACAddress") or "",
    )


def parse_action_status(data: bytes) -> ActionStatus:
    """
    Extract the ActionStatus of a configuration response.

    Falls back to status fields in the first <Entry> for firmware that
    does not emit an <ActionStatus> element.
    """
    doc = parse_entries(data)
    if doc.action_status is not None:
        return doc.action_status
    if doc.entries:
        return _action_status_from(doc.entries[0])
    raise ParseError("No ActionStatus found in response")
