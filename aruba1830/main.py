import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__, port_actions
from .client import ArubaClient
from .config import Settings, load_mac_alias_resolver, load_settings
from .errors import ArubaError, MultipleMACsOnPortError
from .http_client import ArubaHTTPClient
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aruba1830", description="Manage Aruba 1830 switches")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", help="Switch IP address or hostname")
    parser.add_argument("--user", help="Username for authentication")
    parser.add_argument("--password", help="Password for authentication")
    parser.add_argument("--session-token", help="Session token (skips token scraping)")
    parser.add_argument("--session-cookie", help="Session cookie (from browser)")
    parser.add_argument("--config", help="YAML config file (default: $ARUBA_CONFIG_FILE)")
    parser.add_argument("--port-mac-file", help="Path to port MAC log file")
    parser.add_argument("--mac-alias-file", help="Path to MAC alias file")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: $LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--log-dir", help="Also write a timestamped log file to this directory")

    sub = parser.add_subparsers(dest="command", required=True)

    mac_table = sub.add_parser("mac-table", help="Display MAC address table")
    mac_table.add_argument("--vlan", type=int, help="Filter by VLAN ID")
    mac_table.add_argument("--port", help="Filter by port number")

    port = sub.add_parser("port", help="Port management operations").add_subparsers(dest="action", required=True)
    port.add_parser("list", help="List all ports")
    enable = port.add_parser("enable", help="Enable a port by port number, MAC address/alias, or 'all'")
    enable.add_argument("target", nargs="?")
    disable = port.add_parser("disable", help="Disable a port by port number, MAC address/alias, or 'all'")
    disable.add_argument("target", nargs="?")
    disable.add_argument("--force", action="store_true", help="Disable even if multiple MACs are on the port")
    ban = port.add_parser("ban", help="Ban a MAC address by disabling its port and tracking moves")
    ban.add_argument("mac")
    ban.add_argument("--force", action="store_true", help="Disable even if multiple MACs are on the port")

    system = sub.add_parser("system", help="System information").add_subparsers(dest="action", required=True)
    system.add_parser("info", help="Display system information")
    logs = system.add_parser("logs", help="Display system logs")
    logs.add_argument("--tail", type=int, help="Number of recent log entries to show")

    vlan = sub.add_parser("vlan", help="VLAN operations").add_subparsers(dest="action", required=True)
    vlan.add_parser("list", help="List all VLANs")

    poe = sub.add_parser("poe", help="PoE management").add_subparsers(dest="action", required=True)
    poe.add_parser("status", help="Display PoE status")
    for name in ("enable", "disable"):
        poe.add_parser(name, help=f"{name.capitalize()} PoE on a port").add_argument("port")

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    return load_settings(
        args.config,
        host=args.host,
        username=args.user,
        password=args.password,
        session_token=args.session_token,
        session_cookie=args.session_cookie,
        port_mac_file=args.port_mac_file,
        mac_alias_file=args.mac_alias_file,
        log_level=args.log_level,
        log_dir=args.log_dir,
    )


def run(args: argparse.Namespace, settings: Settings, client: ArubaClient) -> int:
    session = client.login(
        settings.host,
        settings.username,
        settings.password,
        session_token=settings.session_token,
        session_cookie=settings.session_cookie,
    )

    if args.command == "mac-table":
        if args.vlan is not None or args.port is not None:
            entries = client.get_mac_table_filtered(session, vlan_id=args.vlan, port=args.port)
        else:
            entries = client.get_mac_table(session)
        for e in entries:
            print(f"{e.vlan_id:<4}  {e.mac_address:<17}  {e.port:<4}  {'Dynamic' if e.is_dynamic else 'Static'}")
        print(f"Total: {len(entries)} entries")
        return 0

    if args.command == "port":
        if args.action == "list":
            ports = client.get_ports(session)
            for p in ports:
                print(f"{p.port:<4}  {'Enabled' if p.is_enabled else 'Disabled'}")
            print(f"Total: {len(ports)} ports")
            return 0

        aliases = load_mac_alias_resolver(settings.mac_alias_file)
        port_log = port_actions.open_port_log(settings.port_mac_file)
        try:
            if args.action == "enable":
                result = port_actions.enable(client, session, port_log, args.target, aliases)
            elif args.action == "disable":
                result = port_actions.disable(client, session, port_log, args.target, args.force, aliases)
            else:
                result = port_actions.ban(client, session, port_log, args.mac, args.force, aliases)
        except MultipleMACsOnPortError as exc:
            print(f"Warning: {exc.count} MAC addresses found on port {exc.port}")
            print("Use --force to disable anyway")
            return 1
        print(result.message)
        return 0

    if args.command == "system":
        if args.action == "info":
            info = client.get_system_info(session)
            if info is None:
                print("No system information available")
                return 0
            print(f"Device Name:      {info.device_name}")
            print(f"Model:            {info.model}")
            print(f"Serial Number:    {info.serial_number}")
            print(f"Firmware Version: {info.firmware_version}")
            print(f"MAC Address:      {info.mac_address}")
            return 0

        entries = client.get_logs(session)
        if args.tail is not None:
            entries = entries[-args.tail:] if args.tail > 0 else []
        for entry in entries:
            print(f"{entry.timestamp}  {entry.severity:<8}  {entry.message}")
        print(f"Total: {len(entries)} entries")
        return 0

    if args.command == "vlan":
        vlans = client.get_vlans(session)
        for v in vlans:
            print(f"{v.vlan_id:<7}  {v.vlan_name:<18}  {v.status or 'N/A'}")
        print(f"Total: {len(vlans)} VLANs")
        return 0

    # poe
    if args.action == "status":
        ports = client.get_poe_ports(session)
        for p in ports:
            usage = f"{p.power_usage:.2f}" if p.power_usage is not None else "N/A"
            status = "Enabled" if p.poe_enabled else "Disabled"
            print(f"{p.interface_name:<4}  {status:<10}  {p.power_status or 'N/A':<12}  {usage}")
        print(f"Total: {len(ports)} PoE ports")
        return 0

    client.set_poe_state(session, args.port, enabled=args.action == "enable")
    print(f"PoE {args.action}d on port {args.port} successfully")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        # Configure logging early so load_settings() warnings/errors are visible.
        level = args.log_level or os.getenv("LOG_LEVEL", "WARNING")
        configure_logging(level)
        settings = _settings_from_args(args)
        if settings.log_level.upper() != level.upper() or settings.log_dir:
            configure_logging(settings.log_level, settings.log_dir)
        client = ArubaClient(ArubaHTTPClient(settings.timeout, settings.resource_timeout))
        return run(args, settings, client)
    except ArubaError as exc:
        logger.debug("Command failed: %r", exc.to_dict())
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except (RuntimeError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
