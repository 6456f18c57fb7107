"""
Aruba 1830 switch management over the web-UI HTTP/XML interface.

This package provides:
- Session establishment by scraping the web UI token and cookie
- XML entry parser for the switch's wcd responses
- Switch client (MAC table, ports, VLANs, PoE, system info, logs)
- Port activity log remembering MACs behind disabled ports
- MAC ban planning and port enable/disable flows
"""

__version__ = "1.0.0"
