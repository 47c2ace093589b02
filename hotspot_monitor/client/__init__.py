"""
Router client package for Hotspot Monitor.

- transport.py: raw socket HTTP/1.1 requests
- parser.py: response framing, JSON recovery and device strings
- http.py: reqproc endpoints and request headers
- auth.py: session cookie and single-flight login
- main.py: HotspotMonitorClient, the poll cycle orchestrator

License: MIT
"""

from .main import HotspotMonitorClient

__all__ = ["HotspotMonitorClient"]
