"""
Hotspot Monitor Library
=======================

Python library for polling Prolink-style mobile hotspot routers over raw
socket HTTP and deriving per-device network metrics.

Features:
    * Tolerant raw-socket HTTP that copes with the router's loose framing
    * Session cookie handling with single-flight login and one automatic
      re-login when the session silently expires
    * Per-device download/upload speeds with exponential smoothing,
      a noise floor and disconnect detection
    * Hotspot-wide daily, weekly and monthly usage tracking
    * Battery and power-on time tracking from the system status poll
    * Device type guesses from hostname and MAC vendor
    * Reboot command and a download speed test

Quick Start:
    >>> import asyncio
    >>> from hotspot_monitor import HotspotMonitorClient
    >>> async def show():
    ...     async with HotspotMonitorClient(password="admin") as client:
    ...         for device in await client.poll_devices():
    ...             print(device.hostname, device.download_speed)
    >>> asyncio.run(show())

Error Handling:
    Poll failures raise HotspotError subclasses. A failed login is not an
    error: polling continues without a session.

    >>> from hotspot_monitor import HotspotConnectionError
    >>> try:
    ...     devices = await client.poll_devices()
    ... except HotspotConnectionError as e:
    ...     print(f"Router unreachable: {e}")

This is an unofficial library not affiliated with Prolink.

License: MIT
"""

from .battery import BatteryTracker
from .classifier import classify_device
from .client.main import HotspotMonitorClient
from .exceptions import (
    HotspotAuthenticationError,
    HotspotConfigurationError,
    HotspotConnectionError,
    HotspotConnectTimeoutError,
    HotspotError,
    HotspotMalformedResponseError,
    HotspotOperationError,
    HotspotReadTimeoutError,
    HotspotSessionExpiredError,
    HotspotTimeoutError,
)
from .metrics import MetricEngine
from .models import (
    LATENCY_UNAVAILABLE,
    BatteryStats,
    BatteryWindow,
    DeviceClassification,
    DeviceStats,
    PollState,
    RawDeviceRecord,
    RouterSnapshot,
    SystemStatus,
    UsagePeriod,
    UsageSnapshot,
    UsageSummary,
    UsageWindow,
)
from .poller import HotspotPoller
from .store import InMemoryUsageStore, UsageStore
from .usage import UsageTracker, aggregate_window, summarize_device_usage

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    "LATENCY_UNAVAILABLE",
    "BatteryStats",
    "BatteryTracker",
    "BatteryWindow",
    "DeviceClassification",
    "DeviceStats",
    "HotspotAuthenticationError",
    "HotspotConfigurationError",
    "HotspotConnectTimeoutError",
    "HotspotConnectionError",
    "HotspotError",
    "HotspotMalformedResponseError",
    "HotspotMonitorClient",
    "HotspotOperationError",
    "HotspotPoller",
    "HotspotReadTimeoutError",
    "HotspotSessionExpiredError",
    "HotspotTimeoutError",
    "InMemoryUsageStore",
    "MetricEngine",
    "PollState",
    "RawDeviceRecord",
    "RouterSnapshot",
    "SystemStatus",
    "UsagePeriod",
    "UsageSnapshot",
    "UsageStore",
    "UsageSummary",
    "UsageTracker",
    "UsageWindow",
    "__license__",
    "__version__",
    "aggregate_window",
    "classify_device",
    "summarize_device_usage",
]
