"""
Data Models for Hotspot Monitor
===============================

This module contains all dataclasses and data models used by the
Hotspot Monitor client, the metric engine and the usage tracker.

"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Sentinel for a latency probe that could not be completed.
LATENCY_UNAVAILABLE = -1


@dataclass
class TimingMetrics:
    """Detailed timing metrics for performance analysis."""

    operation: str
    start_time: float
    end_time: float
    duration: float
    success: bool
    error_type: Optional[str] = None
    response_size: int = 0

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        return self.duration * 1000


@dataclass(frozen=True)
class RawDeviceRecord:
    """
    One connected client as reported by a single ``sta_infoN`` slot.

    The router reports counters from its own point of view, so its
    ``tx_bytes`` is what the client downloaded and its ``rx_bytes`` is what
    the client uploaded. The parser applies that swap; everything after the
    parser only sees download/upload.

    Attributes:
        mac: Canonical lowercase MAC address ("aa:bb:cc:dd:ee:ff")
        download_bytes: Cumulative bytes downloaded by the client
        upload_bytes: Cumulative bytes uploaded by the client
        slot: Slot number (1..6) the record came from
        ip: IPv4 address when reported
        connection_time: Seconds since the client associated, when reported
        link_timestamp: Raw ``tm`` field when reported
    """

    mac: str
    download_bytes: int
    upload_bytes: int
    slot: int
    ip: Optional[str] = None
    connection_time: Optional[int] = None
    link_timestamp: Optional[str] = None

    @property
    def total_bytes(self) -> int:
        """Download plus upload counters."""
        return self.download_bytes + self.upload_bytes


@dataclass(frozen=True)
class StationInfo:
    """An entry of the router's ``station_list``."""

    mac: str
    hostname: str = ""
    ip: Optional[str] = None
    connect_time: Optional[int] = None
    ssid_index: Optional[str] = None
    dev_type: Optional[str] = None
    ip_type: Optional[str] = None


@dataclass(frozen=True)
class DeviceSample:
    """Counter reading for one device at one poll."""

    mac: str
    download_bytes: int
    upload_bytes: int
    timestamp: float


@dataclass(frozen=True)
class DeviceClassification:
    """Coarse device category guessed from the hostname and MAC vendor."""

    device_type: str
    brand: str


@dataclass
class DeviceStats:
    """
    Derived, consumer-facing view of one device.

    Speeds are in bytes per second after smoothing and the noise floor.
    ``latency_ms`` is -1 when the probe failed and 0 for a device that has
    just disconnected.
    """

    mac: str
    hostname: str
    download_bytes: int
    upload_bytes: int
    download_speed: float
    upload_speed: float
    latency_ms: float
    last_update: float
    is_connected: bool = True
    ip: Optional[str] = None
    active_duration: Optional[int] = None
    connected_since: Optional[float] = None
    device_type: str = ""
    brand: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "mac": self.mac,
            "hostname": self.hostname,
            "ip": self.ip,
            "download_bytes": self.download_bytes,
            "upload_bytes": self.upload_bytes,
            "download_speed": self.download_speed,
            "upload_speed": self.upload_speed,
            "latency_ms": self.latency_ms,
            "last_update": self.last_update,
            "is_connected": self.is_connected,
            "active_duration": self.active_duration,
            "connected_since": self.connected_since,
            "device_type": self.device_type,
            "brand": self.brand,
        }


@dataclass
class SystemStatus:
    """Router-wide status: carrier, battery, signal and uptime."""

    network_provider: str = ""
    spn_name: str = ""
    network_type: str = ""
    sub_network_type: str = ""
    battery_charging: bool = False
    battery_percent: Optional[int] = None
    battery_level: Optional[int] = None
    signal_bars: Optional[int] = None
    uptime_seconds: Optional[int] = None
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary (without the raw payload)."""
        return {
            "network_provider": self.network_provider,
            "spn_name": self.spn_name,
            "network_type": self.network_type,
            "sub_network_type": self.sub_network_type,
            "battery_charging": self.battery_charging,
            "battery_percent": self.battery_percent,
            "battery_level": self.battery_level,
            "signal_bars": self.signal_bars,
            "uptime_seconds": self.uptime_seconds,
        }


@dataclass
class RouterSnapshot:
    """Merged result of one fetch cycle."""

    devices: list[RawDeviceRecord]
    stations: list[StationInfo]
    hostnames: dict[str, str]
    system_status: SystemStatus
    fetched_at: float
    session_refreshed: bool = False
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UsageSnapshot:
    """One stored point of a device's usage history."""

    timestamp: float
    download_bytes: int
    upload_bytes: int
    download_speed: float
    upload_speed: float
    latency_ms: float

    @classmethod
    def from_stats(cls, stats: DeviceStats) -> "UsageSnapshot":
        """Build a snapshot from the derived stats of a poll."""
        return cls(
            timestamp=stats.last_update,
            download_bytes=stats.download_bytes,
            upload_bytes=stats.upload_bytes,
            download_speed=stats.download_speed,
            upload_speed=stats.upload_speed,
            latency_ms=stats.latency_ms,
        )


@dataclass
class UsageSummary:
    """Aggregate of a device's snapshots over a time window."""

    start: float
    end: float
    total_download: int
    total_upload: int
    avg_download_speed: float
    avg_upload_speed: float
    peak_download_speed: float
    peak_upload_speed: float
    avg_latency_ms: float
    sample_count: int


@dataclass
class UsageWindow:
    """Hotspot-wide usage for one calendar window (day, week or month)."""

    period: str
    key: str
    downloaded_bytes: int = 0
    uploaded_bytes: int = 0
    peak_download_speed: float = 0.0
    peak_upload_speed: float = 0.0
    device_count: int = 0
    last_updated: Optional[float] = None

    @property
    def total_bytes(self) -> int:
        """Downloaded plus uploaded bytes."""
        return self.downloaded_bytes + self.uploaded_bytes


@dataclass
class UsagePeriod:
    """The current daily, weekly and monthly windows."""

    daily: UsageWindow
    weekly: UsageWindow
    monthly: UsageWindow

    def windows(self) -> list[UsageWindow]:
        """All three windows, shortest first."""
        return [self.daily, self.weekly, self.monthly]


@dataclass
class BatteryWindow:
    """
    Router power-on and battery time observed in one calendar window.

    ``powered_seconds`` counts every observed second the router was up;
    ``on_battery_seconds`` only those while it was not charging.
    """

    period: str
    key: str
    powered_seconds: float = 0.0
    on_battery_seconds: float = 0.0
    level_sum: float = 0.0
    level_samples: int = 0
    min_level: Optional[int] = None
    max_level: Optional[int] = None
    power_cycles: int = 0
    last_updated: Optional[float] = None

    @property
    def average_level(self) -> Optional[float]:
        """Mean reported charge level, None without samples."""
        if not self.level_samples:
            return None
        return self.level_sum / self.level_samples


@dataclass
class BatteryStats:
    """Current battery state plus the daily, weekly and monthly windows."""

    current_level: Optional[int]
    is_charging: bool
    session_duration: Optional[int]
    session_started_at: Optional[float]
    daily: BatteryWindow
    weekly: BatteryWindow
    monthly: BatteryWindow

    @property
    def average_daily_seconds(self) -> float:
        """Weekly powered time spread over seven days."""
        return self.weekly.powered_seconds / 7

    def windows(self) -> list[BatteryWindow]:
        """All three windows, shortest first."""
        return [self.daily, self.weekly, self.monthly]


@dataclass
class SpeedTestResult:
    """Outcome of a download speed test."""

    samples_mbps: list[float]
    average_mbps: float
    max_mbps: float
    total_bytes: int
    duration: float


@dataclass
class PollState:
    """
    Last-known-good view maintained by the poller.

    A failed cycle only touches ``last_error``/``last_error_at`` so that
    consumers keep showing the previous devices with an error marker.
    """

    devices: list[DeviceStats] = field(default_factory=list)
    devices_updated_at: Optional[float] = None
    system_status: Optional[SystemStatus] = None
    status_updated_at: Optional[float] = None
    battery: Optional[BatteryStats] = None
    last_error: Optional[Exception] = None
    last_error_at: Optional[float] = None

    @property
    def has_error(self) -> bool:
        """True when the most recent failure is newer than the last success."""
        if self.last_error_at is None:
            return False
        latest_success = max(self.devices_updated_at or 0.0, self.status_updated_at or 0.0)
        return self.last_error_at >= latest_success


__all__ = [
    "LATENCY_UNAVAILABLE",
    "BatteryStats",
    "BatteryWindow",
    "DeviceClassification",
    "DeviceSample",
    "DeviceStats",
    "PollState",
    "RawDeviceRecord",
    "RouterSnapshot",
    "SpeedTestResult",
    "StationInfo",
    "SystemStatus",
    "TimingMetrics",
    "UsagePeriod",
    "UsageSnapshot",
    "UsageSummary",
    "UsageWindow",
]
