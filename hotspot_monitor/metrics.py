"""
Metric Engine for Hotspot Monitor
=================================

Turns successive byte counters into per-device speeds.

For each MAC the engine keeps the previous sample and the previously
reported speeds. On every poll:

* Δt inside [0.5, 10] s: raw speed from the counter delta (never negative),
  exponentially smoothed with α=0.4, then clamped to 0 below 100 B/s
* Δt outside that range: the previous speed decays by 0.7 instead
* a MAC missing from the poll is reported once as disconnected, then
  forgotten

``MetricEngine.update`` never awaits, so under asyncio each call is atomic
with respect to concurrent poll cycles. Results older than the newest
applied poll are ignored.

"""

import logging
from dataclasses import dataclass
from typing import Optional

from .classifier import classify_device
from .models import DeviceSample, DeviceStats, RawDeviceRecord

logger = logging.getLogger("hotspot-monitor")

MIN_SAMPLE_INTERVAL = 0.5
MAX_SAMPLE_INTERVAL = 10.0
SMOOTHING_ALPHA = 0.4
STALE_DECAY = 0.7
NOISE_FLOOR = 100.0


def is_interval_reliable(elapsed: float) -> bool:
    """True when a counter delta over ``elapsed`` seconds can be trusted."""
    return MIN_SAMPLE_INTERVAL <= elapsed <= MAX_SAMPLE_INTERVAL


def compute_raw_speed(previous_bytes: int, current_bytes: int, elapsed: float) -> float:
    """Bytes per second between two counter readings; a counter reset yields 0."""
    if elapsed <= 0:
        return 0.0
    return max(0.0, (current_bytes - previous_bytes) / elapsed)


def smooth_speed(raw: float, previous: Optional[float], alpha: float = SMOOTHING_ALPHA) -> float:
    """Single-pole exponential smoothing; without history the raw value is used."""
    if previous is None:
        return raw
    return alpha * raw + (1 - alpha) * previous


def apply_noise_floor(speed: float, floor: float = NOISE_FLOOR) -> float:
    return 0.0 if speed < floor else speed


def decay_speed(previous: float, factor: float = STALE_DECAY) -> float:
    return previous * factor


@dataclass
class DeviceState:
    """What the engine remembers about one connected MAC."""

    sample: DeviceSample
    stats: DeviceStats
    first_seen: float
    smoothed_download: Optional[float] = None
    smoothed_upload: Optional[float] = None


class MetricEngine:
    """Keyed per-MAC store of the last sample and smoothing state."""

    def __init__(self) -> None:
        self._states: dict[str, DeviceState] = {}
        self._last_output: list[DeviceStats] = []
        self._last_timestamp: Optional[float] = None

    @property
    def last_timestamp(self) -> Optional[float]:
        return self._last_timestamp

    def snapshot(self) -> list[DeviceStats]:
        """Stats produced by the most recent applied poll."""
        return list(self._last_output)

    def reset(self) -> None:
        self._states.clear()
        self._last_output = []
        self._last_timestamp = None

    def update(
        self,
        records: list[RawDeviceRecord],
        timestamp: float,
        latency_ms: float = -1,
        hostnames: Optional[dict[str, str]] = None,
    ) -> list[DeviceStats]:
        """
        Apply one poll.

        Args:
            records: Devices reported by the router in this poll
            timestamp: Wall-clock time of the poll in seconds
            latency_ms: Latency probe result for this cycle (-1 if it failed)
            hostnames: Optional MAC to hostname mapping

        Returns:
            Stats for every connected device plus one disconnected record for
            each MAC that vanished since the previous poll
        """
        if self._last_timestamp is not None and timestamp <= self._last_timestamp:
            logger.debug(f"🔧 Ignoring stale poll at {timestamp:.3f} (latest {self._last_timestamp:.3f})")
            return self.snapshot()

        hostnames = hostnames or {}
        output: list[DeviceStats] = []
        seen = set()

        for record in records:
            seen.add(record.mac)
            output.append(self._update_device(record, timestamp, latency_ms, hostnames))

        for mac in [mac for mac in self._states if mac not in seen]:
            state = self._states.pop(mac)
            logger.info(f"📴 {state.stats.hostname} ({mac}) disconnected")
            output.append(
                DeviceStats(
                    mac=mac,
                    hostname=state.stats.hostname,
                    download_bytes=state.sample.download_bytes,
                    upload_bytes=state.sample.upload_bytes,
                    download_speed=0.0,
                    upload_speed=0.0,
                    latency_ms=0,
                    last_update=timestamp,
                    is_connected=False,
                    ip=state.stats.ip,
                    active_duration=None,
                    connected_since=None,
                    device_type=state.stats.device_type,
                    brand=state.stats.brand,
                )
            )

        self._last_timestamp = timestamp
        self._last_output = output
        return list(output)

    def _update_device(
        self, record: RawDeviceRecord, timestamp: float, latency_ms: float, hostnames: dict[str, str]
    ) -> DeviceStats:
        sample = DeviceSample(record.mac, record.download_bytes, record.upload_bytes, timestamp)
        state = self._states.get(record.mac)

        if state is None:
            logger.info(f"📶 New device {record.mac} in slot {record.slot}")
            download_speed = upload_speed = 0.0
            smoothed_download = smoothed_upload = None
            first_seen = timestamp
        else:
            first_seen = state.first_seen
            elapsed = timestamp - state.sample.timestamp
            if is_interval_reliable(elapsed):
                smoothed_download = smooth_speed(
                    compute_raw_speed(state.sample.download_bytes, sample.download_bytes, elapsed),
                    state.smoothed_download,
                )
                smoothed_upload = smooth_speed(
                    compute_raw_speed(state.sample.upload_bytes, sample.upload_bytes, elapsed),
                    state.smoothed_upload,
                )
                download_speed = apply_noise_floor(smoothed_download)
                upload_speed = apply_noise_floor(smoothed_upload)
            else:
                logger.debug(f"🕐 {record.mac}: unreliable interval {elapsed:.2f}s, decaying speeds")
                download_speed = apply_noise_floor(decay_speed(state.stats.download_speed))
                upload_speed = apply_noise_floor(decay_speed(state.stats.upload_speed))
                smoothed_download = state.smoothed_download
                smoothed_upload = state.smoothed_upload

            # The floored value is what was reported, so it seeds the next smoothing step.
            if smoothed_download is not None:
                smoothed_download = download_speed
            if smoothed_upload is not None:
                smoothed_upload = upload_speed

        connected_since = timestamp - record.connection_time if record.connection_time is not None else first_seen
        hostname = hostnames.get(record.mac) or f"Device {record.slot}"
        classification = classify_device(hostname, record.mac)
        stats = DeviceStats(
            mac=record.mac,
            hostname=hostname,
            download_bytes=record.download_bytes,
            upload_bytes=record.upload_bytes,
            download_speed=download_speed,
            upload_speed=upload_speed,
            latency_ms=latency_ms,
            last_update=timestamp,
            is_connected=True,
            ip=record.ip,
            active_duration=record.connection_time,
            connected_since=connected_since,
            device_type=classification.device_type,
            brand=classification.brand,
        )
        self._states[record.mac] = DeviceState(
            sample=sample,
            stats=stats,
            first_seen=first_seen,
            smoothed_download=smoothed_download,
            smoothed_upload=smoothed_upload,
        )
        return stats


__all__ = [
    "MAX_SAMPLE_INTERVAL",
    "MIN_SAMPLE_INTERVAL",
    "NOISE_FLOOR",
    "SMOOTHING_ALPHA",
    "STALE_DECAY",
    "DeviceState",
    "MetricEngine",
    "apply_noise_floor",
    "compute_raw_speed",
    "decay_speed",
    "is_interval_reliable",
    "smooth_speed",
]
