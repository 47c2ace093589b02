"""
Usage Aggregation for Hotspot Monitor
=====================================

Two kinds of aggregate live here:

* ``aggregate_window``: the summary of one device's stored snapshots over
  an arbitrary time range (totals, average and peak speeds, latency)
* ``UsageTracker``: hotspot-wide day/week/month totals fed by every poll
  and flushed to a usage store on a long interval

"""

import logging
from typing import Optional

from .models import DeviceStats, UsagePeriod, UsageSnapshot, UsageSummary, UsageWindow
from .store import UsageStore
from .time_utils import day_key, month_key, week_key

logger = logging.getLogger("hotspot-monitor")

PERIOD_KEYS = (
    ("day", day_key),
    ("week", week_key),
    ("month", month_key),
)


def aggregate_window(snapshots: list[UsageSnapshot]) -> Optional[UsageSummary]:
    """
    Summarize a window of snapshots.

    Totals are the difference between the last and first cumulative counters,
    never a sum of deltas. Latency averages only measured samples and is -1
    when none were measured.

    Returns:
        UsageSummary, or None for an empty window
    """
    if not snapshots:
        return None

    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    first, last = ordered[0], ordered[-1]
    count = len(ordered)

    downloads = [s.download_speed for s in ordered]
    uploads = [s.upload_speed for s in ordered]
    latencies = [s.latency_ms for s in ordered if s.latency_ms >= 0]

    return UsageSummary(
        start=first.timestamp,
        end=last.timestamp,
        total_download=max(0, last.download_bytes - first.download_bytes),
        total_upload=max(0, last.upload_bytes - first.upload_bytes),
        avg_download_speed=sum(downloads) / count,
        avg_upload_speed=sum(uploads) / count,
        peak_download_speed=max(downloads),
        peak_upload_speed=max(uploads),
        avg_latency_ms=sum(latencies) / len(latencies) if latencies else -1,
        sample_count=count,
    )


async def summarize_device_usage(store: UsageStore, mac: str, start: float, end: float) -> Optional[UsageSummary]:
    """Aggregate a device's stored snapshots between start and end."""
    return aggregate_window(await store.get_snapshots(mac, start, end))


async def save_device_snapshots(store: UsageStore, devices: list[DeviceStats]) -> int:
    """Append a snapshot for every connected device; returns how many were saved."""
    saved = 0
    for stats in devices:
        if stats.is_connected:
            await store.save_snapshot(stats.mac, UsageSnapshot.from_stats(stats))
            saved += 1
    return saved


class UsageTracker:
    """
    Accumulates hotspot-wide usage into day, week and month windows.

    Each poll contributes the per-device counter deltas since the previous
    poll. A device seen for the first time, or whose counter went backwards,
    contributes nothing for that poll and becomes the new baseline.
    """

    def __init__(self) -> None:
        self._baselines: dict[str, tuple[int, int]] = {}
        self._windows: dict[str, UsageWindow] = {}
        self._resumed: set[tuple[str, str]] = set()

    def record(self, devices: list[DeviceStats], timestamp: float) -> UsagePeriod:
        """Fold one poll into the current windows."""
        self._roll_over(timestamp)

        connected = [d for d in devices if d.is_connected]
        downloaded = uploaded = 0
        for device in connected:
            baseline = self._baselines.get(device.mac)
            if baseline is not None:
                downloaded += max(0, device.download_bytes - baseline[0])
                uploaded += max(0, device.upload_bytes - baseline[1])
            self._baselines[device.mac] = (device.download_bytes, device.upload_bytes)

        connected_macs = {d.mac for d in connected}
        for mac in [mac for mac in self._baselines if mac not in connected_macs]:
            del self._baselines[mac]

        download_speed = sum(d.download_speed for d in connected)
        upload_speed = sum(d.upload_speed for d in connected)

        for window in self._windows.values():
            window.downloaded_bytes += downloaded
            window.uploaded_bytes += uploaded
            window.peak_download_speed = max(window.peak_download_speed, download_speed)
            window.peak_upload_speed = max(window.peak_upload_speed, upload_speed)
            window.device_count = max(window.device_count, len(connected))
            window.last_updated = timestamp

        return self.period()

    def period(self) -> Optional[UsagePeriod]:
        """Current windows, or None before the first recorded poll."""
        if not self._windows:
            return None
        return UsagePeriod(
            daily=self._windows["day"],
            weekly=self._windows["week"],
            monthly=self._windows["month"],
        )

    async def flush(self, store: UsageStore) -> int:
        """
        Save the current windows.

        The first flush of a window adds the totals an earlier run stored
        under the same key, so persisted totals survive a restart. Later
        flushes replace the stored totals. Peak speeds and device count keep
        the larger of the stored and current values.

        Returns:
            Number of windows written
        """
        written = 0
        for window in list(self._windows.values()):
            slot = (window.period, window.key)
            stored = await store.get_usage(window.period, window.key)
            if stored is not None:
                if slot not in self._resumed:
                    logger.info(f"📂 Resuming stored {window.period} usage for {window.key}")
                    window.downloaded_bytes += stored.downloaded_bytes
                    window.uploaded_bytes += stored.uploaded_bytes
                window.peak_download_speed = max(window.peak_download_speed, stored.peak_download_speed)
                window.peak_upload_speed = max(window.peak_upload_speed, stored.peak_upload_speed)
                window.device_count = max(window.device_count, stored.device_count)
            self._resumed.add(slot)
            await store.save_usage(window)
            written += 1
        logger.debug(f"💾 Flushed {written} usage windows")
        return written

    def _roll_over(self, timestamp: float) -> None:
        for period, key_for in PERIOD_KEYS:
            key = key_for(timestamp)
            current = self._windows.get(period)
            if current is None or current.key != key:
                if current is not None:
                    logger.info(f"📅 Usage {period} window rolled over from {current.key} to {key}")
                    self._resumed.discard((period, current.key))
                self._windows[period] = UsageWindow(period=period, key=key)


__all__ = [
    "UsageTracker",
    "aggregate_window",
    "save_device_snapshots",
    "summarize_device_usage",
]
