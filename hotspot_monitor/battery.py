"""
Battery Tracking for Hotspot Monitor
====================================

``BatteryTracker`` follows the router's power state from the system status
poll. Each accepted status contributes the time elapsed since the previous
one to the day, week and month windows:

* the interval is the wall-clock gap, bounded by how far the router's uptime
  advanced, so time the router was off is never counted
* an uptime that went backwards is a power cycle; only the uptime since it
  counts
* the interval is on battery when the previous status was not charging

Windows are flushed to a usage store the same way usage windows are.

"""

import logging
from typing import Optional

from .models import BatteryStats, BatteryWindow, SystemStatus
from .store import UsageStore
from .usage import PERIOD_KEYS

logger = logging.getLogger("hotspot-monitor")


class BatteryTracker:
    """Accumulates powered and on-battery time into calendar windows."""

    def __init__(self) -> None:
        self._windows: dict[str, BatteryWindow] = {}
        self._resumed: set[tuple[str, str]] = set()
        self._last_status: Optional[SystemStatus] = None
        self._last_at: Optional[float] = None

    def record(self, status: SystemStatus, timestamp: float) -> Optional[BatteryStats]:
        """
        Fold one system status into the current windows.

        A status not newer than the last recorded one is ignored.

        Returns:
            The current BatteryStats
        """
        if self._last_at is not None and timestamp <= self._last_at:
            return self.stats()

        self._roll_over(timestamp)

        elapsed = 0.0
        power_cycled = False
        on_battery = False
        if self._last_status is not None:
            elapsed = timestamp - self._last_at
            previous_uptime = self._last_status.uptime_seconds
            if status.uptime_seconds is not None and previous_uptime is not None:
                if status.uptime_seconds < previous_uptime:
                    power_cycled = True
                    logger.info(f"🔌 Router uptime went back to {status.uptime_seconds}s, new power session")
                    elapsed = min(elapsed, status.uptime_seconds)
                else:
                    elapsed = min(elapsed, status.uptime_seconds - previous_uptime)
            on_battery = not self._last_status.battery_charging

        level = status.battery_percent
        for window in self._windows.values():
            window.powered_seconds += elapsed
            if on_battery:
                window.on_battery_seconds += elapsed
            if power_cycled:
                window.power_cycles += 1
            if level is not None:
                window.level_sum += level
                window.level_samples += 1
                window.min_level = level if window.min_level is None else min(window.min_level, level)
                window.max_level = level if window.max_level is None else max(window.max_level, level)
            window.last_updated = timestamp

        self._last_status = status
        self._last_at = timestamp
        return self.stats()

    def stats(self) -> Optional[BatteryStats]:
        """Current battery view, or None before the first recorded status."""
        if self._last_status is None:
            return None
        uptime = self._last_status.uptime_seconds
        return BatteryStats(
            current_level=self._last_status.battery_percent,
            is_charging=self._last_status.battery_charging,
            session_duration=uptime,
            session_started_at=self._last_at - uptime if uptime is not None else None,
            daily=self._windows["day"],
            weekly=self._windows["week"],
            monthly=self._windows["month"],
        )

    async def flush(self, store: UsageStore) -> int:
        """
        Save the current windows.

        The first flush of a window adds what an earlier run stored under the
        same key; later flushes replace it. Level extremes always merge.

        Returns:
            Number of windows written
        """
        written = 0
        for window in list(self._windows.values()):
            slot = (window.period, window.key)
            stored = await store.get_battery_usage(window.period, window.key)
            if stored is not None:
                if slot not in self._resumed:
                    logger.info(f"📂 Resuming stored {window.period} battery time for {window.key}")
                    window.powered_seconds += stored.powered_seconds
                    window.on_battery_seconds += stored.on_battery_seconds
                    window.level_sum += stored.level_sum
                    window.level_samples += stored.level_samples
                    window.power_cycles += stored.power_cycles
                window.min_level = _merge_level(min, window.min_level, stored.min_level)
                window.max_level = _merge_level(max, window.max_level, stored.max_level)
            self._resumed.add(slot)
            await store.save_battery_usage(window)
            written += 1
        logger.debug(f"💾 Flushed {written} battery windows")
        return written

    def _roll_over(self, timestamp: float) -> None:
        for period, key_for in PERIOD_KEYS:
            key = key_for(timestamp)
            current = self._windows.get(period)
            if current is None or current.key != key:
                if current is not None:
                    logger.info(f"📅 Battery {period} window rolled over from {current.key} to {key}")
                    self._resumed.discard((period, current.key))
                self._windows[period] = BatteryWindow(period=period, key=key)


def _merge_level(pick, current: Optional[int], stored: Optional[int]) -> Optional[int]:
    if current is None:
        return stored
    if stored is None:
        return current
    return pick(current, stored)


__all__ = ["BatteryTracker"]
