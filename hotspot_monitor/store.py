"""Usage store contract and an in-memory implementation."""

import bisect
import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional

from .models import BatteryWindow, UsageSnapshot, UsageWindow

logger = logging.getLogger("hotspot-monitor")

UsageListener = Callable[[UsageWindow], None]


class UsageStore(ABC):
    """
    Append-only history the core writes to.

    Backends (files, databases, cloud documents) implement these
    operations; the core never depends on anything else.
    """

    @abstractmethod
    async def save_snapshot(self, mac: str, snapshot: UsageSnapshot) -> None:
        """Append a usage snapshot for a device."""

    @abstractmethod
    async def get_snapshots(self, mac: str, start: float, end: float) -> list[UsageSnapshot]:
        """Snapshots for a device with start <= timestamp <= end, oldest first."""

    @abstractmethod
    async def save_usage(self, window: UsageWindow) -> None:
        """Insert or replace the stored totals for ``(window.period, window.key)``."""

    @abstractmethod
    async def get_usage(self, period: str, key: str) -> Optional[UsageWindow]:
        """Stored totals for a window, or None."""

    @abstractmethod
    async def save_battery_usage(self, window: BatteryWindow) -> None:
        """Insert or replace the stored battery time for ``(window.period, window.key)``."""

    @abstractmethod
    async def get_battery_usage(self, period: str, key: str) -> Optional[BatteryWindow]:
        """Stored battery time for a window, or None."""

    @abstractmethod
    def subscribe(self, listener: UsageListener) -> Callable[[], None]:
        """Register a listener for saved usage windows; returns an unsubscribe function."""


class InMemoryUsageStore(UsageStore):
    """Keeps everything in process memory, bounded per device."""

    def __init__(self, max_snapshots_per_device: int = 10_000) -> None:
        self.max_snapshots_per_device = max_snapshots_per_device
        self._snapshots: dict[str, list[UsageSnapshot]] = {}
        self._usage: dict[tuple[str, str], UsageWindow] = {}
        self._battery: dict[tuple[str, str], BatteryWindow] = {}
        self._listeners: list[UsageListener] = []

    async def save_snapshot(self, mac: str, snapshot: UsageSnapshot) -> None:
        history = self._snapshots.setdefault(mac.lower(), [])
        keys = [s.timestamp for s in history]
        history.insert(bisect.bisect_right(keys, snapshot.timestamp), snapshot)
        if len(history) > self.max_snapshots_per_device:
            del history[: len(history) - self.max_snapshots_per_device]

    async def get_snapshots(self, mac: str, start: float, end: float) -> list[UsageSnapshot]:
        return [s for s in self._snapshots.get(mac.lower(), []) if start <= s.timestamp <= end]

    async def save_usage(self, window: UsageWindow) -> None:
        stored = copy.copy(window)
        self._usage[(window.period, window.key)] = stored
        for listener in list(self._listeners):
            try:
                listener(copy.copy(stored))
            except Exception:
                logger.exception("Usage listener failed")

    async def get_usage(self, period: str, key: str) -> Optional[UsageWindow]:
        stored = self._usage.get((period, key))
        return copy.copy(stored) if stored else None

    async def save_battery_usage(self, window: BatteryWindow) -> None:
        self._battery[(window.period, window.key)] = copy.copy(window)

    async def get_battery_usage(self, period: str, key: str) -> Optional[BatteryWindow]:
        stored = self._battery.get((period, key))
        return copy.copy(stored) if stored else None

    def subscribe(self, listener: UsageListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


__all__ = ["InMemoryUsageStore", "UsageListener", "UsageStore"]
