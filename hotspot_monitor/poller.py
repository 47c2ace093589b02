"""
Polling scheduler for Hotspot Monitor.

Runs three independent interval loops against one HotspotMonitorClient:

- devices every ~2s (metric engine, usage tracker, snapshot history)
- system status every ~5s (battery tracker)
- usage flush to the store every ~5 minutes

Each device/status cycle is its own task, so a slow router never delays the
next tick and cycles may overlap. When they do, the result with the later
timestamp wins and older results are dropped.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Optional

from .battery import BatteryTracker
from .client.main import HotspotMonitorClient
from .exceptions import HotspotError
from .models import DeviceStats, PollState, SystemStatus
from .store import UsageStore
from .usage import UsageTracker, save_device_snapshots

logger = logging.getLogger("hotspot-monitor")

DEFAULT_DEVICE_INTERVAL = 2.0
DEFAULT_STATUS_INTERVAL = 5.0
DEFAULT_FLUSH_INTERVAL = 300.0


class HotspotPoller:
    """Schedules poll cycles and keeps the last-known-good state."""

    def __init__(
        self,
        client: HotspotMonitorClient,
        store: Optional[UsageStore] = None,
        tracker: Optional[UsageTracker] = None,
        battery: Optional[BatteryTracker] = None,
        device_interval: float = DEFAULT_DEVICE_INTERVAL,
        status_interval: float = DEFAULT_STATUS_INTERVAL,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
    ) -> None:
        for name, value in (
            ("device_interval", device_interval),
            ("status_interval", status_interval),
            ("flush_interval", flush_interval),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be greater than 0")

        self.client = client
        self.store = store
        self.tracker = tracker or UsageTracker()
        self.battery = battery or BatteryTracker()
        self.device_interval = device_interval
        self.status_interval = status_interval
        self.flush_interval = flush_interval
        self.state = PollState()

        self._device_callbacks: list[Callable[[list[DeviceStats]], None]] = []
        self._status_callbacks: list[Callable[[SystemStatus], None]] = []
        self._error_callbacks: list[Callable[[Exception], None]] = []
        self._running = False
        self._loops: list[asyncio.Task[None]] = []
        self._cycles: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._running

    def on_devices(self, callback: Callable[[list[DeviceStats]], None]) -> None:
        self._device_callbacks.append(callback)

    def on_status(self, callback: Callable[[SystemStatus], None]) -> None:
        self._status_callbacks.append(callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self._error_callbacks.append(callback)

    async def start(self) -> None:
        if self._running:
            return
        logger.info(
            f"▶️ Starting poller (devices {self.device_interval}s, status {self.status_interval}s, "
            f"flush {self.flush_interval}s)"
        )
        self._running = True
        self._loops = [
            asyncio.create_task(self._interval_loop(self.device_interval, self.run_device_cycle)),
            asyncio.create_task(self._interval_loop(self.status_interval, self.run_status_cycle)),
        ]
        if self.store is not None:
            self._loops.append(asyncio.create_task(self._flush_loop()))

    async def stop(self) -> None:
        logger.info("⏹️ Stopping poller")
        self._running = False
        pending = self._loops + list(self._cycles)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._loops = []
        self._cycles.clear()

        if self.store is not None:
            try:
                await self._flush_all()
            except Exception:
                logger.exception("Final usage flush failed")

    async def _interval_loop(self, interval: float, cycle: Callable) -> None:
        while self._running:
            task = asyncio.create_task(cycle())
            self._cycles.add(task)
            task.add_done_callback(self._cycles.discard)
            await asyncio.sleep(interval)

    async def _flush_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.flush_interval)
            await self.run_flush()

    async def run_device_cycle(self) -> Optional[list[DeviceStats]]:
        """Run one device poll; returns the devices, or None if it failed or was stale."""
        try:
            devices = await self.client.poll_devices()
        except Exception as e:
            self._record_error(e, "device poll")
            return None

        polled_at = self.client.last_success_at
        if polled_at is None or (self.state.devices_updated_at is not None and polled_at <= self.state.devices_updated_at):
            logger.debug("🔧 Dropping device result older than the current state")
            return None

        self.state.devices = devices
        self.state.devices_updated_at = polled_at
        self.tracker.record(devices, polled_at)

        if self.store is not None:
            try:
                await save_device_snapshots(self.store, devices)
            except Exception:
                logger.exception("Saving usage snapshots failed")

        self._notify(self._device_callbacks, devices)
        return devices

    async def run_status_cycle(self) -> Optional[SystemStatus]:
        """Run one system status poll."""
        started_at = time.time()
        try:
            status = await self.client.poll_system_status()
        except Exception as e:
            self._record_error(e, "status poll")
            return None

        if self.state.status_updated_at is not None and started_at <= self.state.status_updated_at:
            return None

        self.state.system_status = status
        self.state.status_updated_at = started_at
        self.state.battery = self.battery.record(status, started_at)
        self._notify(self._status_callbacks, status)
        return status

    async def run_flush(self) -> int:
        """Flush the usage and battery windows to the store."""
        if self.store is None:
            return 0
        try:
            return await self._flush_all()
        except Exception as e:
            self._record_error(e, "usage flush")
            return 0

    async def _flush_all(self) -> int:
        return await self.tracker.flush(self.store) + await self.battery.flush(self.store)

    def _record_error(self, error: Exception, operation: str) -> None:
        if isinstance(error, HotspotError):
            logger.warning(f"❌ {operation} failed: {error}")
        else:
            logger.exception(f"Unexpected error during {operation}")
        self.state.last_error = error
        self.state.last_error_at = time.time()
        self._notify(self._error_callbacks, error)

    def _notify(self, callbacks: list, payload) -> None:
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception("Poller callback failed")


__all__ = [
    "DEFAULT_DEVICE_INTERVAL",
    "DEFAULT_FLUSH_INTERVAL",
    "DEFAULT_STATUS_INTERVAL",
    "HotspotPoller",
]
