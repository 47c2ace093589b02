"""
Tests for the polling scheduler and its last-known-good state.
"""

import asyncio

import pytest
from conftest import make_stats

from hotspot_monitor import HotspotMonitorClient
from hotspot_monitor.client.http import DEVICE_LIST_COMMANDS
from hotspot_monitor.exceptions import HotspotConnectionError
from hotspot_monitor.models import SystemStatus
from hotspot_monitor.poller import HotspotPoller
from hotspot_monitor.store import InMemoryUsageStore

DEVICE_LIST_CMD = ",".join(DEVICE_LIST_COMMANDS)


class ScriptedClient:
    """Client double whose poll results and timestamps are set by the test."""

    def __init__(self):
        self.last_success_at = None
        self.device_results = []
        self.status_results = []

    async def poll_devices(self):
        devices, polled_at = self.device_results.pop(0)
        if isinstance(devices, Exception):
            raise devices
        self.last_success_at = polled_at
        return devices

    async def poll_system_status(self):
        status = self.status_results.pop(0)
        if isinstance(status, Exception):
            raise status
        return status


@pytest.mark.unit
class TestPollerConfiguration:
    """Test constructor validation."""

    @pytest.mark.parametrize("name", ["device_interval", "status_interval", "flush_interval"])
    def test_interval_must_be_positive(self, name):
        with pytest.raises(ValueError, match=f"{name} must be greater than 0"):
            HotspotPoller(ScriptedClient(), **{name: 0})


@pytest.mark.integration
class TestPollCycles:
    """Test single cycles against the simulated router."""

    @pytest.mark.asyncio
    async def test_device_cycle_updates_state(self, router):
        store = InMemoryUsageStore()
        poller = HotspotPoller(HotspotMonitorClient(transport=router), store=store)
        seen = []
        poller.on_devices(seen.append)

        devices = await poller.run_device_cycle()

        assert len(devices) == 2
        assert poller.state.devices == devices
        assert poller.state.devices_updated_at is not None
        assert poller.state.has_error is False
        assert seen == [devices]
        assert poller.tracker.period().daily.device_count == 2
        assert len(await store.get_snapshots("86:52:47:47:4e:0a", 0, float("inf"))) == 1

    @pytest.mark.asyncio
    async def test_failed_cycle_keeps_last_known_good(self, router):
        poller = HotspotPoller(HotspotMonitorClient(transport=router))
        errors = []
        poller.on_error(errors.append)
        good = await poller.run_device_cycle()

        router.failures[DEVICE_LIST_CMD] = HotspotConnectionError("Failed to talk to 192.168.1.1:80")
        result = await poller.run_device_cycle()

        assert result is None
        assert poller.state.devices == good
        assert poller.state.has_error is True
        assert isinstance(poller.state.last_error, HotspotConnectionError)
        assert errors == [poller.state.last_error]

        del router.failures[DEVICE_LIST_CMD]
        await poller.run_device_cycle()
        assert poller.state.has_error is False

    @pytest.mark.asyncio
    async def test_status_cycle(self, router):
        poller = HotspotPoller(HotspotMonitorClient(transport=router))
        statuses = []
        poller.on_status(statuses.append)

        status = await poller.run_status_cycle()

        assert status.network_provider == "Glo"
        assert poller.state.system_status is status
        assert statuses == [status]
        assert poller.state.battery.current_level == 76
        assert poller.state.battery.is_charging is True

    @pytest.mark.asyncio
    async def test_unexpected_error_is_recorded(self):
        client = ScriptedClient()
        client.status_results = [RuntimeError("boom")]
        poller = HotspotPoller(client)

        assert await poller.run_status_cycle() is None
        assert isinstance(poller.state.last_error, RuntimeError)

    @pytest.mark.asyncio
    async def test_older_result_is_dropped(self):
        client = ScriptedClient()
        newer = [make_stats("aa:aa:aa:aa:aa:aa", 2000, 0, timestamp=20.0)]
        older = [make_stats("aa:aa:aa:aa:aa:aa", 1000, 0, timestamp=10.0)]
        client.device_results = [(newer, 20.0), (older, 10.0)]
        poller = HotspotPoller(client)

        await poller.run_device_cycle()
        assert await poller.run_device_cycle() is None

        assert poller.state.devices == newer
        assert poller.state.devices_updated_at == 20.0

    @pytest.mark.asyncio
    async def test_callback_failure_is_contained(self):
        client = ScriptedClient()
        client.status_results = [SystemStatus(network_provider="Glo")]
        poller = HotspotPoller(client)

        def broken(status):
            raise ValueError("consumer bug")

        poller.on_status(broken)

        assert (await poller.run_status_cycle()).network_provider == "Glo"

    @pytest.mark.asyncio
    async def test_flush_without_store(self):
        assert await HotspotPoller(ScriptedClient()).run_flush() == 0


@pytest.mark.integration
class TestPollerLifecycle:
    """Test start/stop of the interval loops."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, router):
        store = InMemoryUsageStore()
        poller = HotspotPoller(
            HotspotMonitorClient(transport=router),
            store=store,
            device_interval=0.02,
            status_interval=0.02,
            flush_interval=10.0,
        )

        await poller.start()
        await poller.start()
        assert poller.running is True
        await asyncio.sleep(0.15)
        await poller.stop()

        assert poller.running is False
        assert poller.state.devices
        assert poller.state.system_status is not None
        assert router.count("network_provider") >= 2
        period = poller.tracker.period()
        assert await store.get_usage("day", period.daily.key) is not None
        assert await store.get_battery_usage("day", period.daily.key) is not None

    @pytest.mark.asyncio
    async def test_stop_cancels_loops(self, router):
        poller = HotspotPoller(HotspotMonitorClient(transport=router), device_interval=0.02, status_interval=0.02)

        await poller.start()
        await asyncio.sleep(0.05)
        await poller.stop()
        requests_after_stop = len(router.requests)
        await asyncio.sleep(0.1)

        assert len(router.requests) == requests_after_stop
