"""
Hotspot Monitor Client
======================

HotspotMonitorClient coordinates one poll cycle against the router:

1. make sure a session exists (a failed login is tolerated)
2. fetch the device list, station list, hostname list and system status
   concurrently
3. if every device slot comes back empty, treat the session as expired,
   log in again and retry the batch exactly once
4. merge the replies into a RouterSnapshot

Any transport or parse error that escapes a cycle invalidates the session
and propagates as a HotspotError, so the next cycle starts clean.

Example:
    >>> async with HotspotMonitorClient(password="admin") as client:
    ...     devices = await client.poll_devices()
    ...     status = await client.poll_system_status()

"""

import asyncio
import logging
import time
from typing import Any, Optional

from hotspot_monitor.client.auth import SessionManager
from hotspot_monitor.client.http import (
    RouterRequestHandler,
    device_list_path,
    hostname_list_path,
    latency_probe_path,
    station_list_path,
    system_status_path,
)
from hotspot_monitor.client.parser import (
    decode_json,
    is_device_list_empty,
    parse_device_list,
    parse_hostname_list,
    parse_http_response,
    parse_station_list,
    parse_system_status,
)
from hotspot_monitor.client.transport import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT, RawSocketTransport
from hotspot_monitor.exceptions import (
    HotspotConfigurationError,
    HotspotError,
    HotspotMalformedResponseError,
    HotspotSessionExpiredError,
)
from hotspot_monitor.instrumentation import PerformanceInstrumentation
from hotspot_monitor.metrics import MetricEngine
from hotspot_monitor.models import LATENCY_UNAVAILABLE, DeviceStats, RouterSnapshot, SystemStatus

logger = logging.getLogger("hotspot-monitor")


class HotspotMonitorClient:
    """Polls a Prolink-style mobile hotspot and derives per-device metrics."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        username: str = "admin",
        password: str = "admin",
        timeout: float = DEFAULT_TIMEOUT,
        enable_instrumentation: bool = True,
        engine: Optional[MetricEngine] = None,
        transport: Optional[RawSocketTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            host: Router hostname or IP address
            port: Router HTTP port
            username: Admin username
            password: Admin password
            timeout: Socket timeout in seconds for connect and read
            enable_instrumentation: Record request timings
            engine: Metric engine to feed (a new one by default)
            transport: Transport override, mainly for tests

        Raises:
            HotspotConfigurationError: If a parameter is out of range
        """
        self._validate(host, port, timeout)

        self.host = host
        self.port = port
        self.username = username
        self.instrumentation = PerformanceInstrumentation() if enable_instrumentation else None

        self.transport = transport or RawSocketTransport(host, port, timeout, instrumentation=self.instrumentation)
        if transport is not None and transport.instrumentation is None:
            transport.instrumentation = self.instrumentation

        self.session = SessionManager(self.transport, username, password)
        self.requests = RouterRequestHandler(self.transport)
        self.engine = engine or MetricEngine()

        self.last_snapshot: Optional[RouterSnapshot] = None
        self.last_devices: list[DeviceStats] = []
        self.last_success_at: Optional[float] = None

        logger.info(f"🔧 HotspotMonitorClient initialized for {host}:{port}")

    @staticmethod
    def _validate(host: str, port: int, timeout: float) -> None:
        if not host or not isinstance(host, str):
            raise HotspotConfigurationError("Host must be a non-empty string", details={"parameter": "host", "value": host})
        if not isinstance(port, int) or not 1 <= port <= 65535:
            raise HotspotConfigurationError(
                "Port must be between 1 and 65535",
                details={"parameter": "port", "value": port, "valid_range": "1-65535"},
            )
        if timeout <= 0:
            raise HotspotConfigurationError(
                "Timeout must be greater than 0", details={"parameter": "timeout", "value": timeout}
            )

    async def __aenter__(self) -> "HotspotMonitorClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Forget the session; connections are never kept open between requests."""
        self.session.invalidate()
        logger.debug("🔒 Client closed")

    async def fetch_router_data(self) -> RouterSnapshot:
        """
        Run one fetch cycle.

        Returns:
            Merged RouterSnapshot

        Raises:
            HotspotError: Transport or parse failure; the session is invalidated
        """
        try:
            token = await self.session.ensure_token()
            refreshed = False
            try:
                responses = await self._fetch_batch(token)
            except HotspotSessionExpiredError as e:
                logger.warning(f"🔄 {e.message}, logging in again and retrying once")
                token = await self.session.refresh(token)
                responses = await self._fetch_batch(token, allow_empty=True)
                refreshed = True
        except HotspotError:
            self.session.invalidate()
            raise

        snapshot = self._merge(responses, refreshed)
        self.last_snapshot = snapshot
        return snapshot

    async def _fetch_batch(self, token: Optional[str], allow_empty: bool = False) -> dict[str, dict[str, Any]]:
        tasks = [
            asyncio.ensure_future(self.requests.get_json(path, token, operation=operation))
            for path, operation in (
                (device_list_path(), "request_device_list"),
                (station_list_path(), "request_station_list"),
                (hostname_list_path(), "request_hostname_list"),
                (system_status_path(), "request_system_status"),
            )
        ]
        try:
            device_data, station_data, hostname_data, status_data = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        if is_device_list_empty(device_data):
            if not allow_empty:
                raise HotspotSessionExpiredError(
                    "Device list came back empty",
                    details={"host": self.host, "had_token": token is not None},
                )
            logger.info("📭 Device list still empty after re-login, treating as no connected devices")

        return {
            "devices": device_data,
            "stations": station_data,
            "hostnames": hostname_data,
            "system_status": status_data,
        }

    def _merge(self, responses: dict[str, dict[str, Any]], refreshed: bool) -> RouterSnapshot:
        device_data = responses["devices"]
        stations = parse_station_list(responses["stations"]) or parse_station_list(device_data)

        hostnames = parse_hostname_list(responses["hostnames"])
        for station in stations:
            if station.hostname:
                hostnames[station.mac] = station.hostname

        raw = dict(device_data)
        raw["station_list"] = responses["stations"].get("station_list", device_data.get("station_list"))
        raw["hostname_list"] = responses["hostnames"]
        raw["system_status"] = responses["system_status"]

        return RouterSnapshot(
            devices=parse_device_list(device_data),
            stations=stations,
            hostnames=hostnames,
            system_status=parse_system_status(responses["system_status"]),
            fetched_at=time.time(),
            session_refreshed=refreshed,
            raw=raw,
        )

    async def measure_latency(self) -> float:
        """
        Time a minimal request to the router.

        Returns:
            Round trip in milliseconds (rounded), or -1 on any failure
        """
        start = time.perf_counter()
        try:
            await self.transport.send("GET", latency_probe_path(), operation="latency_probe")
        except HotspotError as e:
            logger.debug(f"🏓 Latency probe failed: {e}")
            return LATENCY_UNAVAILABLE
        return round((time.perf_counter() - start) * 1000)

    async def poll_devices(self) -> list[DeviceStats]:
        """
        Fetch, probe latency and feed the metric engine.

        Returns:
            DeviceStats for connected devices plus any just-disconnected ones
        """
        snapshot = await self.fetch_router_data()
        latency = await self.measure_latency()
        devices = self.engine.update(snapshot.devices, snapshot.fetched_at, latency, snapshot.hostnames)

        if self.engine.last_timestamp == snapshot.fetched_at:
            self.last_devices = devices
            self.last_success_at = snapshot.fetched_at
        logger.debug(f"📊 {len([d for d in devices if d.is_connected])} devices connected, latency {latency}ms")
        return devices

    async def poll_system_status(self) -> SystemStatus:
        """Fetch only the system status endpoint."""
        try:
            token = await self.session.ensure_token()
            data = await self.requests.get_json(system_status_path(), token, operation="request_system_status")
        except HotspotError:
            self.session.invalidate()
            raise
        return parse_system_status(data)

    async def reboot(self) -> dict[str, Any]:
        """
        Ask the router to reboot.

        The router usually drops off the network before answering properly, so
        an empty or non-JSON reply still counts as success. Transport errors
        propagate.
        """
        token = await self.session.ensure_token()
        logger.warning(f"🔁 Sending reboot command to {self.host}")
        raw = await self.requests.post_form({"isTest": "false", "goformId": "REBOOT_DEVICE"}, token, operation="reboot")

        body = parse_http_response(raw).body.strip()
        if not body:
            return {"success": True, "message": "Reboot command sent"}
        try:
            result = decode_json(body)
        except HotspotMalformedResponseError:
            return {"success": True, "message": "Reboot command sent", "response": body[:200]}
        return {"success": True, "message": "Reboot command sent", "response": result}

    def get_performance_summary(self) -> dict[str, Any]:
        """Instrumentation summary, or an error entry if disabled."""
        if not self.instrumentation:
            return {"error": "Performance instrumentation not enabled"}
        return self.instrumentation.get_performance_summary()

    def __repr__(self) -> str:
        return f"HotspotMonitorClient(host={self.host!r}, port={self.port}, state={self.session.state.value})"


__all__ = ["HotspotMonitorClient"]
