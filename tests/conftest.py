import asyncio
import json
from typing import Optional
from urllib.parse import parse_qs, urlsplit

import pytest

from hotspot_monitor.models import DeviceStats, RawDeviceRecord, UsageSnapshot

DEVICE_ONE = (
    "tm:2025-11-27 18:42:09,mac:86:52:47:47:4e:0a,ipaddr:192.168.1.101,"
    "link_time:2hr46min4sec,rx_bytes:72986240,tx_bytes:667381878"
)
DEVICE_TWO = (
    "tm:2025-11-27 19:01:12,mac:DA:A1:19:0B:3C:7E,ipaddr:192.168.1.102,"
    "link_time:25min10sec,rx_bytes:1048576,tx_bytes:5242880"
)


def http_response(body: str, headers: Optional[list] = None, status: str = "200 OK", separator: str = "\r\n") -> str:
    """Build a raw HTTP reply the way the router sends it."""
    lines = [f"HTTP/1.1 {status}", "Server: Demo-Webs", "Content-Type: text/html"]
    for name, value in headers or []:
        lines.append(f"{name}: {value}")
    return separator.join(lines) + separator + separator + body


class RouterSimulator:
    """
    In-process stand-in for RawSocketTransport.

    Answers reqproc requests like the router firmware: the device list is
    only populated for a valid session cookie, every login issues a new
    cookie and invalidates the previous one.
    """

    def __init__(self) -> None:
        self.host = "192.168.1.1"
        self.port = 80
        self.timeout = 5.0
        self.instrumentation = None

        self.slots = {
            "sta_info1": DEVICE_ONE,
            "sta_info2": DEVICE_TWO,
            "sta_info3": "none",
            "sta_info4": "",
            "sta_info5": "",
            "sta_info6": "",
        }
        self.station_list = [
            {
                "connect_time": 9964,
                "ssid_index": "0",
                "dev_type": "0",
                "mac_addr": "86:52:47:47:4e:0a",
                "hostname": "Pixel-7",
                "ip_addr": "192.168.1.101",
                "ip_type": "DHCP",
            }
        ]
        self.hostname_list = [{"mac": "da:a1:19:0b:3c:7e", "hostname": "ThinkPad"}]
        self.system_status = {
            "network_provider": "Glo",
            "spn_name_data": "",
            "battery_charging": "1",
            "battery_vol_percent": "76",
            "battery_pers": "3",
            "signalbar": "4",
            "network_type": "LTE",
            "sub_network_type": "FDD",
            "realtime_time": "10:50:51",
        }

        self.require_session = True
        self.issue_cookie = True
        self.login_delay = 0.0
        self.valid_cookies: set = set()
        self.login_count = 0
        self.failures: dict = {}
        self.login_reply: Optional[str] = None
        self.reboot_reply = http_response('{"result":"success"}')
        self.requests: list = []

    def count(self, cmd_prefix: str) -> int:
        """Number of GET requests whose cmd starts with cmd_prefix."""
        return len([r for r in self.requests if r["cmd"] and r["cmd"].startswith(cmd_prefix)])

    def expire_sessions(self) -> None:
        self.valid_cookies = set()

    async def send(self, method, path, headers=None, body=None, operation="request"):
        headers = headers or {}
        query = parse_qs(urlsplit(path).query)
        cmd = query.get("cmd", [None])[0]
        self.requests.append({"method": method, "path": path, "headers": headers, "body": body, "cmd": cmd})
        await asyncio.sleep(0)

        if method == "POST":
            return await self._post(body or "")

        failure = self.failures.get(cmd)
        if failure is not None:
            raise failure

        authenticated = headers.get("Cookie") in self.valid_cookies
        if cmd.startswith("sta_info1"):
            if self.require_session and not authenticated:
                data = {f"sta_info{slot}": "" for slot in range(1, 7)}
            else:
                data = dict(self.slots)
                data["station_list"] = self.station_list
            return http_response(json.dumps(data))
        if cmd == "station_list":
            return http_response(json.dumps({"station_list": self.station_list}))
        if cmd == "hostNameList":
            return http_response(json.dumps({"hostNameList": self.hostname_list}))
        if cmd.startswith("network_provider"):
            return http_response(json.dumps(self.system_status))
        if cmd == "wa_inner_version":
            return http_response('{"wa_inner_version":"PL-H5_V1.0.3"}')
        return http_response("{}")

    async def _post(self, body: str) -> str:
        if "goformId=LOGIN" in body:
            self.login_count += 1
            if self.login_delay:
                await asyncio.sleep(self.login_delay)
            if self.login_reply is not None:
                return self.login_reply
            if not self.issue_cookie:
                return http_response('{"result":"failure"}')
            cookie = f"stok=session{self.login_count}"
            self.valid_cookies = {cookie}
            return http_response('{"result":"0"}', headers=[("Set-Cookie", f"{cookie}; path=/; HttpOnly")])
        if "goformId=REBOOT_DEVICE" in body:
            if isinstance(self.reboot_reply, Exception):
                raise self.reboot_reply
            return self.reboot_reply
        return http_response('{"result":"failure"}')


@pytest.fixture
def router():
    """Fixture providing a simulated router transport."""
    return RouterSimulator()


@pytest.fixture
def device_payload():
    """Fixture providing a device-list JSON payload."""
    return {
        "sta_info1": DEVICE_ONE,
        "sta_info2": DEVICE_TWO,
        "sta_info3": "none",
        "sta_info4": "",
        "sta_info5": "",
        "sta_info6": "",
    }


def make_record(mac: str, download: int, upload: int, slot: int = 1, connection_time=None) -> RawDeviceRecord:
    return RawDeviceRecord(
        mac=mac,
        download_bytes=download,
        upload_bytes=upload,
        slot=slot,
        ip=f"192.168.1.{100 + slot}",
        connection_time=connection_time,
    )


def make_stats(mac: str, download: int, upload: int, download_speed=0.0, upload_speed=0.0, connected=True, timestamp=0.0):
    return DeviceStats(
        mac=mac,
        hostname=mac,
        download_bytes=download,
        upload_bytes=upload,
        download_speed=download_speed,
        upload_speed=upload_speed,
        latency_ms=12,
        last_update=timestamp,
        is_connected=connected,
    )


def make_snapshot(timestamp: float, download: int, upload: int, download_speed=0.0, upload_speed=0.0, latency=10):
    return UsageSnapshot(
        timestamp=timestamp,
        download_bytes=download,
        upload_bytes=upload,
        download_speed=download_speed,
        upload_speed=upload_speed,
        latency_ms=latency,
    )
