"""
HTTP Request Handling for Hotspot Monitor
=========================================

This module knows the router's ``reqproc`` endpoints: it builds query
strings and form bodies, attaches the browser-like headers the firmware
expects and decodes replies through the response parser.

"""

import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

from hotspot_monitor.client.parser import decode_json, parse_http_response
from hotspot_monitor.client.transport import RawSocketTransport

logger = logging.getLogger("hotspot-monitor")

GET_PATH = "/reqproc/proc_get"
LOGIN_PATH = "/reqproc/proc_post"
POST_PATH = LOGIN_PATH

DEVICE_LIST_COMMANDS = [f"sta_info{slot}" for slot in range(1, 7)] + ["station_list"]
SYSTEM_STATUS_COMMANDS = [
    "network_provider",
    "spn_name_data",
    "battery_charging",
    "battery_vol_percent",
    "battery_pers",
    "signalbar",
    "network_type",
    "sub_network_type",
    "realtime_time",
]
LATENCY_PROBE_COMMAND = "wa_inner_version"

USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)


def build_query(params: list[tuple[str, str]]) -> str:
    """Encode query parameters, keeping commas in command lists literal."""
    return urlencode(params, safe=",")


def cache_buster() -> str:
    """Millisecond timestamp for the ``_`` parameter."""
    return str(int(time.time() * 1000))


def device_list_path() -> str:
    return f"{GET_PATH}?" + build_query(
        [("isTest", "false"), ("cmd", ",".join(DEVICE_LIST_COMMANDS)), ("multi_data", "1")]
    )


def station_list_path() -> str:
    return f"{GET_PATH}?" + build_query(
        [("isTest", "false"), ("cmd", "station_list"), ("multi_data", "1"), ("_", cache_buster())]
    )


def hostname_list_path() -> str:
    return f"{GET_PATH}?" + build_query([("isTest", "false"), ("cmd", "hostNameList"), ("_", cache_buster())])


def system_status_path() -> str:
    return f"{GET_PATH}?" + build_query(
        [("multi_data", "1"), ("isTest", "false"), ("cmd", ",".join(SYSTEM_STATUS_COMMANDS))]
    )


def latency_probe_path() -> str:
    return f"{GET_PATH}?" + build_query(
        [("isTest", "false"), ("cmd", LATENCY_PROBE_COMMAND), ("multi_data", "1")]
    )


def build_form_body(fields: dict[str, str]) -> str:
    """
    Join already-encoded form fields.

    Values are inserted verbatim; credentials are percent-encoded by the
    caller so their base64 padding survives as ``%3D``.
    """
    return "&".join(f"{key}={value}" for key, value in fields.items())


def browser_headers(host: str, cookie: Optional[str] = None, form: bool = False) -> dict[str, str]:
    """
    Headers the router's web UI sends.

    Args:
        host: Router host, used for Origin and Referer
        cookie: Optional session cookie
        form: Add the urlencoded Content-Type for POST bodies
    """
    headers = {
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "Accept-Language": "en-US,en;q=0.9",
        "User-Agent": USER_AGENT,
        "X-Requested-With": "XMLHttpRequest",
        "Referer": f"http://{host}/index.html",
    }
    if form:
        headers["Content-Type"] = "application/x-www-form-urlencoded; charset=UTF-8"
        headers["Origin"] = f"http://{host}"
    else:
        headers["Cache-Control"] = "no-cache"
        headers["Pragma"] = "no-cache"
    if cookie:
        headers["Cookie"] = cookie
    headers["Connection"] = "close"
    return headers


class RouterRequestHandler:
    """Issues reqproc requests over the raw socket transport."""

    def __init__(self, transport: RawSocketTransport) -> None:
        self.transport = transport

    async def get_json(self, path: str, token: Optional[str] = None, operation: str = "request") -> dict[str, Any]:
        """
        GET a reqproc path and decode its JSON body.

        Raises:
            HotspotConnectionError: Transport failure (including timeouts)
            HotspotMalformedResponseError: Body holds no JSON object
        """
        raw = await self.transport.send(
            "GET", path, headers=browser_headers(self.transport.host, cookie=token), operation=operation
        )
        response = parse_http_response(raw)
        if response.status_code >= 400:
            logger.warning(f"⚠️ HTTP {response.status_code} for {operation}, decoding body anyway")
        return decode_json(response.body)

    async def post_form(
        self, fields: dict[str, str], token: Optional[str] = None, operation: str = "post"
    ) -> str:
        """POST an urlencoded form and return the raw reply text."""
        return await self.transport.send(
            "POST",
            POST_PATH,
            headers=browser_headers(self.transport.host, cookie=token, form=True),
            body=build_form_body(fields),
            operation=operation,
        )


__all__ = [
    "DEVICE_LIST_COMMANDS",
    "LOGIN_PATH",
    "SYSTEM_STATUS_COMMANDS",
    "RouterRequestHandler",
    "browser_headers",
    "build_form_body",
    "build_query",
    "device_list_path",
    "hostname_list_path",
    "latency_probe_path",
    "station_list_path",
    "system_status_path",
]
