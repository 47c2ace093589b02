"""
Response Parser for Hotspot Monitor
===================================

This module turns raw socket replies into structured data:

* HTTP framing: status code, headers and body split on the first blank line
  (``\\r\\n\\r\\n``, bare ``\\n\\n`` or a mix such as ``\\n\\r\\n``)
* JSON decoding with recovery of an embedded ``{...}`` object
* ``sta_infoN`` device strings into RawDeviceRecord objects
* station list, hostname list and system status payloads

"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from hotspot_monitor.exceptions import HotspotMalformedResponseError
from hotspot_monitor.models import RawDeviceRecord, StationInfo, SystemStatus
from hotspot_monitor.time_utils import parse_link_time, parse_uptime

logger = logging.getLogger("hotspot-monitor")

DEVICE_SLOTS = range(1, 7)
EMPTY_SLOT_VALUES = ("", "none")

HEADER_BOUNDARY_PATTERN = re.compile(r"\r?\n\r?\n")
MAC_PATTERN = re.compile(r"^[0-9a-f]{2}(?::[0-9a-f]{2}){5}$")
IPV4_PATTERN = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")
BODY_EXCERPT_LENGTH = 200


@dataclass
class RawHTTPResponse:
    """Tolerantly parsed HTTP reply."""

    status_code: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        """First value of a header, case-insensitive."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        """All values of a header in the order received."""
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]


def parse_http_response(raw: str) -> RawHTTPResponse:
    """
    Split a raw reply into status, headers and body.

    Never fails: without a blank-line boundary the whole text is the body and
    the status defaults to 200.
    """
    match = HEADER_BOUNDARY_PATTERN.search(raw)
    if not match:
        return RawHTTPResponse(status_code=200, body=raw)

    head = raw[: match.start()]
    body = raw[match.end() :]
    lines = head.replace("\r\n", "\n").split("\n")

    status_code = 200
    if lines and lines[0].startswith("HTTP/"):
        parts = lines[0].split(" ")
        if len(parts) >= 2 and parts[1].isdigit():
            status_code = int(parts[1])
        else:
            logger.debug(f"🔍 Tolerant parsing: using default status 200 for: {lines[0]}")

    headers = []
    for line in lines[1:]:
        if ":" in line:
            key, value = line.split(":", 1)
            headers.append((key.strip(), value.strip()))
        elif line.strip():
            logger.debug(f"🔍 Tolerant parsing: skipping non-standard header: {line}")

    return RawHTTPResponse(status_code=status_code, headers=headers, body=body)


def extract_body(raw: str) -> str:
    """Return only the body of a raw reply."""
    return parse_http_response(raw).body


def decode_json(body: str) -> dict[str, Any]:
    """
    Decode a JSON object from a response body.

    Falls back to the span between the first "{" and the last "}" when the
    body carries leading or trailing garbage.

    Raises:
        HotspotMalformedResponseError: No JSON object could be recovered
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        data = _decode_embedded_object(body, e)

    if not isinstance(data, dict):
        raise HotspotMalformedResponseError(
            "Response body is JSON but not an object",
            details={"body_excerpt": body[:BODY_EXCERPT_LENGTH], "json_type": type(data).__name__},
        )
    return data


def _decode_embedded_object(body: str, original: json.JSONDecodeError) -> Any:
    start = body.find("{")
    end = body.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(body[start : end + 1])
        except json.JSONDecodeError as e:
            original = e

    logger.warning(f"❌ No JSON found in response ({len(body)} chars)")
    raise HotspotMalformedResponseError(
        "No JSON found in response",
        details={"body_excerpt": body[:BODY_EXCERPT_LENGTH], "parse_error": str(original)},
    ) from original


def _tokenize(value: str) -> dict[str, str]:
    fields: dict[str, str] = {}
    for token in value.split(","):
        if ":" not in token:
            continue
        key, field_value = token.split(":", 1)
        fields.setdefault(key.strip().lower(), field_value.strip())
    return fields


def _parse_counter(value: Optional[str]) -> int:
    if value is None:
        return 0
    try:
        return max(0, int(value))
    except ValueError:
        return 0


def normalize_mac(value: Optional[str]) -> Optional[str]:
    """Canonical lowercase MAC, or None if the value is not a MAC address."""
    if not value:
        return None
    mac = value.strip().lower().replace("-", ":")
    return mac if MAC_PATTERN.match(mac) else None


def parse_device_string(value: str, slot: int) -> Optional[RawDeviceRecord]:
    """
    Parse one ``sta_infoN`` string.

    Fields may appear in any order; each one is looked up independently.
    A record without a valid MAC is rejected.

    Example:
        "tm:2025-11-27 18:42:09,mac:86:52:47:47:4e:0a,ipaddr:192.168.1.101,"
        "link_time:2hr46min4sec,rx_bytes:72986240,tx_bytes:667381878"
    """
    fields = _tokenize(value)

    mac = normalize_mac(fields.get("mac"))
    if mac is None:
        logger.debug(f"Rejecting slot {slot}: missing or invalid MAC in {value[:80]!r}")
        return None

    ip = fields.get("ipaddr")
    if ip is not None and not IPV4_PATTERN.match(ip):
        ip = None

    # The router counts from its own side: what it transmitted is the client's download.
    return RawDeviceRecord(
        mac=mac,
        download_bytes=_parse_counter(fields.get("tx_bytes")),
        upload_bytes=_parse_counter(fields.get("rx_bytes")),
        slot=slot,
        ip=ip,
        connection_time=parse_link_time(fields.get("link_time")),
        link_timestamp=fields.get("tm") or None,
    )


def _slot_value(data: dict[str, Any], slot: int) -> str:
    value = data.get(f"sta_info{slot}")
    return value.strip() if isinstance(value, str) else ""


def is_device_list_empty(data: dict[str, Any]) -> bool:
    """True when every device slot is empty or the literal "none"."""
    return all(_slot_value(data, slot).lower() in EMPTY_SLOT_VALUES for slot in DEVICE_SLOTS)


def parse_device_list(data: dict[str, Any]) -> list[RawDeviceRecord]:
    """
    Parse all device slots, keeping one record per MAC.

    When two slots report the same MAC the record with the larger byte total
    wins; on a tie the earlier slot is kept.
    """
    records: dict[str, RawDeviceRecord] = {}

    for slot in DEVICE_SLOTS:
        value = _slot_value(data, slot)
        if value.lower() in EMPTY_SLOT_VALUES:
            continue

        record = parse_device_string(value, slot)
        if record is None:
            continue

        existing = records.get(record.mac)
        if existing is None or record.total_bytes > existing.total_bytes:
            if existing is not None:
                logger.debug(f"🔧 Duplicate {record.mac}: slot {record.slot} replaces slot {existing.slot}")
            records[record.mac] = record

    return list(records.values())


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def parse_station_list(data: dict[str, Any]) -> list[StationInfo]:
    """Parse ``station_list`` entries; unknown shapes yield an empty list."""
    entries = data.get("station_list")
    if not isinstance(entries, list):
        return []

    stations = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        mac = normalize_mac(entry.get("mac_addr") or entry.get("mac"))
        if mac is None:
            continue
        stations.append(
            StationInfo(
                mac=mac,
                hostname=str(entry.get("hostname") or "").strip(),
                ip=entry.get("ip_addr") or entry.get("ip") or None,
                connect_time=_as_int(entry.get("connect_time")),
                ssid_index=entry.get("ssid_index"),
                dev_type=entry.get("dev_type"),
                ip_type=entry.get("ip_type"),
            )
        )
    return stations


def parse_hostname_list(data: dict[str, Any]) -> dict[str, str]:
    """
    Parse ``hostNameList`` into a MAC to hostname mapping.

    The firmware has been seen returning either a list of objects or a
    ";"-separated string of "mac,hostname" pairs.
    """
    entries = data.get("hostNameList", data.get("hostname_list"))
    names: dict[str, str] = {}

    if isinstance(entries, list):
        for entry in entries:
            if isinstance(entry, dict):
                mac = normalize_mac(entry.get("mac") or entry.get("mac_addr"))
                name = str(entry.get("hostname") or entry.get("name") or "").strip()
                if mac and name:
                    names[mac] = name
    elif isinstance(entries, str):
        for pair in entries.split(";"):
            if "," not in pair:
                continue
            raw_mac, name = pair.split(",", 1)
            mac = normalize_mac(raw_mac)
            if mac and name.strip():
                names[mac] = name.strip()

    return names


def parse_system_status(data: dict[str, Any]) -> SystemStatus:
    """Parse the system status payload into a SystemStatus."""
    charging = str(data.get("battery_charging", "")).strip().lower()
    return SystemStatus(
        network_provider=str(data.get("network_provider") or ""),
        spn_name=str(data.get("spn_name_data") or ""),
        network_type=str(data.get("network_type") or ""),
        sub_network_type=str(data.get("sub_network_type") or ""),
        battery_charging=charging in ("1", "true", "yes", "charging"),
        battery_percent=_as_int(data.get("battery_vol_percent")),
        battery_level=_as_int(data.get("battery_pers")),
        signal_bars=_as_int(data.get("signalbar")),
        uptime_seconds=parse_uptime(data.get("realtime_time")),
        raw=dict(data),
    )


__all__ = [
    "RawHTTPResponse",
    "decode_json",
    "extract_body",
    "is_device_list_empty",
    "normalize_mac",
    "parse_device_list",
    "parse_device_string",
    "parse_hostname_list",
    "parse_http_response",
    "parse_station_list",
    "parse_system_status",
]
