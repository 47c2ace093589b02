"""
Output Formatting Module

This module formats device, status and usage data for the CLI: JSON
documents on stdout and a human-readable summary on stderr.

License: MIT
"""

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional, Union

from hotspot_monitor import __version__
from hotspot_monitor.models import BatteryStats, DeviceStats, SpeedTestResult, SystemStatus, UsagePeriod
from hotspot_monitor.time_utils import format_duration, format_duration_compact

logger = logging.getLogger(__name__)

BYTE_UNITS = ["B", "KB", "MB", "GB", "TB"]
SPEED_UNITS = ["B/s", "KB/s", "MB/s", "GB/s"]


def _scale(value: float, units: list[str], decimals: int) -> str:
    if value <= 0:
        return f"0 {units[0]}"
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, max(0, decimals)):g} {units[index]}"


def format_bytes(size: Union[int, float], decimals: int = 2) -> str:
    """Format a byte count with 1024-based units, e.g. "1.5 KB"."""
    return _scale(float(size), BYTE_UNITS, decimals)


def format_speed(bytes_per_second: Union[int, float]) -> str:
    """Format a speed with 1024-based units, e.g. "2.25 MB/s"."""
    return _scale(float(bytes_per_second), SPEED_UNITS, 2)


def format_devices_for_display(devices: list[DeviceStats]) -> list[dict[str, Any]]:
    """
    Convert DeviceStats objects to dictionaries for JSON serialization.

    Adds human-readable speed and duration fields next to the raw values.
    """
    logger.debug(f"Converting {len(devices)} devices for JSON serialization")
    output = []
    for device in devices:
        entry = device.to_dict()
        entry["download_speed_display"] = format_speed(device.download_speed)
        entry["upload_speed_display"] = format_speed(device.upload_speed)
        entry["total_usage_display"] = format_bytes(device.download_bytes + device.upload_bytes)
        if device.active_duration is not None:
            entry["active_duration_display"] = format_duration(device.active_duration, short=True)
        output.append(entry)
    return output


def format_usage_for_display(period: Optional[UsagePeriod]) -> Optional[dict[str, Any]]:
    """Convert the usage windows to a JSON-serializable dictionary."""
    if period is None:
        return None
    output = {}
    for window in period.windows():
        entry = asdict(window)
        entry["total_bytes"] = window.total_bytes
        entry["total_display"] = format_bytes(window.total_bytes)
        output[window.period] = entry
    return output


def format_battery_for_display(stats: Optional[BatteryStats]) -> Optional[dict[str, Any]]:
    """Convert battery tracking to a JSON-serializable dictionary."""
    if stats is None:
        return None
    output: dict[str, Any] = {
        "current_level": stats.current_level,
        "is_charging": stats.is_charging,
        "session_duration": stats.session_duration,
        "session_started_at": stats.session_started_at,
        "average_daily_seconds": stats.average_daily_seconds,
        "average_daily_display": format_duration_compact(stats.average_daily_seconds),
    }
    for window in stats.windows():
        entry = asdict(window)
        entry["average_level"] = window.average_level
        entry["powered_display"] = format_duration_compact(window.powered_seconds)
        entry["on_battery_display"] = format_duration_compact(window.on_battery_seconds)
        output[window.period] = entry
    return output


def print_summary_to_stderr(devices: list[DeviceStats], status: Optional[SystemStatus] = None) -> None:
    """
    Print a human-readable summary to stderr (so JSON output to stdout is clean).

    Args:
        devices: Devices from the latest poll
        status: System status, if it was fetched
    """
    logger.debug("Printing status summary to stderr")

    print("=" * 60, file=sys.stderr)
    print("HOTSPOT STATUS SUMMARY", file=sys.stderr)
    print("=" * 60, file=sys.stderr)

    if status is not None:
        provider = status.network_provider or status.spn_name or "Unknown"
        print(f"Network: {provider} ({status.network_type or 'Unknown'})", file=sys.stderr)
        if status.signal_bars is not None:
            print(f"Signal: {status.signal_bars} bars", file=sys.stderr)
        if status.battery_percent is not None:
            charging = " (charging)" if status.battery_charging else ""
            print(f"Battery: {status.battery_percent}%{charging}", file=sys.stderr)
        if status.uptime_seconds is not None:
            print(f"Uptime: {format_duration_compact(status.uptime_seconds)}", file=sys.stderr)

    connected = [d for d in devices if d.is_connected]
    print(f"Connected Devices: {len(connected)}", file=sys.stderr)
    for device in connected:
        print(
            f"  {device.hostname:<16} {device.mac}  {device.device_type or '-':<8} "
            f"↓ {format_speed(device.download_speed):>11}  ↑ {format_speed(device.upload_speed):>11}  "
            f"total {format_bytes(device.download_bytes + device.upload_bytes)}",
            file=sys.stderr,
        )

    disconnected = [d for d in devices if not d.is_connected]
    for device in disconnected:
        print(f"  {device.hostname:<16} {device.mac}  disconnected", file=sys.stderr)

    print("=" * 60, file=sys.stderr)


def format_json_output(
    devices: list[DeviceStats],
    status: Optional[SystemStatus],
    args,
    elapsed_time: float,
    usage: Optional[UsagePeriod] = None,
    latency_ms: Optional[float] = None,
    battery: Optional[BatteryStats] = None,
) -> dict[str, Any]:
    """
    Format the complete JSON output with metadata.

    Args:
        devices: Devices from the latest poll
        status: System status, if fetched
        args: Parsed command line arguments
        elapsed_time: Total elapsed time for the operation
        usage: Hotspot-wide usage windows, if tracked
        latency_ms: Latency probe of the latest poll
        battery: Battery tracking, if tracked

    Returns:
        Complete JSON output dictionary
    """
    logger.debug("Formatting complete JSON output")
    return {
        "devices": format_devices_for_display(devices),
        "device_count": len([d for d in devices if d.is_connected]),
        "system_status": status.to_dict() if status is not None else None,
        "usage": format_usage_for_display(usage),
        "battery": format_battery_for_display(battery),
        "latency_ms": latency_ms,
        "query_timestamp": datetime.now().isoformat(),
        "query_host": args.host,
        "client_version": __version__,
        "elapsed_time": elapsed_time,
        "configuration": {
            "port": args.port,
            "timeout": args.timeout,
            "interval": args.interval,
        },
    }


def format_speed_test_output(result: SpeedTestResult, elapsed_time: float) -> dict[str, Any]:
    """Format a speed test result for JSON output."""
    return {
        "speed_test": {
            "average_mbps": round(result.average_mbps, 2),
            "max_mbps": round(result.max_mbps, 2),
            "samples_mbps": [round(sample, 2) for sample in result.samples_mbps],
            "total_bytes": result.total_bytes,
            "total_display": format_bytes(result.total_bytes),
            "duration": result.duration,
        },
        "query_timestamp": datetime.now().isoformat(),
        "client_version": __version__,
        "elapsed_time": elapsed_time,
    }


def print_json_output(json_data: dict, indent: Optional[int] = 2) -> None:
    """
    Print JSON output to stdout.

    Args:
        json_data: Dictionary to output as JSON
        indent: Indentation, None for one document per line
    """
    logger.debug("Outputting JSON to stdout")
    print(json.dumps(json_data, indent=indent), flush=True)


def print_error_suggestions(debug: bool = False) -> None:
    """
    Print helpful error suggestions.

    Args:
        debug: Whether debug mode is enabled
    """
    if debug:
        import traceback

        traceback.print_exc(file=sys.stderr)
    else:
        print("\nTroubleshooting suggestions:", file=sys.stderr)
        print("1. Check that this machine is connected to the hotspot's Wi-Fi", file=sys.stderr)
        print("2. Verify the router address (default 192.168.1.1) with --host", file=sys.stderr)
        print("3. Verify the admin password with --password", file=sys.stderr)
        print("4. Increase --timeout if the hotspot is slow to answer", file=sys.stderr)
        print("5. Try with --debug for more detailed error information", file=sys.stderr)
