"""
Time Parsing Utilities for Hotspot Monitor
==========================================

This module parses the free-text durations reported by the router
(``link_time``, ``realtime_time``), formats durations for display and
computes the calendar keys used by the usage windows.

License: MIT
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Compiled patterns for link_time components ("2hr46min4sec", "1h5m", "30s")
LINK_HOURS_PATTERN = re.compile(r"(\d+)\s*h", re.IGNORECASE)
LINK_MINUTES_PATTERN = re.compile(r"(\d+)\s*m", re.IGNORECASE)
LINK_SECONDS_PATTERN = re.compile(r"(\d+)\s*s", re.IGNORECASE)

UPTIME_CLOCK_PATTERN = re.compile(r"^\s*(\d+):(\d{1,2}):(\d{1,2})\s*$")  # "10:50:51"
UPTIME_SECONDS_PATTERN = re.compile(r"^\s*(\d+)\s*$")  # "39051"


def parse_link_time(value: Optional[str]) -> Optional[int]:
    """
    Parse a router link duration to seconds.

    Handles the ``<H>h<M>m<S>s`` family with any component omitted, including
    the verbose ``2hr46min4sec`` form. Missing components count as zero.

    Args:
        value: Duration text from a device string

    Returns:
        Total seconds, or None when no component could be found
    """
    if not value:
        return None

    hours = LINK_HOURS_PATTERN.search(value)
    minutes = LINK_MINUTES_PATTERN.search(value)
    seconds = LINK_SECONDS_PATTERN.search(value)

    if not (hours or minutes or seconds):
        logger.debug(f"Failed to parse link_time '{value}': no components")
        return None

    total = 0
    if hours:
        total += int(hours.group(1)) * 3600
    if minutes:
        total += int(minutes.group(1)) * 60
    if seconds:
        total += int(seconds.group(1))
    return total


def parse_uptime(value: Optional[str]) -> Optional[int]:
    """
    Parse the router uptime to seconds.

    Accepts "H:M:S" (hours may exceed 24) or a plain number of seconds.

    Args:
        value: ``realtime_time`` field from the system status

    Returns:
        Uptime in seconds, or None if the value is missing or unrecognized
    """
    if value is None:
        return None

    text = str(value)
    match = UPTIME_CLOCK_PATTERN.match(text)
    if match:
        hours, minutes, seconds = map(int, match.groups())
        return hours * 3600 + minutes * 60 + seconds

    match = UPTIME_SECONDS_PATTERN.match(text)
    if match:
        return int(match.group(1))

    if text.strip():
        logger.debug(f"Failed to parse uptime '{text}': unknown format")
    return None


def format_duration(seconds: Union[int, float], short: bool = False) -> str:
    """
    Format a duration for display.

    Args:
        seconds: Duration in seconds
        short: Use "1h 30m" instead of "1 hour 30 minutes"

    Returns:
        Formatted duration string
    """
    seconds = max(0, int(seconds))
    if seconds == 0:
        return "0s" if short else "0 seconds"

    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    for amount, unit, abbrev in ((hours, "hour", "h"), (minutes, "minute", "m")):
        if amount > 0:
            parts.append(f"{amount}{abbrev}" if short else f"{amount} {unit}{'' if amount == 1 else 's'}")

    if secs > 0 or not parts:
        parts.append(f"{secs}s" if short else f"{secs} second{'' if secs == 1 else 's'}")

    return " ".join(parts)


def format_duration_compact(seconds: Union[int, float]) -> str:
    """Format a duration as HH:MM:SS, or MM:SS below one hour."""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def _local_date(timestamp: float) -> date:
    return datetime.fromtimestamp(timestamp).date()


def day_key(timestamp: float) -> str:
    """Key of the calendar day containing timestamp (local time), e.g. "2025-11-27"."""
    return _local_date(timestamp).isoformat()


def week_key(timestamp: float) -> str:
    """Key of the week containing timestamp: the date of its Sunday."""
    current = _local_date(timestamp)
    # date.weekday(): Monday=0 .. Sunday=6
    days_since_sunday = (current.weekday() + 1) % 7
    return (current - timedelta(days=days_since_sunday)).isoformat()


def month_key(timestamp: float) -> str:
    """Key of the calendar month containing timestamp, e.g. "2025-11"."""
    return _local_date(timestamp).strftime("%Y-%m")


__all__ = [
    "day_key",
    "format_duration",
    "format_duration_compact",
    "month_key",
    "parse_link_time",
    "parse_uptime",
    "week_key",
]
