"""
Command Line Argument Parsing Module

This module defines the hotspot-monitor command line and validates user
input before any network activity starts.

License: MIT
"""

import argparse
import logging

from hotspot_monitor.client.transport import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT
from hotspot_monitor.speedtest import DEFAULT_DURATION

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Poll a mobile hotspot router and output connected devices as JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --password "secret" --host 192.168.0.1
  %(prog)s --watch --interval 2 --count 30
  %(prog)s --reboot
  %(prog)s --speed-test --speed-test-duration 15

Output:
  JSON with connected devices (speeds in bytes/s), system status and
  timing metadata on stdout. A human-readable summary goes to stderr.

Watch Mode:
  --watch keeps polling devices every --interval seconds and prints one
  JSON document per poll. Stop with Ctrl-C or limit with --count.
  Hotspot-wide day/week/month usage is included in each document.
        """,
    )

    # Connection settings
    parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help="Router hostname or IP address (default: %(default)s)",
    )
    parser.add_argument(
        "--port",
        default=DEFAULT_PORT,
        type=int,
        help="Router HTTP port (default: %(default)s)",
    )
    parser.add_argument(
        "--username",
        default="admin",
        help="Router login username (default: %(default)s)",
    )
    parser.add_argument(
        "--password",
        default="admin",
        help="Router login password (default: %(default)s)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="Socket timeout in seconds (default: %(default)s)",
    )

    # Output options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging output to stderr",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress summary output to stderr (JSON only to stdout)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write log output to this file",
    )

    # Polling options
    parser.add_argument(
        "--interval",
        type=float,
        default=2.0,
        help="Seconds between device polls (default: %(default)s)",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep polling and print one JSON document per poll",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=None,
        help="Stop watch mode after this many polls",
    )

    # One-shot tools
    tools = parser.add_mutually_exclusive_group()
    tools.add_argument(
        "--reboot",
        action="store_true",
        help="Send the reboot command to the router and exit",
    )
    tools.add_argument(
        "--speed-test",
        action="store_true",
        help="Run a download speed test through the hotspot and exit",
    )
    parser.add_argument(
        "--speed-test-duration",
        type=float,
        default=DEFAULT_DURATION,
        help="Speed test duration in seconds (default: %(default)s)",
    )

    return parser


def parse_args(argv=None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logger.debug(f"Parsed arguments: {args}")

    validate_args(args)

    return args


def validate_args(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        ValueError: If arguments are invalid
    """
    if args.timeout <= 0:
        raise ValueError("Timeout must be greater than 0")

    if args.interval <= 0:
        raise ValueError("Interval must be greater than 0")

    if args.port < 1 or args.port > 65535:
        raise ValueError("Port must be between 1 and 65535")

    if getattr(args, "count", None) is not None and args.count < 1:
        raise ValueError("Count must be at least 1")

    if getattr(args, "speed_test_duration", DEFAULT_DURATION) <= 0:
        raise ValueError("Speed test duration must be greater than 0")

    logger.debug("Arguments validated successfully")
