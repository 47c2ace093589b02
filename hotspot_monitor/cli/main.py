"""
Main CLI Orchestration Module

This module provides the entry point of the hotspot-monitor CLI and wires
argument parsing, logging, the client, the poller and the formatters
together.

License: MIT
"""

import asyncio
import logging
import sys
import time
from datetime import datetime
from typing import Optional

from hotspot_monitor import HotspotMonitorClient, __version__
from hotspot_monitor.exceptions import HotspotError
from hotspot_monitor.models import DeviceStats
from hotspot_monitor.poller import HotspotPoller
from hotspot_monitor.speedtest import run_speed_test
from hotspot_monitor.store import InMemoryUsageStore

from .args import parse_args
from .formatters import (
    format_json_output,
    format_speed_test_output,
    print_error_suggestions,
    print_json_output,
    print_summary_to_stderr,
)
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)


def create_client(args) -> HotspotMonitorClient:
    return HotspotMonitorClient(
        host=args.host,
        port=args.port,
        username=args.username,
        password=args.password,
        timeout=args.timeout,
    )


async def run_once(args, start_time: float) -> dict:
    """
    Poll devices twice, one interval apart, so the output carries speeds.

    Returns:
        The JSON document that was printed
    """
    async with create_client(args) as client:
        await client.poll_devices()
        await asyncio.sleep(args.interval)
        devices = await client.poll_devices()
        status = client.last_snapshot.system_status if client.last_snapshot else None
        latency = devices[0].latency_ms if devices else None

        elapsed = time.time() - start_time
        if not args.quiet:
            print_summary_to_stderr(devices, status)

        output = format_json_output(devices, status, args, elapsed, latency_ms=latency)
        if args.debug:
            output["performance"] = client.get_performance_summary()
        print_json_output(output)
        return output


async def run_watch(args, start_time: float) -> int:
    """
    Poll continuously, printing one JSON document per device poll.

    Returns:
        Number of polls printed
    """
    client = create_client(args)
    poller = HotspotPoller(client, store=InMemoryUsageStore(), device_interval=args.interval)
    done = asyncio.Event()
    printed = 0

    def handle_devices(devices: list[DeviceStats]) -> None:
        nonlocal printed
        printed += 1
        output = format_json_output(
            devices,
            poller.state.system_status,
            args,
            time.time() - start_time,
            usage=poller.tracker.period(),
            battery=poller.battery.stats(),
            latency_ms=devices[0].latency_ms if devices else None,
        )
        print_json_output(output, indent=None)
        if not args.quiet:
            print_summary_to_stderr(devices, poller.state.system_status)
        if args.count is not None and printed >= args.count:
            done.set()

    def handle_error(error: Exception) -> None:
        if not args.quiet:
            stale = f" (showing data from {poller.state.devices_updated_at:.0f})" if poller.state.devices_updated_at else ""
            print(f"❌ Poll failed: {error}{stale}", file=sys.stderr)

    poller.on_devices(handle_devices)
    poller.on_error(handle_error)

    await poller.start()
    try:
        await done.wait()
    finally:
        await poller.stop()
        client.close()
    return printed


async def run_reboot(args, start_time: float) -> dict:
    async with create_client(args) as client:
        result = await client.reboot()
    result["elapsed_time"] = time.time() - start_time
    print_json_output(result)
    return result


def run_speed(args, start_time: float) -> dict:
    def show_sample(speed: float) -> None:
        if not args.quiet:
            print(f"  {speed:.2f} Mbps", file=sys.stderr)

    result = run_speed_test(duration=args.speed_test_duration, on_sample=show_sample)
    output = format_speed_test_output(result, time.time() - start_time)
    print_json_output(output)
    return output


def main(argv: Optional[list] = None) -> Optional[int]:
    """Main entry point for the CLI application."""
    start_time = time.time()
    args = None

    try:
        args = parse_args(argv)

        setup_logging(debug=args.debug, quiet=args.quiet, log_file=args.log_file)

        if not args.quiet:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            print(f"Hotspot Monitor v{__version__} - {timestamp}", file=sys.stderr)
            if not args.speed_test:
                print(f"Connecting to {args.host}:{args.port} as {args.username}", file=sys.stderr)

        if args.speed_test:
            run_speed(args, start_time)
        elif args.reboot:
            asyncio.run(run_reboot(args, start_time))
        elif args.watch:
            asyncio.run(run_watch(args, start_time))
        else:
            asyncio.run(run_once(args, start_time))

        elapsed = time.time() - start_time
        logger.info(f"Completed in {elapsed:.2f}s")
        return 0

    except KeyboardInterrupt:
        elapsed = time.time() - start_time
        logger.error(f"Operation cancelled by user after {elapsed:.2f}s")
        print(f"Operation cancelled by user after {elapsed:.2f}s", file=sys.stderr)
        sys.exit(1)

    except ValueError as e:
        print(f"Invalid arguments: {e}", file=sys.stderr)
        sys.exit(2)

    except HotspotError as e:
        elapsed = time.time() - start_time
        logger.error(f"Hotspot request failed after {elapsed:.2f}s: {e}")
        print(f"Error after {elapsed:.2f}s: {e}", file=sys.stderr)
        print_error_suggestions(debug=bool(args and args.debug))
        sys.exit(1)


if __name__ == "__main__":
    main()
