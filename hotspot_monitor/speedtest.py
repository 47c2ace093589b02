"""
Download Speed Test for Hotspot Monitor
=======================================

Measures the hotspot's uplink by downloading fixed-size chunks from a public
speed endpoint for a fixed duration. Chunk sizes rotate through 5, 10 and
25 MB; a failed chunk is skipped rather than aborting the run.

This runs through requests (not the raw router transport) because the target
is an ordinary HTTPS server.

"""

import logging
import time
from collections.abc import Callable
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import HotspotOperationError
from .models import SpeedTestResult

logger = logging.getLogger("hotspot-monitor")

SPEED_TEST_URL = "https://speed.cloudflare.com/__down"
CHUNK_SIZES = (5_000_000, 10_000_000, 25_000_000)
DEFAULT_DURATION = 10.0
CHUNK_PAUSE = 0.1
STREAM_BLOCK_SIZE = 64 * 1024


def create_speedtest_session() -> requests.Session:
    """
    Create a requests Session for the speed test.

    Returns:
        requests.Session with a conservative retry policy
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=2,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        backoff_factor=0.3,
        respect_retry_after_header=False,
    )
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=2, max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    session.headers.update(
        {
            "User-Agent": "HotspotMonitor/1.0 speedtest",
            "Cache-Control": "no-cache",
        }
    )
    return session


def bytes_to_mbps(size: int, seconds: float) -> float:
    """Megabits per second for size bytes transferred in seconds."""
    if seconds <= 0:
        return 0.0
    return size * 8 / (seconds * 1_000_000)


def download_chunk(session: requests.Session, size: int, timeout: float, clock: Callable[[], float]) -> tuple[int, float]:
    """
    Download one chunk and return (bytes received, elapsed seconds).

    Raises:
        requests.RequestException: On any HTTP or network failure
    """
    start = clock()
    received = 0
    with session.get(SPEED_TEST_URL, params={"bytes": size}, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        for block in response.iter_content(chunk_size=STREAM_BLOCK_SIZE):
            received += len(block)
    return received, clock() - start


def run_speed_test(
    duration: float = DEFAULT_DURATION,
    session: Optional[requests.Session] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    on_sample: Optional[Callable[[float], None]] = None,
) -> SpeedTestResult:
    """
    Run the download speed test.

    Args:
        duration: Seconds to keep downloading
        session: requests Session to use (one is created if omitted)
        clock: Monotonic clock, injectable for tests
        sleep: Sleep function, injectable for tests
        on_sample: Called with each chunk's speed in Mbps

    Returns:
        SpeedTestResult with per-chunk samples, average and maximum

    Raises:
        HotspotOperationError: No chunk could be downloaded
    """
    if duration <= 0:
        raise ValueError("Duration must be greater than 0")

    owns_session = session is None
    session = session or create_speedtest_session()
    samples: list[float] = []
    total_bytes = 0
    errors: list[str] = []
    attempt = 0

    started = clock()
    try:
        while clock() - started < duration:
            size = CHUNK_SIZES[attempt % len(CHUNK_SIZES)]
            attempt += 1
            try:
                received, elapsed = download_chunk(session, size, timeout=max(duration, 5.0), clock=clock)
            except requests.RequestException as e:
                logger.debug(f"🔍 Speed test chunk of {size} bytes failed: {e}")
                errors.append(str(e))
                sleep(CHUNK_PAUSE)
                continue

            if received and elapsed > 0:
                speed = bytes_to_mbps(received, elapsed)
                samples.append(speed)
                total_bytes += received
                logger.debug(f"📥 Chunk {attempt}: {received} bytes in {elapsed:.2f}s = {speed:.2f} Mbps")
                if on_sample:
                    on_sample(speed)
            sleep(CHUNK_PAUSE)
    finally:
        if owns_session:
            session.close()

    if not samples:
        raise HotspotOperationError(
            "Speed test could not download any data",
            details={"operation": "speed_test", "attempts": attempt, "last_error": errors[-1] if errors else None},
        )

    result = SpeedTestResult(
        samples_mbps=samples,
        average_mbps=sum(samples) / len(samples),
        max_mbps=max(samples),
        total_bytes=total_bytes,
        duration=clock() - started,
    )
    logger.info(f"✅ Speed test: avg {result.average_mbps:.2f} Mbps, max {result.max_mbps:.2f} Mbps")
    return result


__all__ = ["SPEED_TEST_URL", "bytes_to_mbps", "create_speedtest_session", "run_speed_test"]
