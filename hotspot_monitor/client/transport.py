"""
Raw Socket Transport for Hotspot Monitor
========================================

The router's embedded web server closes the connection after every reply and
is loose about HTTP framing, so requests are written by hand over a plain
TCP stream and the reply is read until the peer closes. This mirrors what a
browser tolerates and avoids strict client-side HTTP parsing entirely.

"""

import asyncio
import logging
import time
from typing import Optional

from hotspot_monitor.exceptions import (
    HotspotConnectTimeoutError,
    HotspotReadTimeoutError,
    wrap_connection_error,
)
from hotspot_monitor.instrumentation import PerformanceInstrumentation

logger = logging.getLogger("hotspot-monitor")

DEFAULT_HOST = "192.168.1.1"
DEFAULT_PORT = 80
DEFAULT_TIMEOUT = 5.0

READ_CHUNK_SIZE = 4096


def build_raw_request(
    method: str,
    path: str,
    host: str,
    headers: Optional[dict[str, str]] = None,
    body: Optional[str] = None,
) -> bytes:
    """
    Build a raw HTTP/1.1 request.

    Any Content-Length supplied by the caller is discarded and recomputed
    from the UTF-8 encoded body.

    Args:
        method: HTTP method ("GET" or "POST")
        path: Request target including the query string
        host: Value for the Host header
        headers: Additional headers in order
        body: Optional urlencoded body

    Returns:
        Encoded request bytes
    """
    lines = [f"{method.upper()} {path} HTTP/1.1", f"Host: {host}"]

    for name, value in (headers or {}).items():
        if name.lower() not in ("content-length", "host"):
            lines.append(f"{name}: {value}")

    body_bytes = body.encode("utf-8") if body else b""
    if body is not None:
        lines.append(f"Content-Length: {len(body_bytes)}")

    head = "\r\n".join(lines) + "\r\n\r\n"
    return head.encode("utf-8") + body_bytes


class RawSocketTransport:
    """Sends one HTTP request per TCP connection and returns the raw reply text."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        instrumentation: Optional[PerformanceInstrumentation] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            host: Router hostname or IP address
            port: Router HTTP port
            timeout: Bound in seconds for connecting and for reading the reply
            instrumentation: Optional performance instrumentation
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self.instrumentation = instrumentation

    async def send(
        self,
        method: str,
        path: str,
        headers: Optional[dict[str, str]] = None,
        body: Optional[str] = None,
        operation: str = "request",
    ) -> str:
        """
        Send a request and read the reply until the router closes the stream.

        Args:
            method: HTTP method
            path: Request target including the query string
            headers: Additional request headers (e.g. Cookie)
            body: Optional urlencoded body
            operation: Name used for instrumentation

        Returns:
            The raw response text (status line, headers and body)

        Raises:
            HotspotConnectTimeoutError: Connection not established in time
            HotspotReadTimeoutError: Router kept the stream open past the timeout
            HotspotConnectionError: Any other socket error
        """
        start_time = self.instrumentation.start_timer(operation) if self.instrumentation else time.time()
        writer: Optional[asyncio.StreamWriter] = None
        phase = "connect"

        logger.debug(f"📤 {method} {path}")

        try:
            try:
                reader, writer = await asyncio.wait_for(
                    asyncio.open_connection(self.host, self.port), timeout=self.timeout
                )
            except asyncio.TimeoutError as e:
                raise HotspotConnectTimeoutError(
                    f"Connection to {self.host}:{self.port} timed out",
                    details={
                        "host": self.host,
                        "port": self.port,
                        "timeout_type": "connect",
                        "timeout_value": self.timeout,
                    },
                ) from e

            phase = "write"
            writer.write(build_raw_request(method, path, self.host, headers, body))
            await writer.drain()

            phase = "read"
            try:
                raw = await asyncio.wait_for(self._read_until_close(reader), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise HotspotReadTimeoutError(
                    f"No complete reply from {self.host}:{self.port} within {self.timeout}s",
                    details={
                        "host": self.host,
                        "port": self.port,
                        "timeout_type": "read",
                        "timeout_value": self.timeout,
                        "operation": operation,
                    },
                ) from e

        except OSError as e:
            self._record(operation, start_time, success=False, error_type=type(e).__name__)
            raise wrap_connection_error(e, self.host, self.port, phase) from e
        except Exception as e:
            self._record(operation, start_time, success=False, error_type=type(e).__name__)
            raise
        finally:
            if writer is not None:
                await self._close(writer)

        text = raw.decode("utf-8", errors="replace")
        logger.debug(f"📥 Raw response received: {len(raw)} bytes")
        self._record(operation, start_time, success=True, response_size=len(raw))
        return text

    async def _read_until_close(self, reader: asyncio.StreamReader) -> bytes:
        chunks = []
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    async def _close(self, writer: asyncio.StreamWriter) -> None:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"🔍 Error while closing socket: {e}")

    def _record(self, operation: str, start_time: float, **kwargs) -> None:
        if self.instrumentation:
            self.instrumentation.record_timing(operation, start_time, **kwargs)


__all__ = ["DEFAULT_HOST", "DEFAULT_PORT", "DEFAULT_TIMEOUT", "RawSocketTransport", "build_raw_request"]
