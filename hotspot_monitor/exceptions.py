"""
Custom exceptions for the Hotspot Monitor client.

This module defines all custom exceptions used throughout the hotspot-monitor
library. All exceptions inherit from HotspotError so callers can catch every
library-specific failure with a single except clause.

Example usage:
    try:
        snapshot = await client.fetch_router_data()
    except HotspotTimeoutError as e:
        print(f"Router did not answer in time: {e}")
    except HotspotError as e:
        print(f"Hotspot error: {e}")

License: MIT
"""

import asyncio
import socket
from typing import Any, Optional


class HotspotError(Exception):
    """
    Base exception for all Hotspot Monitor errors.

    All exceptions carry a details dictionary with contextual information
    (host, operation, excerpts of bad payloads) for logging and diagnostics.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context

    Examples:
        >>> try:
        ...     devices = await client.poll_devices()
        ... except HotspotConnectionError:
        ...     print("Check that the hotspot is reachable")
        ... except HotspotError as e:
        ...     print(f"Other hotspot error: {e}")
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize HotspotError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class HotspotConnectionError(HotspotError):
    """
    Raised when the socket conversation with the router fails.

    This exception is raised when:
    - The connection is refused or reset
    - The host is unreachable
    - Any other socket-level error occurs mid-request

    Attributes:
        message: Human-readable error message
        details: May include 'host', 'port', 'error_type', 'original_error'
    """


class HotspotTimeoutError(HotspotConnectionError):
    """
    Raised when the router does not answer within the configured timeout.

    Attributes:
        message: Human-readable error message
        details: May include 'timeout_type', 'timeout_value', 'operation'
    """


class HotspotConnectTimeoutError(HotspotTimeoutError):
    """Raised when the TCP connection cannot be established in time."""


class HotspotReadTimeoutError(HotspotTimeoutError):
    """Raised when the router keeps the stream open past the timeout."""


class HotspotMalformedResponseError(HotspotError):
    """
    Raised when a response body holds no decodable JSON object.

    Attributes:
        message: Human-readable error message
        details: May include 'body_excerpt', 'parse_error', 'path'
    """


class HotspotAuthenticationError(HotspotError):
    """
    Describes a failed login attempt.

    Login failures are not fatal: the session manager stores this error as
    its last_error and polling continues unauthenticated. It is only raised
    by code that explicitly requires a session.

    Attributes:
        message: Human-readable error message
        details: May include 'phase', 'host', 'original_error'
    """


class HotspotSessionExpiredError(HotspotError):
    """
    Raised when the router answers an authenticated batch with an all-empty
    device list, which is how this firmware signals an expired session.
    """


class HotspotConfigurationError(HotspotError):
    """
    Raised when configuration validation fails.

    Attributes:
        message: Human-readable error message
        details: May include 'parameter', 'value', 'valid_range'
    """


class HotspotOperationError(HotspotError):
    """
    Raised when a higher level operation cannot be completed.

    Attributes:
        message: Human-readable error message
        details: May include 'operation', 'attempts', 'last_error'
    """


def wrap_connection_error(
    original_error: Exception, host: str, port: int, phase: str = "connect"
) -> HotspotConnectionError:
    """
    Wrap a standard socket exception in HotspotConnectionError.

    Args:
        original_error: The original exception
        host: Host that failed to connect
        port: Port that failed to connect
        phase: Request phase the error happened in ("connect", "write" or "read")

    Returns:
        HotspotConnectionError (or a timeout subclass) with context
    """
    if isinstance(original_error, (socket.timeout, asyncio.TimeoutError)):
        if phase == "connect":
            error_class, message = HotspotConnectTimeoutError, f"Connection to {host}:{port} timed out"
        else:
            error_class, message = HotspotReadTimeoutError, f"Timed out during {phase} with {host}:{port}"
        return error_class(
            message,
            details={
                "host": host,
                "port": port,
                "timeout_type": phase,
                "original_error": str(original_error),
            },
        )

    message = f"Failed to talk to {host}:{port}"
    if isinstance(original_error, ConnectionRefusedError):
        message = f"Connection refused by {host}:{port} - hotspot may be offline or web interface disabled"

    return HotspotConnectionError(
        message,
        details={
            "host": host,
            "port": port,
            "error_type": type(original_error).__name__,
            "original_error": str(original_error),
        },
    )


__all__ = [
    "HotspotAuthenticationError",
    "HotspotConfigurationError",
    "HotspotConnectTimeoutError",
    "HotspotConnectionError",
    "HotspotError",
    "HotspotMalformedResponseError",
    "HotspotOperationError",
    "HotspotReadTimeoutError",
    "HotspotSessionExpiredError",
    "HotspotTimeoutError",
    "wrap_connection_error",
]
