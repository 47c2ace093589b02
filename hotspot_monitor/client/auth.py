"""
Authentication module for Hotspot Monitor
=========================================

This module owns the router session cookie. Logins are single-flight:
concurrent callers share the result of the login already in progress.

A failed login is not fatal. Several endpoints answer without a session,
so callers carry on with no token and the failure is kept in
``SessionManager.last_error`` for diagnostics.

"""

import asyncio
import base64
import logging
import re
import time
from enum import Enum
from typing import Optional
from urllib.parse import quote

from hotspot_monitor.client.http import LOGIN_PATH, build_form_body, browser_headers
from hotspot_monitor.client.parser import parse_http_response
from hotspot_monitor.client.transport import RawSocketTransport
from hotspot_monitor.exceptions import HotspotAuthenticationError, HotspotError

logger = logging.getLogger("hotspot-monitor")

SET_COOKIE_LINE_PATTERN = re.compile(r"^set-cookie:[ \t]*([^\r\n]+)", re.IGNORECASE | re.MULTILINE)


class SessionState(Enum):
    """Login state machine."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def encode_credential(value: str) -> str:
    """Base64-encode a credential, then percent-encode it for a form body."""
    encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
    return quote(encoded, safe="")


def extract_session_cookie(raw: str) -> Optional[str]:
    """
    Return the first Set-Cookie value of a raw reply up to its first ";".

    Parsed headers are preferred. A login reply that closes without a blank
    line has no header block, so the raw text is scanned line by line too.
    """
    values = parse_http_response(raw).header_values("Set-Cookie") or SET_COOKIE_LINE_PATTERN.findall(raw)
    for value in values:
        cookie = value.split(";", 1)[0].strip()
        if cookie:
            return cookie
    return None


class SessionManager:
    """Holds the session token and performs logins."""

    def __init__(self, transport: RawSocketTransport, username: str = "admin", password: str = "admin") -> None:
        """
        Initialize the session manager.

        Args:
            transport: Transport used for the login POST
            username: Router admin username
            password: Router admin password
        """
        self.transport = transport
        self.username = username
        self.password = password
        self._token: Optional[str] = None
        self._state = SessionState.UNAUTHENTICATED
        self._login_task: Optional[asyncio.Task] = None
        self.last_error: Optional[HotspotAuthenticationError] = None
        self.login_count = 0

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def state(self) -> SessionState:
        return self._state

    def build_login_body(self) -> str:
        """Build the urlencoded LOGIN form body."""
        return build_form_body(
            {
                "isTest": "false",
                "goformId": "LOGIN",
                "username": encode_credential(self.username),
                "password": encode_credential(self.password),
            }
        )

    async def ensure_token(self) -> Optional[str]:
        """
        Return the current token, logging in first if there is none.

        Returns:
            The session cookie, or None if the login failed
        """
        if self._state == SessionState.AUTHENTICATED:
            return self._token
        return await self._login_once()

    async def refresh(self, stale_token: Optional[str]) -> Optional[str]:
        """
        Force a new login after the router rejected ``stale_token``.

        If another caller already replaced the stale token, the current token
        is returned without logging in again.
        """
        if self._state == SessionState.AUTHENTICATED and self._token != stale_token:
            logger.debug("🔧 Session already refreshed by a concurrent poll")
            return self._token

        if not self._login_in_progress():
            self.invalidate()
        return await self._login_once()

    def invalidate(self) -> None:
        """Drop the token so the next cycle logs in again."""
        if self._token is not None:
            logger.debug("🔧 Session token invalidated")
        self._token = None
        if self._state == SessionState.AUTHENTICATED:
            self._state = SessionState.UNAUTHENTICATED

    def _login_in_progress(self) -> bool:
        return self._login_task is not None and not self._login_task.done()

    async def _login_once(self) -> Optional[str]:
        if self._login_in_progress():
            logger.debug("🔧 Waiting for login already in progress")
        else:
            self._login_task = asyncio.ensure_future(self._login())
        return await asyncio.shield(self._login_task)

    async def _login(self) -> Optional[str]:
        self._state = SessionState.AUTHENTICATING
        self.login_count += 1
        instrumentation = self.transport.instrumentation
        start_time = instrumentation.start_timer("login") if instrumentation else time.time()

        logger.info(f"🔐 Logging in to {self.transport.host} as {self.username}")

        try:
            raw = await self.transport.send(
                "POST",
                LOGIN_PATH,
                headers=browser_headers(self.transport.host, form=True),
                body=self.build_login_body(),
                operation="login_request",
            )
        except HotspotError as e:
            return self._fail(
                f"Login request to {self.transport.host} failed: {e.message}",
                {"phase": "request", "error_type": type(e).__name__, "original_error": str(e)},
                start_time,
            )

        cookie = extract_session_cookie(raw)
        if cookie is None:
            return self._fail(
                "Login response carried no session cookie",
                {"phase": "cookie", "response_excerpt": raw[:200]},
                start_time,
            )

        self._token = cookie
        self._state = SessionState.AUTHENTICATED
        self.last_error = None
        if instrumentation:
            instrumentation.record_timing("login", start_time, success=True, response_size=len(raw))
        logger.info("✅ Login successful, session cookie stored")
        return cookie

    def _fail(self, message: str, details: dict, start_time: float) -> Optional[str]:
        self._token = None
        self._state = SessionState.UNAUTHENTICATED
        self.last_error = HotspotAuthenticationError(message, details={"host": self.transport.host, **details})
        if self.transport.instrumentation:
            self.transport.instrumentation.record_timing(
                "login", start_time, success=False, error_type=details.get("error_type", "NoCookie")
            )
        logger.warning(f"⚠️ {message} - continuing without a session")
        return None


__all__ = ["SessionManager", "SessionState", "encode_credential", "extract_session_cookie"]
