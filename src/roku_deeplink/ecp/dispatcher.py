"""External Control Protocol (ECP) command dispatcher.

Sends stateless control requests to the device over HTTP: deep-link launch,
deep-link input, keypress, and literal character entry. A request succeeds
when the device answers 2xx; anything else raises CommandError. The
dispatcher never retries and never looks at beacons: whether the app actually
reacted is the wait coordinator's business.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from types import TracebackType
from typing import Self
from urllib.parse import quote, urlencode

import aiohttp
from yarl import URL

from roku_deeplink.const import (
    CHARACTER_TIMEOUT_SECONDS,
    CONTROL_PORT,
    DEFAULT_APP_ID,
    KEYPRESS_TIMEOUT_SECONDS,
    LAUNCH_TIMEOUT_SECONDS,
    USER_CHARACTER_DELAY_SECONDS,
)
from roku_deeplink.exceptions import CommandError
from roku_deeplink.instrumentation import timed_async
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.metrics import record_command, record_command_latency

__all__ = ["CommandDispatcher", "encode_character"]

logger = get_logger(__name__)

_FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}
# Characters encodeURIComponent leaves alone besides the RFC 3986 unreserved set
_LITERAL_SAFE = "!~*'()"


def encode_character(char: str) -> str:
    """URL-escape one character for a ``Lit_`` keypress."""
    return quote(char, safe=_LITERAL_SAFE)


class CommandDispatcher:
    """Client for the device's ECP control port.

    Usable as an async context manager, which owns and closes the aiohttp
    session. An externally created session can be passed in instead; it is
    then left open.
    """

    lp: str = "CommandDispatcher"

    def __init__(
        self,
        host: str,
        app_id: str = DEFAULT_APP_ID,
        port: int = CONTROL_PORT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            host: Device address
            app_id: Default app for launch commands ("dev" for sideloaded apps)
            port: ECP port
            session: Optional shared aiohttp session

        """
        self.host = host
        self.app_id = app_id
        self.port = port
        self.http_session: aiohttp.ClientSession | None = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        """Root URL of the control port."""
        return f"http://{self.host}:{self.port}"

    async def _check_session(self) -> aiohttp.ClientSession:
        """Return the aiohttp session, creating one if needed."""
        if not self.http_session or self.http_session.closed:
            logger.debug("%s:_check_session: Creating new aiohttp ClientSession", self.lp)
            self.http_session = aiohttp.ClientSession()
            self._owns_session = True
        return self.http_session

    async def close(self) -> None:
        """Close the aiohttp session if this dispatcher created it."""
        if self._owns_session and self.http_session and not self.http_session.closed:
            logger.debug("%s:close: Closing aiohttp ClientSession", self.lp)
            await self.http_session.close()
        self.http_session = None if self._owns_session else self.http_session

    async def __aenter__(self) -> Self:
        await self._check_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @timed_async("ecp_request")
    async def _post(self, command: str, path: str, timeout: float, query: Mapping[str, str] | None = None) -> bool:
        """POST one ECP request and require a 2xx answer.

        Args:
            command: Logical command name for logs, metrics and errors
            path: Already escaped request path
            timeout: Total request timeout in seconds
            query: Optional query parameters

        Returns:
            True when the device accepted the request

        Raises:
            CommandError: Non-2xx answer, network failure, or timeout

        """
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{urlencode(query)}"
        sesh = await self._check_session()
        logger.debug("Sending ECP command: %s", command, extra={"url": url})

        start_time = time.monotonic()
        try:
            resp = await sesh.post(
                URL(url, encoded=True),
                data=b"",
                headers=_FORM_HEADERS,
                timeout=aiohttp.ClientTimeout(total=timeout),
            )
        except (aiohttp.ClientError, TimeoutError) as e:
            record_command(command, "error")
            reason = str(e) or type(e).__name__
            logger.error("ECP command %s failed: %s", command, reason, extra={"url": url})
            raise CommandError(command, url, reason) from e

        status = resp.status
        resp.release()
        record_command_latency(command, time.monotonic() - start_time)
        if not 200 <= status < 300:
            record_command(command, "rejected")
            logger.error("ECP command %s rejected (HTTP %d)", command, status, extra={"url": url})
            raise CommandError(command, url, "rejected", status=status)

        record_command(command, "accepted")
        logger.debug("ECP command sent successfully (%d)", status)
        return True

    async def launch(self, app_ref: str | None = None, params: Mapping[str, str] | None = None) -> bool:
        """Deep-link launch: ``POST /launch/{appId}?contentId=..&mediaType=..``.

        Args:
            app_ref: App id to launch (defaults to the dispatcher's app)
            params: Content parameters; omitted for a plain launch

        """
        app_id = app_ref or self.app_id
        logger.info("Launching app %s", app_id, extra=dict(params or {}))
        return await self._post("launch", f"/launch/{quote(app_id, safe='')}", LAUNCH_TIMEOUT_SECONDS, params)

    async def input(self, params: Mapping[str, str]) -> bool:
        """Deep-link input to the running app: ``POST /input?contentId=..&mediaType=..``."""
        logger.info("Sending deep link input", extra=dict(params))
        return await self._post("input", "/input", LAUNCH_TIMEOUT_SECONDS, params)

    async def keypress(self, key: str) -> bool:
        """Press one named remote key: ``POST /keypress/{key}``."""
        accepted = await self._post("keypress", f"/keypress/{quote(key, safe='')}", KEYPRESS_TIMEOUT_SECONDS)
        logger.debug("Sent keypress: %s", key)
        return accepted

    async def enter_character(self, char: str) -> bool:
        """Type one character: ``POST /keypress/Lit_{escaped char}``."""
        if len(char) != 1:
            msg = f"enter_character expects exactly one character, got {len(char)}"
            raise ValueError(msg)
        return await self._post("character", f"/keypress/Lit_{encode_character(char)}", CHARACTER_TIMEOUT_SECONDS)

    async def enter_text(self, text: str, char_delay: float = USER_CHARACTER_DELAY_SECONDS) -> None:
        """Type a string one character at a time with a short pause after each.

        Raises:
            CommandError: On the first character the device does not accept

        """
        for char in text:
            await self.enter_character(char)
            await asyncio.sleep(char_delay)
