"""Persistent event stream reader feeding the beacon monitor.

Owns the debug console connection and one background task that frames the
incoming bytes into lines and hands each line to ``BeaconMonitor.on_data``.
Use as an async context manager so the connection is released on every exit
path.
"""

from __future__ import annotations

import asyncio
import contextlib
from types import TracebackType
from typing import Self

from roku_deeplink.beacons.monitor import BeaconMonitor
from roku_deeplink.const import EVENT_CONNECT_TIMEOUT_SECONDS, EVENT_PORT
from roku_deeplink.exceptions import BeaconConnectionError
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.transport.line_framer import LineFramer
from roku_deeplink.transport.socket_abstraction import TCPConnection

__all__ = ["EventStream"]

logger = get_logger(__name__)


class EventStream:
    """Background reader of the device event stream."""

    def __init__(
        self,
        host: str,
        monitor: BeaconMonitor,
        port: int = EVENT_PORT,
        connect_timeout: float = EVENT_CONNECT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the stream.

        Args:
            host: Device address
            monitor: Monitor that receives every framed line
            port: Event stream port
            connect_timeout: Seconds allowed for the initial connect

        """
        self.host = host
        self.port = port
        self.monitor = monitor
        self.connection = TCPConnection(host, port, connect_timeout=connect_timeout)
        self.framer = LineFramer()
        self._task: asyncio.Task[None] | None = None
        self._closing = False

    async def open(self) -> None:
        """Connect and start the background reader.

        Raises:
            BeaconConnectionError: The stream could not be opened

        """
        if not await self.connection.connect():
            raise BeaconConnectionError(self.host, self.port, self.connection.last_error or "connect failed")
        self._closing = False
        self._task = asyncio.create_task(self._read_loop(), name=f"event-stream-{self.host}:{self.port}")
        logger.info("Event stream connection established")

    async def _read_loop(self) -> None:
        try:
            await self._pump()
        except Exception as e:
            # Any reader failure counts as a lost stream
            reason = f"reader failed: {str(e) or type(e).__name__}"
            logger.exception("Event stream %s", reason)
            self.monitor.fail(BeaconConnectionError(self.host, self.port, reason))

    async def _pump(self) -> None:
        while True:
            data = await self.connection.recv()
            if data is None:
                for line in self.framer.flush():
                    self.monitor.on_data(line)
                if not self._closing:
                    reason = self.connection.last_error or "connection lost"
                    logger.error("Event stream lost: %s", reason)
                    self.monitor.fail(BeaconConnectionError(self.host, self.port, reason))
                return
            for line in self.framer.feed(data):
                self.monitor.on_data(line)

    async def close(self) -> None:
        """Stop the reader task and release the connection."""
        self._closing = True
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.connection.close()
        logger.info("Event stream connection closed")

    @property
    def is_running(self) -> bool:
        """True while the background reader is active."""
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
