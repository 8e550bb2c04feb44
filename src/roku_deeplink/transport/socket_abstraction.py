"""Asyncio TCP socket abstraction for the device debug console."""

from __future__ import annotations

import asyncio
import time

from roku_deeplink.instrumentation import measure_time
from roku_deeplink.logging_abstraction import get_logger

logger = get_logger(__name__)


class TCPConnection:
    """Read-mostly async TCP connection with a connect deadline."""

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 10.0,
        io_timeout: float | None = None,
        max_read_size: int = 65536,
    ) -> None:
        """
        Initialize TCP connection parameters.

        Args:
            host: Device address
            port: Target port
            connect_timeout: Connection timeout in seconds
            io_timeout: Read timeout in seconds (None waits indefinitely, as a
                persistent event stream may stay idle for long stretches)
            max_read_size: Maximum bytes to read in one operation
        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.max_read_size = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._connected = False
        self.last_error: str | None = None

    async def connect(self) -> bool:
        """
        Establish TCP connection with timeout.

        Returns:
            True if connected successfully, False otherwise (see last_error)
        """
        start_time = time.monotonic()
        logger.info(
            "Connecting to %s:%d (timeout: %.1fs)",
            self.host,
            self.port,
            self.connect_timeout,
        )
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout,
            )
        except TimeoutError:
            self.last_error = "timeout"
            logger.error(
                "Connection to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                measure_time(start_time),
            )
            return False
        except OSError as e:
            self.last_error = str(e) or type(e).__name__
            logger.error(
                "Connection to %s:%d failed after %.1fms",
                self.host,
                self.port,
                measure_time(start_time),
                extra={"error": self.last_error},
            )
            return False

        self._connected = True
        logger.info("Connected to %s:%d in %.1fms", self.host, self.port, measure_time(start_time))
        return True

    async def recv(self, max_bytes: int | None = None) -> bytes | None:
        """
        Receive the next chunk of data.

        Args:
            max_bytes: Maximum bytes to read (default: self.max_read_size)

        Returns:
            Received bytes, or None when the peer closed, the read timed out,
            or the socket failed (see last_error)
        """
        if not self._connected or not self.reader:
            self.last_error = "not connected"
            return None

        try:
            data = await asyncio.wait_for(
                self.reader.read(max_bytes or self.max_read_size),
                timeout=self.io_timeout,
            )
        except TimeoutError:
            self.last_error = "timeout"
            return None
        except OSError as e:
            self.last_error = str(e) or type(e).__name__
            logger.warning("Receive from %s:%d failed: %s", self.host, self.port, self.last_error)
            self._connected = False
            return None

        if not data:
            self.last_error = "closed by peer"
            logger.warning("Connection closed by %s:%d", self.host, self.port)
            self._connected = False
            return None
        return data

    async def close(self) -> None:
        """Close the connection (safe to call more than once)."""
        if self.writer:
            logger.info("Closing connection to %s:%d", self.host, self.port)
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except (OSError, ConnectionError) as e:
                logger.warning("Error closing connection: %s", e)
            finally:
                self._connected = False
                self.writer = None
                self.reader = None

    @property
    def is_connected(self) -> bool:
        """Check if connection is active."""
        return self._connected

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._connected else "disconnected"
        return f"TCPConnection({self.host}:{self.port}, {status})"
