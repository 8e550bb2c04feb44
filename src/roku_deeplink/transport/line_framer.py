"""Line framing for the device event stream.

TCP reads from the debug console may split one record across reads or merge
several records into one read. LineFramer buffers bytes and hands out whole
lines so each beacon record is parsed exactly once.
"""

from __future__ import annotations

from roku_deeplink.logging_abstraction import get_logger

logger = get_logger(__name__)


class LineFramer:
    r"""Extract complete text lines from a TCP byte stream.

    Handles:
    - Partial lines buffered across multiple reads
    - Several lines in a single read
    - ``\n`` and ``\r\n`` terminators
    - Overlong unterminated data (flushed as one line at MAX_LINE_SIZE)

    Example:
        framer = LineFramer()
        assert framer.feed(b"AppLaunch") == []
        assert framer.feed(b"Complete Duration(10 ms)\n") == ["AppLaunchComplete Duration(10 ms)"]

    """

    MAX_LINE_SIZE: int = 65536

    def __init__(self, encoding: str = "utf-8") -> None:
        """Initialize line framer with empty buffer."""
        self.encoding = encoding
        self.buffer: bytearray = bytearray()

    def feed(self, data: bytes) -> list[str]:
        """Add data to buffer and return the complete, non-empty lines.

        Args:
            data: Incoming bytes from TCP read

        Returns:
            Decoded lines with surrounding whitespace stripped

        """
        self.buffer.extend(data)
        lines: list[str] = []
        while True:
            newline = self.buffer.find(b"\n")
            if newline < 0:
                break
            raw = bytes(self.buffer[:newline])
            del self.buffer[: newline + 1]
            self._append(lines, raw)

        if len(self.buffer) > self.MAX_LINE_SIZE:
            logger.warning(
                "Unterminated line exceeds %d bytes, flushing",
                self.MAX_LINE_SIZE,
                extra={"buffer_size": len(self.buffer)},
            )
            self._append(lines, bytes(self.buffer))
            self.buffer.clear()
        return lines

    def flush(self) -> list[str]:
        """Return any buffered partial line (used when the stream ends)."""
        lines: list[str] = []
        self._append(lines, bytes(self.buffer))
        self.buffer.clear()
        return lines

    def _append(self, lines: list[str], raw: bytes) -> None:
        text = raw.decode(self.encoding, errors="replace").strip()
        if text:
            lines.append(text)
