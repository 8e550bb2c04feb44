"""Event stream transport: TCP connection, line framing, background reader."""

from roku_deeplink.transport.event_stream import EventStream
from roku_deeplink.transport.line_framer import LineFramer
from roku_deeplink.transport.socket_abstraction import TCPConnection

__all__ = ["EventStream", "LineFramer", "TCPConnection"]
