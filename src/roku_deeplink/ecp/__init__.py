"""External Control Protocol client."""

from roku_deeplink.ecp.dispatcher import CommandDispatcher, encode_character

__all__ = ["CommandDispatcher", "encode_character"]
