"""
Wire protocol for Playcast.

Hand-written HTTP request parsing, the WebSocket opening handshake and the
server-to-client text frame encoder.
"""

from playcast.protocol.frames import encode_text_frame
from playcast.protocol.handshake import (
    WEBSOCKET_MAGIC,
    build_handshake_response,
    compute_accept_token,
    is_upgrade_request,
)
from playcast.protocol.http import HttpRequest, build_json_response, read_request

__all__ = [
    "WEBSOCKET_MAGIC",
    "HttpRequest",
    "build_handshake_response",
    "build_json_response",
    "compute_accept_token",
    "encode_text_frame",
    "is_upgrade_request",
    "read_request",
]
