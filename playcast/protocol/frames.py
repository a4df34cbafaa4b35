"""
WebSocket frame encoding for Server → Client messages.

Only one kind of frame is ever sent: a single, final, unmasked text frame
carrying a JSON document. Client frames are never decoded.

Frame Format (server to client):
    [1] FIN + opcode          0x81 (final fragment, text)
    [1] Payload length        0-125, or 126 for the extended form
    [2] Extended length       big-endian u16, only when byte 1 == 126
    [*] Payload               UTF-8 JSON

Payloads over 65535 bytes need the 64-bit length form, which is not
implemented. Such frames are written with a wrapped 16-bit length and will
be rejected by clients.

Reference: RFC 6455, section 5.2
"""

from __future__ import annotations

import json
import logging
import struct
from typing import Any

logger = logging.getLogger(__name__)

FIN_BIT = 0x80
OPCODE_TEXT = 0x1

# Largest length that fits in byte 1 directly
MAX_SHORT_LENGTH = 125

# Byte 1 value announcing a 16-bit extended length
EXTENDED_LENGTH_MARKER = 126

MAX_PAYLOAD_LENGTH = 0xFFFF


def encode_json(payload: Any) -> bytes:
    """Serialize a payload to compact UTF-8 JSON."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def encode_text_frame(payload: Any) -> bytes:
    """
    Encode a JSON-serializable value as a single unmasked text frame.

    Args:
        payload: Any value accepted by json.dumps.

    Returns:
        The complete frame, ready to be written to the socket.
    """
    data = encode_json(payload)
    length = len(data)

    header = bytes([FIN_BIT | OPCODE_TEXT])

    if length <= MAX_SHORT_LENGTH:
        header += struct.pack(">B", length)
    else:
        if length > MAX_PAYLOAD_LENGTH:
            logger.warning(
                "Frame payload of %d bytes exceeds %d; length field will wrap",
                length,
                MAX_PAYLOAD_LENGTH,
            )
        header += struct.pack(">BH", EXTENDED_LENGTH_MARKER, length & MAX_PAYLOAD_LENGTH)

    return header + data
