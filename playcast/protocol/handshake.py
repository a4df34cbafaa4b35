"""
WebSocket opening handshake (server side).

The client proves it speaks the protocol by sending a random nonce in the
Sec-WebSocket-Key header; the server answers with the base64-encoded SHA-1
of that nonce concatenated with a fixed GUID.

Reference: RFC 6455, section 4.2.2
"""

from __future__ import annotations

import base64
import hashlib

from playcast.exceptions import HandshakeError
from playcast.protocol.http import HttpRequest

WEBSOCKET_MAGIC = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

KEY_HEADER = "sec-websocket-key"


def compute_accept_token(key: str | None) -> str:
    """
    Compute the Sec-WebSocket-Accept value for a client nonce.

    Args:
        key: The Sec-WebSocket-Key header value. Surrounding whitespace
            is ignored.

    Returns:
        The base64 accept token.

    Raises:
        HandshakeError: If the key is missing or empty.
    """
    if key is None or not key.strip():
        raise HandshakeError("Missing Sec-WebSocket-Key")

    digest = hashlib.sha1((key.strip() + WEBSOCKET_MAGIC).encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def is_upgrade_request(request: HttpRequest) -> bool:
    """Check whether a request asks to switch to the WebSocket protocol."""
    tokens = {t.strip().lower() for t in request.header("upgrade").split(",")}
    return "websocket" in tokens


def build_handshake_response(key: str | None) -> bytes:
    """
    Build the 101 response that completes the handshake.

    Raises:
        HandshakeError: If the key is missing or empty.
    """
    token = compute_accept_token(key)
    return (
        "HTTP/1.1 101 Web Socket Protocol Handshake\r\n"
        "Upgrade: WebSocket\r\n"
        "Connection: Upgrade\r\n"
        f"Sec-WebSocket-Accept: {token}\r\n"
        "\r\n"
    ).encode("ascii")


def build_rejection_response() -> bytes:
    """Build the response sent before closing a rejected upgrade."""
    return (
        "HTTP/1.1 400 Bad Request\r\n"
        "Connection: close\r\n"
        "Content-Length: 0\r\n"
        "\r\n"
    ).encode("ascii")
