"""
Tests for the WebSocket opening handshake.
"""

import base64
import hashlib

import pytest

from playcast.exceptions import HandshakeError
from playcast.protocol.handshake import (
    WEBSOCKET_MAGIC,
    build_handshake_response,
    build_rejection_response,
    compute_accept_token,
    is_upgrade_request,
)
from playcast.protocol.http import HttpRequest

# Sample nonce and accept value from RFC 6455, section 1.3
SAMPLE_NONCE = "dGhlIHNhbXBsZSBub25jZQ=="
SAMPLE_ACCEPT = "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="


def _request(**headers: str) -> HttpRequest:
    return HttpRequest(
        method="GET",
        target="/",
        version="HTTP/1.1",
        headers={k.replace("_", "-").lower(): v for k, v in headers.items()},
    )


class TestComputeAcceptToken:
    """Tests for compute_accept_token."""

    def test_reference_value(self) -> None:
        """The RFC sample nonce should produce the RFC sample token."""
        assert compute_accept_token(SAMPLE_NONCE) == SAMPLE_ACCEPT

    def test_matches_sha1_base64_construction(self) -> None:
        """Token should be base64(sha1(key + magic))."""
        key = "x3JJHMbDL1EzLkh9GBhXDw=="
        expected = base64.b64encode(
            hashlib.sha1((key + WEBSOCKET_MAGIC).encode("utf-8")).digest()
        ).decode("ascii")

        assert compute_accept_token(key) == expected

    def test_deterministic(self) -> None:
        """The same nonce should always yield the same token."""
        tokens = {compute_accept_token(SAMPLE_NONCE) for _ in range(5)}

        assert tokens == {SAMPLE_ACCEPT}

    def test_surrounding_whitespace_ignored(self) -> None:
        """Header values are trimmed before hashing."""
        assert compute_accept_token(f"  {SAMPLE_NONCE} ") == SAMPLE_ACCEPT

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key_rejected(self, key: str | None) -> None:
        """A missing or empty key should fail the handshake."""
        with pytest.raises(HandshakeError, match="Missing"):
            compute_accept_token(key)


class TestHandshakeResponse:
    """Tests for the 101 and 400 responses."""

    def test_response_lines(self) -> None:
        """Response should carry the status line and three headers."""
        response = build_handshake_response(SAMPLE_NONCE).decode("ascii")
        lines = response.split("\r\n")

        assert lines[0] == "HTTP/1.1 101 Web Socket Protocol Handshake"
        assert "Upgrade: WebSocket" in lines
        assert "Connection: Upgrade" in lines
        assert f"Sec-WebSocket-Accept: {SAMPLE_ACCEPT}" in lines
        assert response.endswith("\r\n\r\n")

    def test_response_without_key_raises(self) -> None:
        with pytest.raises(HandshakeError):
            build_handshake_response(None)

    def test_rejection_response(self) -> None:
        """Rejection should be a complete 400 response asking to close."""
        response = build_rejection_response().decode("ascii")

        assert response.startswith("HTTP/1.1 400 Bad Request\r\n")
        assert "Connection: close\r\n" in response
        assert "Content-Length: 0\r\n" in response
        assert response.endswith("\r\n\r\n")


class TestIsUpgradeRequest:
    """Tests for upgrade detection."""

    def test_websocket_upgrade(self) -> None:
        assert is_upgrade_request(_request(upgrade="websocket", connection="Upgrade"))

    def test_case_insensitive(self) -> None:
        assert is_upgrade_request(_request(upgrade="WebSocket"))

    def test_plain_request(self) -> None:
        assert not is_upgrade_request(_request(host="localhost"))

    def test_other_protocol(self) -> None:
        assert not is_upgrade_request(_request(upgrade="h2c"))
