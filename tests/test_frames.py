"""
Unit tests for the WebSocket frame encoder (Server → Client).

Tests the byte layout of short and extended-length text frames.
"""

import json
import struct

from playcast.protocol.frames import (
    EXTENDED_LENGTH_MARKER,
    MAX_PAYLOAD_LENGTH,
    encode_json,
    encode_text_frame,
)


def _string_payload_of_size(size: int) -> str:
    """A JSON string value whose encoding is exactly `size` bytes (quotes included)."""
    return "x" * (size - 2)


class TestShortFrames:
    """Payloads under 126 bytes use the 2-byte header."""

    def test_small_object(self) -> None:
        """A tiny object should produce the minimal frame."""
        frame = encode_text_frame({"a": 1})

        assert frame == b'\x81\x07{"a":1}'

    def test_first_byte_is_final_text(self) -> None:
        """Byte 0 should have FIN set and the text opcode."""
        frame = encode_text_frame({"playbackInfo": None})

        assert frame[0] == 0x81

    def test_never_masked(self) -> None:
        """Server frames must not set the mask bit."""
        frame = encode_text_frame({"playbackInfo": None})

        assert frame[1] & 0x80 == 0

    def test_length_byte_matches_payload(self) -> None:
        """Byte 1 should be the exact payload length."""
        payload = {"playbackInfo": {"title": "Song", "artist": "Band"}}
        frame = encode_text_frame(payload)
        data = encode_json(payload)

        assert frame[1] == len(data)
        assert frame[2:] == data
        assert json.loads(frame[2:].decode("utf-8")) == payload

    def test_largest_short_payload(self) -> None:
        """A 125-byte payload still uses the short form."""
        frame = encode_text_frame(_string_payload_of_size(125))

        assert frame[1] == 125
        assert len(frame) == 2 + 125

    def test_length_counts_utf8_bytes(self) -> None:
        """Non-ASCII characters should count by encoded size, not characters."""
        payload = {"title": "ä"}
        frame = encode_text_frame(payload)

        assert frame[1] == len('{"title":"ä"}'.encode("utf-8"))
        assert frame[2:].decode("utf-8") == '{"title":"ä"}'


class TestExtendedFrames:
    """Payloads of 126-65535 bytes use the 16-bit extended length."""

    def test_smallest_extended_payload(self) -> None:
        """A 126-byte payload switches to the extended form."""
        frame = encode_text_frame(_string_payload_of_size(126))

        assert frame[1] == EXTENDED_LENGTH_MARKER
        assert struct.unpack(">H", frame[2:4])[0] == 126
        assert len(frame) == 4 + 126

    def test_payload_starts_at_offset_four(self) -> None:
        """The JSON should follow the extended length field directly."""
        payload = {"playbackInfo": {"title": "t" * 300, "artist": "a"}}
        frame = encode_text_frame(payload)
        data = encode_json(payload)

        assert struct.unpack(">H", frame[2:4])[0] == len(data)
        assert frame[4:] == data
        assert json.loads(frame[4:]) == payload

    def test_largest_supported_payload(self) -> None:
        """A 65535-byte payload fits the 16-bit field exactly."""
        frame = encode_text_frame(_string_payload_of_size(MAX_PAYLOAD_LENGTH))

        assert frame[1] == EXTENDED_LENGTH_MARKER
        assert struct.unpack(">H", frame[2:4])[0] == MAX_PAYLOAD_LENGTH
        assert len(frame) == 4 + MAX_PAYLOAD_LENGTH


class TestOversizedFrames:
    """Payloads over 65535 bytes are unsupported but must not raise."""

    def test_oversized_payload_wraps_length(self) -> None:
        """The length field wraps and the payload is still written in full."""
        size = MAX_PAYLOAD_LENGTH + 100
        frame = encode_text_frame(_string_payload_of_size(size))

        assert frame[1] == EXTENDED_LENGTH_MARKER
        assert struct.unpack(">H", frame[2:4])[0] == size & 0xFFFF
        assert len(frame) == 4 + size
