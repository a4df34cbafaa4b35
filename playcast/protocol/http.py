"""
Minimal HTTP/1.x handling for the shared listening port.

Only what the server needs is implemented: parsing a request head into a
method, target, version and headers, and building the fixed JSON response
for plain reads. Header names are stored lower-cased.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

from playcast.exceptions import RequestError

HEAD_TERMINATOR = b"\r\n\r\n"

# Upper bound for a request line plus headers
MAX_HEAD_SIZE = 8192


@dataclass
class HttpRequest:
    """A parsed HTTP request head."""

    method: str
    target: str
    version: str
    headers: dict[str, str] = field(default_factory=dict)

    def header(self, name: str, default: str = "") -> str:
        """Get a header value by case-insensitive name."""
        return self.headers.get(name.lower(), default)

    @property
    def content_length(self) -> int:
        value = self.header("content-length", "0").strip()
        try:
            length = int(value)
        except ValueError:
            raise RequestError(f"Invalid Content-Length: {value!r}") from None
        if length < 0:
            raise RequestError(f"Invalid Content-Length: {value!r}")
        return length

    @property
    def keep_alive(self) -> bool:
        """Whether the connection should stay open after the response."""
        tokens = {t.strip().lower() for t in self.header("connection").split(",")}
        if "close" in tokens:
            return False
        if self.version == "HTTP/1.0":
            return "keep-alive" in tokens
        return True


def parse_request_head(data: bytes) -> HttpRequest:
    """
    Parse a request head (request line and headers).

    Args:
        data: Raw bytes up to and including the blank line.

    Returns:
        The parsed request.

    Raises:
        RequestError: If the request line or a header line is malformed.
    """
    text = data.decode("latin-1")
    lines = text.split("\r\n")

    parts = lines[0].split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        raise RequestError(f"Malformed request line: {lines[0]!r}")
    method, target, version = parts

    headers: dict[str, str] = {}
    for line in lines[1:]:
        if not line:
            continue
        if ":" not in line:
            raise RequestError(f"Malformed header line: {line!r}")
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()

    return HttpRequest(method=method, target=target, version=version, headers=headers)


async def read_request(reader: asyncio.StreamReader) -> HttpRequest | None:
    """
    Read and parse the next request head from a stream.

    Returns:
        The parsed request, or None if the peer closed the stream cleanly
        before sending anything.

    Raises:
        RequestError: If the head is malformed, oversized or truncated.
    """
    try:
        head = await reader.readuntil(HEAD_TERMINATOR)
    except asyncio.IncompleteReadError as e:
        if not e.partial:
            return None
        raise RequestError("Connection closed mid-request") from None
    except asyncio.LimitOverrunError:
        raise RequestError("Request head too large") from None

    if len(head) > MAX_HEAD_SIZE:
        raise RequestError(f"Request head too large: {len(head)} bytes")

    return parse_request_head(head)


def build_json_response(body: Any, status: str = "200 OK") -> bytes:
    """
    Build a complete HTTP/1.1 response with a JSON body.

    The body is open to any origin so browser overlays can poll it.
    """
    payload = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    head = (
        f"HTTP/1.1 {status}\r\n"
        "Content-Type: application/json\r\n"
        "Access-Control-Allow-Origin: *\r\n"
        f"Content-Length: {len(payload)}\r\n"
        "\r\n"
    )
    return head.encode("latin-1") + payload
