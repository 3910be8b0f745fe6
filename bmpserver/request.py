"""Client connection state and parsing of HTTP requests for the image server."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from itertools import islice
from typing import BinaryIO, Protocol

MAX_QUERY_PARAMS = 5
MAXLINE = 1024

GET = "GET"
POST = "POST"
MAIN_HTML = "/main.html"
IMAGE_FILTER = "/image-filter"
IMAGE_UPLOAD = "/image-upload"

IMAGE_DIR = "images/"
FILTER_DIR = "filters/"

POST_BOUNDARY_HEADER = "Content-Type: multipart/form-data; boundary="

NETWORK_NEWLINE = b"\r\n"

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"
_QUERY_SEPARATOR = re.compile(r"[?&]")


class ConnectionClosedError(ConnectionError):
    """Raised when a client stops sending before a request is complete."""


class _Socket(Protocol):
    def recv(self, bufsize: int) -> bytes: ...

    def close(self) -> None: ...


@dataclass
class RequestData:
    """The method, path and query parameters from an HTTP start line."""

    method: str
    path: str
    params: list[tuple[str, str]] = field(default_factory=list)


def _decode(data: bytes | bytearray) -> str:
    return bytes(data).decode(_ENCODING, _ERRORS)


def _encode(text: str) -> bytes:
    return text.encode(_ENCODING, _ERRORS)


def find_network_newline(buf: bytes | bytearray) -> int | None:
    """Return the index just past the first CRLF in buf, or None."""
    index = buf.find(NETWORK_NEWLINE)
    return None if index < 0 else index + len(NETWORK_NEWLINE)


def _parse_pair(text: str) -> tuple[str, str]:
    name, _, rest = text.partition("=")
    value = rest.split("&", 1)[0]
    return name, value


def parse_request_line(line: str) -> RequestData:
    """Parse an HTTP start line (without its CRLF) into a RequestData."""
    position = 0
    method = ""
    if line.startswith("G"):
        method = GET
        position = len(GET) + 1
    if line[position : position + 1] == "P":
        method = POST
        position += len(POST) + 1
    if not method:
        method = line.split(" ", 1)[0]
        position = len(method) + 1

    path = ""
    rest = line[position:]
    if rest.startswith("/"):
        path = re.split(r"[ ?]", rest, maxsplit=1)[0]
        rest = rest[len(path) :]

    params: list[tuple[str, str]] = []
    if method == GET:
        query = rest.split(" ", 1)[0]
        separators = islice(_QUERY_SEPARATOR.finditer(query), MAX_QUERY_PARAMS)
        params = [_parse_pair(query[match.end() :]) for match in separators]
    return RequestData(method=method, path=path, params=params)


def log_request(req: RequestData) -> None:
    """Print the parsed request to stderr."""
    print(f"Request parsed: [{req.method}] [{req.path}]", file=sys.stderr)
    for name, value in req.params:
        print(f"  {name} -> {value}", file=sys.stderr)


class ClientState:
    """A connected client with its buffered, not yet consumed input."""

    def __init__(self, sock: _Socket) -> None:
        self.sock = sock
        self.buf = bytearray()
        self.request: RequestData | None = None

    def __enter__(self) -> ClientState:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read(self) -> int:
        """Append newly received data to the buffer and return its length.

        The buffer holds at most MAXLINE - 1 bytes; a full buffer or a
        closed connection raises ConnectionClosedError.
        """
        room = MAXLINE - len(self.buf) - 1
        data = self.sock.recv(room) if room > 0 else b""
        if not data:
            raise ConnectionClosedError("no more data from client")
        self.buf += data
        return len(data)

    def remove_buffered_line(self) -> bytes | None:
        """Remove and return the first CRLF-terminated line, if there is one."""
        end = find_network_newline(self.buf)
        if end is None:
            return None
        line = bytes(self.buf[:end])
        del self.buf[:end]
        return line

    def _wait_for_line(self) -> int:
        while (end := find_network_newline(self.buf)) is None:
            self.read()
        return end

    def parse_start_line(self) -> bool:
        """Parse the start line once it is buffered.

        Returns True when the request has been parsed; otherwise reads more
        data and returns False.
        """
        end = find_network_newline(self.buf)
        if end is None:
            self.read()
            return False
        line = self.remove_buffered_line() or b""
        self.request = parse_request_line(_decode(line[: end - len(NETWORK_NEWLINE)]))
        log_request(self.request)
        return True

    def get_boundary(self) -> str:
        """Skip header lines up to the multipart one and return "--" + boundary."""
        header = _encode(POST_BOUNDARY_HEADER)
        while True:
            end = self._wait_for_line()
            line = self.buf[: end - len(NETWORK_NEWLINE)]
            if line.startswith(header):
                return "--" + _decode(line[len(header) :])
            del self.buf[:end]

    def get_bitmap_filename(self, boundary: str) -> str:
        """Skip to the boundary line and return the filename of the part after it."""
        marker = _encode(boundary)
        while True:
            self._wait_for_line()
            line = self.remove_buffered_line() or b""
            if line.startswith(marker):
                break

        self._wait_for_line()
        line = (self.remove_buffered_line() or b"")[: -len(NETWORK_NEWLINE)]
        equals = line.rfind(b"=")
        if equals < 0:
            raise ValueError("no filename in multipart part header")
        # Skip the '="' after the last equals sign and drop the closing quote.
        return _decode(line[equals + 2 : -1])

    def save_file_upload(self, boundary: str, out: BinaryIO) -> int:
        """Copy the uploaded file body to out and return the number of bytes.

        The body ends at the CRLF that precedes the next boundary line.
        """
        for _ in range(2):  # Content-Type line and the blank line after it
            self._wait_for_line()
            self.remove_buffered_line()

        terminator = NETWORK_NEWLINE + _encode(boundary)
        keep = len(terminator) - 1
        total = 0
        while True:
            position = self.buf.find(terminator)
            if position >= 0:
                out.write(bytes(self.buf[:position]))
                total += position
                del self.buf[: position + len(terminator)]
                return total
            flush = len(self.buf) - keep
            if flush > 0:
                out.write(bytes(self.buf[:flush]))
                total += flush
                del self.buf[:flush]
            self.read()

    def close(self) -> None:
        """Close the socket and forget any buffered data and request."""
        self.sock.close()
        self.buf.clear()
        self.request = None