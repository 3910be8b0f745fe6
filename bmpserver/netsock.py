"""TCP socket helpers for the image server and its clients."""

from __future__ import annotations

import socket
import sys

MAX_HOSTNAME = 256


def setup_server_socket(port: int, backlog: int) -> socket.socket:
    """Return a socket listening on every interface at port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", port))
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    return sock


def accept_connection(listener: socket.socket) -> socket.socket | None:
    """Accept one connection, or return None if accepting failed."""
    print("Waiting for a new connection...", file=sys.stderr)
    try:
        conn, (host, port) = listener.accept()
    except OSError as exc:
        print(f"accept: {exc}", file=sys.stderr)
        return None
    print(f"New connection accepted from {host}:{port}", file=sys.stderr)
    return conn


def connect_to_server(port: int, hostname: str) -> socket.socket:
    """Connect to hostname at port and return the connected socket."""
    try:
        address = socket.gethostbyname(hostname)
    except socket.gaierror as exc:
        raise ConnectionError(f"unknown host {hostname}") from exc
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((address, port))
    except OSError:
        sock.close()
        raise
    return sock