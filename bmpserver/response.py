"""HTTP responses written by the image server."""

from __future__ import annotations

import os
import socket
import subprocess
import sys
import time

from bmpserver.request import (
    FILTER_DIR,
    IMAGE_DIR,
    MAIN_HTML,
    ClientState,
    ConnectionClosedError,
    RequestData,
)

MAIN_HTML_FILE = "main.html"

# Seconds to wait after a 400 response so the client reads it before the
# connection is torn down.
BAD_REQUEST_LINGER = 1.0

_SCRIPT_TAG = b"<script>"

_MAIN_HTML_HEADER = b"HTTP/1.1 200 OK\r\nContent-type: text/html\r\n\r\n"

_IMAGE_RESPONSE_HEADER = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: image/bmp\r\n"
    b'Content-Disposition: attachment; filename="output.bmp"\r\n\r\n'
)

_NOT_FOUND = (
    b"HTTP/1.1 404 Not Found\r\n"
    b"Content-Type: text/plain\r\n\r\n"
    b"Page not found.\r\n"
)

_INTERNAL_SERVER_ERROR = (
    "HTTP/1.1 500 Internal Server Error\r\n"
    "Content-Type: text/html\r\n\r\n"
    '<!DOCTYPE HTML PUBLIC "-//IETF//DTD HTML 2.0//EN">\r\n'
    "<html><head>\r\n"
    "<title>500 Internal Server Error</title>\r\n"
    "</head><body>\r\n"
    "<h1>Internal Server Error</h1>\r\n"
    "<p>{message}<p>\r\n"
    "</body></html>\r\n"
)

_BAD_REQUEST_HEADER = (
    "HTTP/1.1 400 Bad Request\r\n"
    "Content-Type: text/html\r\n"
    "Content-Length: {length}\r\n\r\n"
)

_BAD_REQUEST_BODY = (
    '<!DOCTYPE HTML PUBLIC "-//IETF//DTD HTML 2.0//EN">\r\n'
    "<html><head>\r\n"
    "<title>400 Bad Request</title>\r\n"
    "</head><body>\r\n"
    "<h1>Bad Request</h1>\r\n"
    "<p>{message}<p>\r\n"
    "</body></html>\r\n"
)

_SEE_OTHER = "HTTP/1.1 303 See Other\r\nLocation: {location}\r\n\r\n"


def main_html_response(
    sock: socket.socket, html_path: str = MAIN_HTML_FILE, image_dir: str = IMAGE_DIR
) -> None:
    """Send the main page, inserting the image list after its <script> line."""
    sock.sendall(_MAIN_HTML_HEADER)
    with open(html_path, "rb") as page:
        for line in page:
            sock.sendall(line)
            if line.startswith(_SCRIPT_TAG):
                write_image_list(sock, image_dir)


def write_image_list(sock: socket.socket, image_dir: str = IMAGE_DIR) -> None:
    """Send a line of JavaScript listing the files in image_dir."""
    try:
        names = sorted(os.listdir(image_dir))
    except OSError:
        names = []
    entries = b"".join(b"'" + os.fsencode(name) + b"', " for name in names)
    sock.sendall(b"var filenames = [" + entries + b"];\n")


def image_filter_response(
    sock: socket.socket,
    req: RequestData,
    image_dir: str = IMAGE_DIR,
    filter_dir: str = FILTER_DIR,
) -> None:
    """Run the requested filter on the requested image, streaming to sock."""
    filter_value: str | None = None
    image_value: str | None = None
    for name, value in req.params:
        if name == "filter":
            filter_value = value
        elif name == "image":
            image_value = value

    if filter_value is None or image_value is None:
        bad_request_response(sock, "Filter and image parameters are required")
        return
    if "/" in filter_value or "/" in image_value:
        bad_request_response(
            sock, "Filter and image parameters cannot contain a slash character"
        )
        return

    image_file = os.path.join(image_dir, image_value)
    filter_file = os.path.join(filter_dir, filter_value)
    if not os.access(filter_file, os.X_OK) or not os.access(image_file, os.R_OK):
        bad_request_response(sock, "Filter value or image does not exist")
        return

    try:
        image = open(image_file, "rb")
    except OSError:
        bad_request_response(sock, "Could not open image file")
        return

    with image:
        sock.sendall(image_response_header())
        try:
            subprocess.run(
                [filter_value],
                executable=filter_file,
                stdin=image,
                stdout=sock.fileno(),
                check=False,
            )
        except OSError as exc:
            print(f"exec {filter_file}: {exc}", file=sys.stderr)


def image_upload_response(client: ClientState, image_dir: str = IMAGE_DIR) -> None:
    """Store an uploaded bitmap in image_dir and redirect to the main page."""
    sock = client.sock
    try:
        boundary = client.get_boundary()
    except ConnectionClosedError:
        bad_request_response(sock, "Couldn't find boundary string in request.")
        return
    print(f"Boundary string: {boundary}", file=sys.stderr)

    try:
        filename = client.get_bitmap_filename(boundary)
    except (ConnectionClosedError, ValueError):
        bad_request_response(sock, "Couldn't find bitmap filename in request.")
        return

    path = os.path.join(image_dir, filename)
    print(f"Bitmap path: {path}", file=sys.stderr)

    try:
        out = open(path, "xb")
    except FileExistsError:
        bad_request_response(sock, "File already exists.")
        return

    with out:
        try:
            client.save_file_upload(boundary, out)
        except ConnectionClosedError:
            print("upload ended before its closing boundary", file=sys.stderr)
    see_other_response(sock, MAIN_HTML)


def image_response_header() -> bytes:
    """Return the header that precedes a filtered bitmap."""
    return _IMAGE_RESPONSE_HEADER


def not_found_response(sock: socket.socket) -> None:
    """Send a 404 response."""
    sock.sendall(_NOT_FOUND)


def internal_server_error_response(sock: socket.socket, message: str) -> None:
    """Send a 500 response carrying message."""
    sock.sendall(_INTERNAL_SERVER_ERROR.format(message=message).encode())


def bad_request_response(sock: socket.socket, message: str) -> None:
    """Send a 400 response carrying message, then linger briefly."""
    body = _BAD_REQUEST_BODY.format(message=message).encode()
    header = _BAD_REQUEST_HEADER.format(length=len(body)).encode()
    sock.sendall(header + body)
    if BAD_REQUEST_LINGER > 0:
        time.sleep(BAD_REQUEST_LINGER)


def see_other_response(sock: socket.socket, other: str) -> None:
    """Send a 303 redirect to other."""
    sock.sendall(_SEE_OTHER.format(location=other).encode())