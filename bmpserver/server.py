"""The image server: accepts connections and answers each request."""

from __future__ import annotations

import argparse
import selectors
import socket
import sys
import threading

from bmpserver.netsock import accept_connection, setup_server_socket
from bmpserver.request import (
    FILTER_DIR,
    GET,
    IMAGE_DIR,
    IMAGE_FILTER,
    IMAGE_UPLOAD,
    MAIN_HTML,
    POST,
    ClientState,
    ConnectionClosedError,
)
from bmpserver.response import (
    MAIN_HTML_FILE,
    image_filter_response,
    image_upload_response,
    main_html_response,
    not_found_response,
)

PORT = 30000
BACKLOG = 10
MAX_CLIENTS = 10
SELECT_TIMEOUT = 2.0


def dispatch(client: ClientState) -> None:
    """Send the response for the client's parsed request."""
    req = client.request
    if req is None:
        raise ValueError("client has no parsed request")
    if req.method == GET and req.path == MAIN_HTML:
        main_html_response(client.sock, MAIN_HTML_FILE, IMAGE_DIR)
    elif req.method == GET and req.path == IMAGE_FILTER:
        image_filter_response(client.sock, req, IMAGE_DIR, FILTER_DIR)
    elif req.method == POST and req.path == IMAGE_UPLOAD:
        image_upload_response(client, IMAGE_DIR)
    else:
        not_found_response(client.sock)


def _respond(client: ClientState) -> None:
    try:
        dispatch(client)
    except Exception as exc:  # a failed request must not stop the server
        print(f"error handling request: {exc!r}", file=sys.stderr)
    finally:
        client.close()


def handle_client(client: ClientState) -> bool:
    """Read from the client and, once its start line is in, answer it.

    Returns True when the server is done with the client: either the
    connection closed, or the request was handed to a worker that answers
    and closes it. Returns False while the start line is incomplete.
    """
    try:
        client.read()
        if not client.parse_start_line():
            return False
    except ConnectionClosedError:
        client.close()
        return True
    threading.Thread(target=_respond, args=(client,), daemon=True).start()
    return True


def serve(port: int) -> None:
    """Listen on port and answer requests until interrupted."""
    listener = setup_server_socket(port, BACKLOG)
    print(f"Server hostname: {socket.gethostname()}", file=sys.stderr)
    print(f"Port: {port}", file=sys.stderr)

    with listener, selectors.DefaultSelector() as selector:
        selector.register(listener, selectors.EVENT_READ)
        while True:
            for key, _ in selector.select(timeout=SELECT_TIMEOUT):
                if key.fileobj is listener:
                    conn = accept_connection(listener)
                    if conn is None:
                        continue
                    if len(selector.get_map()) - 1 >= MAX_CLIENTS:
                        print("Too many clients; dropping connection", file=sys.stderr)
                        conn.close()
                        continue
                    selector.register(conn, selectors.EVENT_READ, ClientState(conn))
                    continue

                client: ClientState = key.data
                selector.unregister(key.fileobj)
                if not handle_client(client):
                    selector.register(client.sock, selectors.EVENT_READ, client)


def main(argv: list[str] | None = None) -> int:
    """Run the image server from the command line."""
    parser = argparse.ArgumentParser(prog="bmpserver", description="Serve and filter bitmap images.")
    parser.add_argument("-p", "--port", type=int, default=PORT, help="port to listen on")
    args = parser.parse_args(argv)
    try:
        serve(args.port)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"server error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())