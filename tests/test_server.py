import socket

import pytest

from bmpserver.request import ClientState, RequestData
from bmpserver.server import dispatch, handle_client, main


@pytest.fixture
def pair():
    server, peer = socket.socketpair()
    peer.settimeout(5)
    yield server, peer
    server.close()
    peer.close()


def _read_until_eof(peer):
    chunks = []
    while chunk := peer.recv(4096):
        chunks.append(chunk)
    return b"".join(chunks)


_NOT_FOUND = b"HTTP/1.1 404 Not Found\r\nContent-Type: text/plain\r\n\r\nPage not found.\r\n"


@pytest.mark.parametrize(
    "method, path",
    [("GET", "/nowhere"), ("POST", "/main.html"), ("DELETE", "/main.html")],
)
def test_dispatch_unknown_routes(pair, method, path):
    server, peer = pair
    client = ClientState(server)
    client.request = RequestData(method, path)
    result = dispatch(client)
    client.close()
    data = b"".join(iter(lambda: peer.recv(4096), b""))
    assert result is None
    assert data == _NOT_FOUND
    assert server.fileno() == -1


def test_dispatch_main_html(pair, tmp_path, monkeypatch):
    server, peer = pair
    monkeypatch.chdir(tmp_path)
    (tmp_path / "main.html").write_bytes(b"<script>\n</script>\n")
    (tmp_path / "images").mkdir()
    (tmp_path / "images" / "x.bmp").write_bytes(b"")
    client = ClientState(server)
    client.request = RequestData("GET", "/main.html")
    result = dispatch(client)
    client.close()
    data = b"".join(iter(lambda: peer.recv(4096), b""))
    assert result is None
    assert data.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"<script>\nvar filenames = ['x.bmp', ];\n</script>\n" in data
    assert server.fileno() == -1


def test_dispatch_without_request(pair):
    server, _ = pair
    with pytest.raises(ValueError):
        dispatch(ClientState(server))


def test_handle_client_answers_and_closes(pair):
    server, peer = pair
    peer.sendall(b"GET /missing HTTP/1.1\r\n\r\n")
    client = ClientState(server)
    assert handle_client(client) is True
    assert _read_until_eof(peer) == _NOT_FOUND


def test_handle_client_closed_connection(pair):
    server, peer = pair
    peer.close()
    client = ClientState(server)
    assert handle_client(client) is True
    assert server.fileno() == -1


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit):
        main(["--port", "abc"])