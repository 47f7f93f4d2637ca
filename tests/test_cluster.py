import socket

import pytest

from clusterbridge.cluster import ClusterConnection, parse_cluster_address, strip_telnet
from clusterbridge.errors import ClusterConnectError


@pytest.fixture
def link():
    ours, theirs = socket.socketpair()
    conn = ClusterConnection(ours, "test")
    yield conn, theirs
    conn.close()
    theirs.close()


def test_lines_until_eof(link):
    conn, theirs = link
    theirs.sendall(b"Hello\r\nDX de K1ABC: 14025.0 W1XYZ CQ 1234Z\r\nlogin: ")
    theirs.shutdown(socket.SHUT_WR)

    assert list(conn.lines()) == [
        "Hello",
        "DX de K1ABC: 14025.0 W1XYZ CQ 1234Z",
        "login: ",
    ]


def test_lines_end_after_close(link):
    conn, theirs = link
    theirs.sendall(b"one\n")
    lines = conn.lines()

    assert next(lines) == "one"
    conn.close()
    assert list(lines) == []
    assert conn.closed


def test_send_line_appends_crlf(link):
    conn, theirs = link

    assert conn.send_line("K1ABC") is True
    assert theirs.recv(100) == b"K1ABC\r\n"


def test_send_after_close_reports_failure(link):
    conn, _ = link
    conn.close()

    assert conn.send_line("bye") is False


def test_invalid_utf8_is_replaced(link):
    conn, theirs = link
    theirs.sendall(b"caf\xe9\n")
    theirs.shutdown(socket.SHUT_WR)

    assert list(conn.lines()) == ["caf\ufffd"]


def test_strip_telnet():
    assert strip_telnet(b"\xff\xfb\x01login: ") == b"login: "
    assert strip_telnet(b"a\xff\xffb") == b"a\xffb"
    assert strip_telnet(b"\xff\xfa\x18\x01\xff\xf0call:") == b"call:"
    assert strip_telnet(b"plain") == b"plain"


def test_parse_cluster_address():
    assert parse_cluster_address("dxc.example.org:7300") == ("dxc.example.org", 7300)
    assert parse_cluster_address("dxc.example.org") == ("dxc.example.org", 7300)
    with pytest.raises(ClusterConnectError):
        parse_cluster_address("dxc.example.org:telnet")


def test_dial_failure_raises():
    # Grab a free port, then close it so nothing is listening
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    with pytest.raises(ClusterConnectError):
        ClusterConnection.dial(f"127.0.0.1:{port}", timeout=2)
