"""
DX cluster telnet connection.
"""

import logging
import socket
import threading
from typing import Iterator

from .constants import CONNECT_TIMEOUT, DEFAULT_CLUSTER_PORT
from .errors import ClusterConnectError
from .utils import print_debug, print_info

logger = logging.getLogger(__name__)

IAC = 0xFF
# Telnet commands that carry an option byte (WILL, WONT, DO, DONT)
IAC_OPTION_COMMANDS = (0xFB, 0xFC, 0xFD, 0xFE)
SB = 0xFA
SE = 0xF0


def strip_telnet(data: bytes) -> bytes:
    """Drop telnet IAC sequences from a line of cluster data."""
    if IAC not in data:
        return data

    out = bytearray()
    i = 0
    in_subnegotiation = False
    while i < len(data):
        b = data[i]
        if b != IAC:
            if not in_subnegotiation:
                out.append(b)
            i += 1
            continue

        cmd = data[i + 1] if i + 1 < len(data) else None
        if cmd == IAC:
            # Escaped 0xFF data byte
            if not in_subnegotiation:
                out.append(IAC)
            i += 2
        elif cmd in IAC_OPTION_COMMANDS:
            i += 3
        elif cmd == SB:
            in_subnegotiation = True
            i += 2
        elif cmd == SE:
            in_subnegotiation = False
            i += 2
        else:
            i += 2
    return bytes(out)


def parse_cluster_address(address: str):
    """Split ``host[:port]`` into (host, port)."""
    if ":" in address:
        host, port_text = address.rsplit(":", 1)
        try:
            port = int(port_text)
        except ValueError:
            raise ClusterConnectError(f"Invalid port in cluster address {address!r}") from None
        return host, port
    return address, DEFAULT_CLUSTER_PORT


class ClusterConnection:
    """Line-oriented connection to a DX cluster node."""

    def __init__(self, sock: socket.socket, address: str = ""):
        self.sock = sock
        self.address = address
        self._reader = sock.makefile("rb")
        self._write_lock = threading.Lock()
        self._closed = False

    @classmethod
    def dial(cls, address: str, timeout: float = CONNECT_TIMEOUT) -> "ClusterConnection":
        """Connect to the cluster.

        Raises:
            ClusterConnectError: The address is malformed or unreachable
        """
        host, port = parse_cluster_address(address)
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise ClusterConnectError(f"Cannot connect to cluster {host}:{port}: {e}") from e
        sock.settimeout(None)

        print_info(f"Connected to cluster {host}:{port}")
        return cls(sock, f"{host}:{port}")

    @property
    def closed(self) -> bool:
        return self._closed

    def lines(self) -> Iterator[str]:
        """Yield lines from the cluster until the connection ends."""
        while True:
            try:
                raw = self._reader.readline()
            except (OSError, ValueError) as e:
                logger.debug("cluster read ended: %s", e)
                return
            if not raw:
                return
            yield strip_telnet(raw).decode("utf-8", errors="replace").rstrip("\r\n")

    def send_line(self, text: str) -> bool:
        """Send one line to the cluster.

        Returns:
            False if the connection is already gone
        """
        try:
            with self._write_lock:
                self.sock.sendall(text.encode("utf-8") + b"\r\n")
        except OSError as e:
            print_debug(f"Cluster write failed: {e}", level=3)
            return False
        return True

    def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected
        self.sock.close()
