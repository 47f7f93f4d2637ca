"""
Radio API client.

The bridge only needs two things from the radio: a blocking
command/response call and a loop that keeps the connection serviced.
RadioClient captures that; FlexRadioClient implements it over the
SmartSDR TCP API.
"""

import logging
import socket
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

from .constants import (
    CONNECT_TIMEOUT,
    CONNECTION_CLOSED_ERROR,
    DISCOVERY_TIMEOUT,
    FIELD_SPACE,
    FLEX_API_PORT,
    FLEX_DISCOVERY_PORT,
)
from .errors import RadioConnectError
from .models import CmdResult
from .utils import print_debug, print_info, print_warning

logger = logging.getLogger(__name__)

DISCOVER_PREFIX = ":discover:"

# VITA-49 discovery packets carry a 7-word header before the text payload
VITA_HEADER_BYTES = 28


class RadioClient(ABC):
    """Abstract base class for the radio command channel."""

    @abstractmethod
    def send_and_wait(self, command: str) -> CmdResult:
        """
        Send a command and block until the radio replies.

        Never raises for radio-side or connection failures; those come back
        as a non-zero CmdResult.error.
        """
        pass

    @abstractmethod
    def run(self) -> None:
        """Service the connection until it closes. Blocks."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection, making run() return."""
        pass


class _PendingCommand:
    """A command waiting for its R line."""

    def __init__(self):
        self.done = threading.Event()
        self.result: Optional[CmdResult] = None

    def resolve(self, result: CmdResult):
        self.result = result
        self.done.set()


def parse_reply(line: str) -> Optional[Tuple[int, CmdResult]]:
    """Parse an ``R<seq>|<hex error>|<message>`` reply line.

    Returns:
        (sequence number, result) or None if the line is not a valid reply
    """
    if not line.startswith("R"):
        return None
    parts = line[1:].split("|", 2)
    if len(parts) < 2:
        return None
    try:
        seq = int(parts[0])
        error = int(parts[1], 16)
    except ValueError:
        return None
    message = parts[2] if len(parts) > 2 else ""
    return seq, CmdResult(error=error, message=message)


def parse_kv(tokens) -> Dict[str, str]:
    """Turn ``key=value`` tokens into a dict, ignoring bare words."""
    result = {}
    for token in tokens:
        if "=" in token:
            key, value = token.split("=", 1)
            result[key] = value
    return result


class FlexRadioClient(RadioClient):
    """SmartSDR TCP API client (commands ``C<seq>|...``, replies ``R<seq>|...``)."""

    def __init__(self, sock: socket.socket):
        """Wrap an already connected API socket.

        Args:
            sock: Connected TCP socket to the radio's API port
        """
        self.sock = sock
        self.version: Optional[str] = None
        self.handle: Optional[str] = None
        self._reader = sock.makefile("r", encoding="utf-8", errors="replace", newline="\n")
        self._write_lock = threading.Lock()
        self._pending_lock = threading.RLock()
        self._pending: Dict[int, _PendingCommand] = {}
        self._seq = 0
        self._closed = False
        self._status_listeners: List[Callable[[str], None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def send_and_wait(self, command: str) -> CmdResult:
        pending = _PendingCommand()
        with self._pending_lock:
            if self._closed:
                return CmdResult(CONNECTION_CLOSED_ERROR, "radio connection closed")
            self._seq += 1
            seq = self._seq
            self._pending[seq] = pending

        try:
            with self._write_lock:
                self.sock.sendall(f"C{seq}|{command}\n".encode("utf-8"))
        except OSError as e:
            with self._pending_lock:
                self._pending.pop(seq, None)
            logger.debug("radio write failed: %s", e)
            return CmdResult(CONNECTION_CLOSED_ERROR, f"radio write failed: {e}")

        pending.done.wait()
        return pending.result

    def run(self) -> None:
        try:
            for raw in self._reader:
                self._dispatch(raw.rstrip("\r\n"))
        except (OSError, ValueError) as e:
            # ValueError: reader closed underneath us
            logger.debug("radio read loop ended: %s", e)
        finally:
            self._fail_pending()

    def close(self) -> None:
        with self._pending_lock:
            self._closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Already disconnected
        self.sock.close()

    def add_status_listener(self, listener: Callable[[str], None]):
        self._status_listeners.append(listener)

    def remove_status_listener(self, listener: Callable[[str], None]):
        if listener in self._status_listeners:
            self._status_listeners.remove(listener)

    def bind_station(self, station: str, timeout: float) -> bool:
        """Bind this API client to the GUI client running on ``station``.

        Args:
            station: Station name as shown by SmartSDR
            timeout: Seconds to wait for the station to appear

        Returns:
            True if bound
        """
        found = threading.Event()
        client_ids = []

        def on_status(status: str):
            fields = status.split()
            if len(fields) < 3 or fields[0] != "client" or fields[2] != "connected":
                return
            kv = parse_kv(fields[3:])
            if kv.get("station", "").replace(FIELD_SPACE, " ") == station and kv.get("client_id"):
                client_ids.append(kv["client_id"])
                found.set()

        self.add_status_listener(on_status)
        try:
            res = self.send_and_wait("sub client all")
            if not res.ok:
                print_warning(f"Could not subscribe to radio clients: 0x{res.error:08X} {res.message}")
                return False
            if not found.wait(timeout):
                print_warning(f"No GUI client on station {station!r}, continuing unbound")
                return False
        finally:
            self.remove_status_listener(on_status)

        res = self.send_and_wait(f"client bind client_id={client_ids[0]}")
        if not res.ok:
            print_warning(f"Bind to station {station!r} failed: 0x{res.error:08X} {res.message}")
            return False

        print_info(f"Bound to station {station}")
        return True

    def _dispatch(self, line: str):
        if not line:
            return

        kind = line[0]
        if kind == "R":
            reply = parse_reply(line)
            if reply is None:
                logger.warning("malformed radio reply: %r", line)
                return
            seq, result = reply
            with self._pending_lock:
                pending = self._pending.pop(seq, None)
            if pending is not None:
                pending.resolve(result)
        elif kind == "S":
            _, _, status = line.partition("|")
            print_debug(f"Radio status: {status}", level=6)
            for listener in list(self._status_listeners):
                listener(status)
        elif kind == "V":
            self.version = line[1:]
            print_debug(f"Radio API version {self.version}", level=3)
        elif kind == "H":
            self.handle = line[1:]
            print_debug(f"Radio client handle {self.handle}", level=3)
        elif kind == "M":
            print_debug(f"Radio message: {line[1:]}", level=3)

    def _fail_pending(self):
        with self._pending_lock:
            self._closed = True
            pending, self._pending = self._pending, {}
        for cmd in pending.values():
            cmd.resolve(CmdResult(CONNECTION_CLOSED_ERROR, "radio connection closed"))


def parse_radio_address(address: str) -> Tuple[Optional[str], int, Dict[str, str]]:
    """Parse the --radio option.

    Accepts ``host``, ``host:port`` or ``:discover:`` optionally followed by
    comma-separated ``key=value`` discovery filters
    (``:discover:nickname=Shack,model=FLEX-6600``).

    Returns:
        (host or None when discovering, port, discovery filters)
    """
    if address.startswith(DISCOVER_PREFIX):
        rest = address[len(DISCOVER_PREFIX):]
        filters = parse_kv(t for t in rest.split(",") if t)
        return None, FLEX_API_PORT, filters

    if ":" in address:
        host, port_text = address.rsplit(":", 1)
        try:
            port = int(port_text)
        except ValueError:
            raise RadioConnectError(f"Invalid port in radio address {address!r}") from None
        return host, port, {}

    return address, FLEX_API_PORT, {}


def parse_discovery_packet(data: bytes) -> Optional[Dict[str, str]]:
    """Extract the key=value fields from a VITA-49 discovery packet."""
    if len(data) <= VITA_HEADER_BYTES:
        return None

    size_words = int.from_bytes(data[2:4], "big")
    end = size_words * 4 if size_words else len(data)
    payload = data[VITA_HEADER_BYTES:end].decode("ascii", errors="replace")
    fields = parse_kv(payload.strip("\x00 ").split())
    if "ip" not in fields:
        return None
    return fields


def discover_radio(filters: Dict[str, str], timeout: float = DISCOVERY_TIMEOUT) -> Tuple[str, int]:
    """Wait for a discovery broadcast from a radio matching every filter.

    Raises:
        RadioConnectError: Nothing matching was heard before the timeout
    """
    print_info("Discovering radio...")
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("", FLEX_DISCOVERY_PORT))
        deadline = time.monotonic() + timeout

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise RadioConnectError("No radio found by discovery")
            sock.settimeout(remaining)
            try:
                data, _ = sock.recvfrom(4096)
            except socket.timeout:
                continue

            fields = parse_discovery_packet(data)
            if fields is None:
                continue
            if all(fields.get(k) == v for k, v in filters.items()):
                port = int(fields.get("port", FLEX_API_PORT))
                print_info(f"Discovered {fields.get('model', 'radio')} "
                           f"{fields.get('nickname', '')} at {fields['ip']}:{port}")
                return fields["ip"], port
    except OSError as e:
        raise RadioConnectError(f"Discovery failed: {e}") from e
    finally:
        sock.close()


def connect_radio(address: str, timeout: float = CONNECT_TIMEOUT) -> FlexRadioClient:
    """Resolve and dial the radio.

    Raises:
        RadioConnectError: Discovery or the TCP connect failed
    """
    host, port, filters = parse_radio_address(address)
    if host is None:
        host, port = discover_radio(filters)

    try:
        sock = socket.create_connection((host, port), timeout=timeout)
    except OSError as e:
        raise RadioConnectError(f"Cannot connect to radio at {host}:{port}: {e}") from e
    sock.settimeout(None)

    print_info(f"Connected to radio at {host}:{port}")
    return FlexRadioClient(sock)
