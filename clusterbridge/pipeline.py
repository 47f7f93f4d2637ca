"""Cluster to radio spot pipeline.

Three threads share two connections:

- cluster reader: cluster lines -> console echo and SpotRegistry
- radio driver: runs the radio client's read loop
- console reader: operator lines -> cluster

SIGINT/SIGTERM and Ctrl-C at the prompt act as a fourth source of shutdown.
Whichever source finishes first closes a connection, which ends the
blocking reads in the other threads in turn:

    cluster EOF -> radio closed -> radio driver exits -> cluster, console closed
"""

import signal
import threading
import time
from enum import Enum

from .bands import get_band
from .constants import LOGIN_DELAY, STATION_BIND_TIMEOUT
from .errors import SpotParseError
from .models import PromptHint, SpotEvent
from .parser import parse_line
from .registry import SpotRegistry
from .utils import print_debug, print_error, print_info, print_status


class PipelineState(Enum):
    CONNECTED = "connected"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting down"
    TERMINATED = "terminated"


class SpotPipeline:
    """Owns the spot registry and the threads that feed it."""

    def __init__(self, config, radio, cluster, console, clock=time.time, login_delay=LOGIN_DELAY):
        """Initialize the pipeline around two already dialed connections.

        Args:
            config: BridgeConfig with the effective settings
            radio: RadioClient
            cluster: ClusterConnection (or anything with lines/send_line/close)
            console: ClusterConsole (or anything with readline/echo/echo_spot/set_prompt/close)
            clock: Time source returning Unix seconds
            login_delay: Seconds to wait after start before logging in
        """
        self.config = config
        self.radio = radio
        self.cluster = cluster
        self.console = console
        self.clock = clock
        self.login_delay = login_delay
        self.qrt_removes = config.flag("QRT")
        # Written only by the cluster reader thread
        self.registry = SpotRegistry(
            radio,
            config.timeout_seconds,
            one_per_band=config.flag("ONE_PER_BAND"),
            clock=clock,
        )
        self.state = PipelineState.CONNECTED
        self.shutdown_reason = None
        self._threads = []
        # Reentrant: the signal handler runs on the main thread, which may hold it
        self._state_lock = threading.RLock()
        self._stopping = threading.Event()

    def handle_line(self, line):
        """Process one line from the cluster."""
        try:
            item = parse_line(line, qrt_removes=self.qrt_removes)
        except SpotParseError as e:
            print_error(str(e))
            return

        if isinstance(item, SpotEvent):
            self.console.echo_spot(item, get_band(item.freq_khz))
            self.registry.upsert(item)
            self.registry.sweep(self.clock())
        elif isinstance(item, PromptHint):
            self.console.set_prompt(item.prompt)
        else:
            self.console.echo(item.text)

    # === Flows ===

    def cluster_reader(self):
        reason = "cluster connection closed"
        try:
            for line in self.cluster.lines():
                self.handle_line(line)
        except Exception as e:
            print_error(f"Cluster reader failed: {type(e).__name__}: {e}")
            reason = "cluster reader failed"
        finally:
            self._begin_shutdown(reason)
            self.radio.close()

    def radio_driver(self):
        reason = "radio connection closed"
        try:
            self.radio.run()
        except Exception as e:
            print_error(f"Radio driver failed: {type(e).__name__}: {e}")
            reason = "radio driver failed"
        finally:
            self._begin_shutdown(reason)
            self.cluster.close()
            self.console.close()

    def console_reader(self):
        reason = "console closed"
        try:
            while True:
                line = self.console.readline()
                if line is None:
                    break
                if line:
                    self.cluster.send_line(line)
            if getattr(self.console, "interrupted", False):
                reason = "interrupted"
        except Exception as e:
            print_error(f"Console reader failed: {type(e).__name__}: {e}")
            reason = "console reader failed"
        finally:
            self._begin_shutdown(reason)
            self.radio.close()

    def interrupt(self, signum=None, frame=None):
        """Signal handler: shut everything down."""
        self._begin_shutdown("interrupted")
        self.radio.close()

    # === Lifecycle ===

    def start(self):
        """Start the reader threads."""
        flows = (
            ("radio-driver", self.radio_driver),
            ("cluster-reader", self.cluster_reader),
            ("console-reader", self.console_reader),
        )
        for name, target in flows:
            thread = threading.Thread(target=target, name=name, daemon=True)
            self._threads.append(thread)
            thread.start()

        with self._state_lock:
            if self.state == PipelineState.CONNECTED:
                self.state = PipelineState.RUNNING
        print_status("Bridge running, Ctrl-D or Ctrl-C to quit")

    def bind_station(self):
        station = self.config.get("STATION")
        if station and hasattr(self.radio, "bind_station"):
            self.radio.bind_station(station, STATION_BIND_TIMEOUT)

    def login(self):
        """Send the callsign (and cluster filter) once the cluster has had time to prompt."""
        callsign = self.config.get("CALLSIGN")
        if not callsign:
            return
        if self._stopping.wait(self.login_delay):
            return

        print_debug(f"Logging in to cluster as {callsign}", level=3)
        self.cluster.send_line(callsign)

        cluster_filter = self.config.get("FILTER")
        if cluster_filter:
            print_debug(f"Sending cluster filter: {cluster_filter}", level=3)
            self.cluster.send_line(cluster_filter)

    def join(self):
        """Wait for every flow to finish."""
        for thread in self._threads:
            # Short joins keep the main thread responsive to signals
            while thread.is_alive():
                thread.join(0.5)

        with self._state_lock:
            self.state = PipelineState.TERMINATED

    def run(self):
        """Run until every flow has finished."""
        self.start()
        previous = self._install_signal_handlers()
        try:
            # Login first: a missing station can hold the bind for its whole timeout
            self.login()
            self.bind_station()
            self.join()
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)

    def _install_signal_handlers(self):
        previous = {}
        if threading.current_thread() is not threading.main_thread():
            return previous
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, self.interrupt)
        return previous

    def _begin_shutdown(self, reason):
        with self._state_lock:
            if self.state in (PipelineState.SHUTTING_DOWN, PipelineState.TERMINATED):
                return
            self.state = PipelineState.SHUTTING_DOWN
            self.shutdown_reason = reason
        self._stopping.set()
        print_info(f"Shutting down: {reason}")
