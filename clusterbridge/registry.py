"""Spot lifecycle tracking between the cluster feed and the radio.

The registry remembers which radio spot id belongs to each (band or kHz,
DX call) pair so a re-announced spot refreshes the existing radio spot
instead of stacking a duplicate on the panadapter.

Only the cluster reader thread calls into a SpotRegistry. Nothing here is
locked; a second caller would need a lock around every method.
"""

import time
from typing import Callable, Dict, Optional

from .bands import get_band
from .constants import FIELD_SPACE, SPOT_NOT_FOUND_ERROR
from .models import CmdResult, SpotEvent, SpotKey, TrackedSpot
from .utils import print_debug, print_error


def sanitize_field(value: str) -> str:
    """Make a value safe to embed in a space-delimited radio command."""
    return value.replace(" ", FIELD_SPACE)


def build_spot_fields(event: SpotEvent, lifetime_seconds: int) -> str:
    """Build the key=value part of a ``spot add`` / ``spot set`` command."""
    return (
        f"rx_freq={event.freq_mhz:f}"
        f" callsign={sanitize_field(event.dx_call)}"
        f" spotter_callsign={sanitize_field(event.spotter)}"
        f" comment={sanitize_field(event.comment)}"
        f" lifetime_seconds={lifetime_seconds}"
    )


class SpotRegistry:
    """Maps SpotKeys to the radio spots created for them."""

    def __init__(
        self,
        radio,
        timeout_seconds: float,
        one_per_band: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the registry.

        Args:
            radio: RadioClient used for spot add/set/remove commands
            timeout_seconds: Spot lifetime, on the radio and locally
            one_per_band: Key spots by band instead of by kHz
            clock: Time source returning Unix seconds
        """
        self.radio = radio
        self.timeout_seconds = timeout_seconds
        self.one_per_band = one_per_band
        self.clock = clock
        self._spots: Dict[SpotKey, TrackedSpot] = {}

    def __len__(self):
        return len(self._spots)

    def __contains__(self, key):
        return key in self._spots

    def get(self, key: SpotKey) -> Optional[TrackedSpot]:
        return self._spots.get(key)

    def key_for(self, event: SpotEvent) -> SpotKey:
        if self.one_per_band:
            scope = get_band(event.freq_khz)
        else:
            scope = f"{event.freq_khz:.0f}"  # round to nearest kHz
        return SpotKey(scope=scope, dx_call=event.dx_call)

    def upsert(self, event: SpotEvent) -> SpotKey:
        """Create, refresh or remove the radio spot for a cluster spot.

        A known key is refreshed with ``spot set``; if the radio has already
        dropped that spot it is added again. Failed commands are logged and
        leave the registry as it was.

        Returns:
            The key the event was filed under
        """
        key = self.key_for(event)

        if event.is_removal:
            self.remove(key)
            return key

        fields = build_spot_fields(event, int(self.timeout_seconds))
        tracked = self._spots.get(key)

        if tracked is not None:
            res = self._send(f"spot set {tracked.remote_id} {fields}")
            if res.ok:
                self._track(key, tracked.remote_id)
                print_debug(f"Refreshed spot {tracked.remote_id} for {key.dx_call} ({key.scope})", level=5)
                return key
            if res.error != SPOT_NOT_FOUND_ERROR:
                self._log_failure("spot set", res)
                return key
            print_debug(f"Spot {tracked.remote_id} for {key.dx_call} gone from radio, re-adding", level=5)

        res = self._send(f"spot add {fields}")
        if not res.ok:
            self._log_failure("spot add", res)
            return key

        try:
            remote_id = int(res.message)
        except ValueError:
            print_error(f"spot add: radio returned non-numeric id {res.message!r}")
            return key

        self._track(key, remote_id)
        print_debug(f"Added spot {remote_id} for {key.dx_call} ({key.scope})", level=5)
        return key

    def remove(self, key: SpotKey):
        """Remove a spot from the radio and forget it.

        The local entry is dropped even if the radio refuses, so entries the
        radio no longer has cannot pile up.
        """
        tracked = self._spots.pop(key, None)
        if tracked is None:
            return

        res = self._send(f"spot remove {tracked.remote_id}")
        if not res.ok and res.error != SPOT_NOT_FOUND_ERROR:
            self._log_failure("spot remove", res)
        else:
            print_debug(f"Removed spot {tracked.remote_id} for {key.dx_call} ({key.scope})", level=5)

    def sweep(self, now: Optional[float] = None) -> int:
        """Forget spots whose lifetime has passed.

        The radio expires its copy on the same timeout, so no command is sent.

        Returns:
            Number of entries removed
        """
        if now is None:
            now = self.clock()

        expired = [k for k, v in self._spots.items() if v.expires_at <= now]
        for k in expired:
            del self._spots[k]

        if expired:
            print_debug(f"Expired {len(expired)} spot(s), {len(self._spots)} tracked", level=5)
        return len(expired)

    def _track(self, key: SpotKey, remote_id: int):
        self._spots[key] = TrackedSpot(
            remote_id=remote_id,
            expires_at=self.clock() + self.timeout_seconds,
        )

    def _send(self, command: str) -> CmdResult:
        print_debug(f"Radio TX: {command}", level=4)
        res = self.radio.send_and_wait(command)
        print_debug(f"Radio RX: {res.error:08X} {res.message}", level=4)
        return res

    @staticmethod
    def _log_failure(what: str, res: CmdResult):
        print_error(f"{what} failed: error 0x{res.error:08X} {res.message}")
