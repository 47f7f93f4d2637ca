"""Cluster bridge data models and dataclasses.

- SpotEvent: A parsed "DX de" announcement (ephemeral, never stored)
- PromptHint: The cluster changed its interactive prompt
- PlainLine: Any other cluster line, echoed verbatim
- SpotKey: Dedup unit for spots on the radio (band or kHz, plus DX call)
- TrackedSpot: Radio-side spot id and local expiry for one SpotKey
- CmdResult: Reply to a radio API command
"""

from dataclasses import dataclass


@dataclass
class SpotEvent:
    """Represents one spot announcement from the cluster."""

    spotter: str
    freq_khz: float
    dx_call: str
    comment: str
    time: str  # HHMMZ as sent by the cluster
    is_removal: bool = False  # QRT seen in comment and QRT removal enabled
    freq_text: str = ""  # Frequency exactly as the cluster sent it

    @property
    def freq_mhz(self) -> float:
        return self.freq_khz / 1000.0


@dataclass
class PromptHint:
    """The remote host is showing a new interactive prompt."""

    prompt: str


@dataclass
class PlainLine:
    """A cluster line with no special meaning."""

    text: str


@dataclass(frozen=True)
class SpotKey:
    """Identifies a spot for deduplication.

    ``scope`` is a band name in one-per-band mode, otherwise the frequency
    rounded to the nearest kHz.
    """

    scope: str
    dx_call: str


@dataclass
class TrackedSpot:
    """A spot the radio knows about."""

    remote_id: int
    expires_at: float  # Unix time


@dataclass
class CmdResult:
    """Reply to a radio command. ``error == 0`` means success."""

    error: int
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error == 0
