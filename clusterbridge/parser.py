"""Cluster line classification and spot parsing."""

import re
from typing import Union

from .constants import PROMPT_SUFFIXES
from .errors import SpotParseError
from .models import PlainLine, PromptHint, SpotEvent

# DX de K1ABC:     14025.0  W1XYZ        CQ CQ DX                       1234Z
SPOT_PATTERN = re.compile(
    r"^DX de (?P<spotter>\S+?):?\s*"
    r"(?P<freq>[0-9.]+)\s+"
    r"(?P<dx>\S+?)\s+"
    r"(?P<comment>.*?)\s*"
    r"(?P<time>[0-9]{4}Z)"
)

QRT_PATTERN = re.compile(r"\bQRT\b", re.IGNORECASE)

ClusterLine = Union[SpotEvent, PromptHint, PlainLine]


def is_qrt(comment: str) -> bool:
    """Check whether a spot comment announces the station going QRT."""
    return QRT_PATTERN.search(comment) is not None


def parse_line(line: str, qrt_removes: bool = True) -> ClusterLine:
    """Classify one line received from the cluster.

    Args:
        line: Line text without its line terminator
        qrt_removes: Whether QRT in the comment marks the spot for removal

    Returns:
        SpotEvent for spot announcements, PromptHint when the line looks
        like an interactive prompt, PlainLine otherwise

    Raises:
        SpotParseError: The line is a spot but its frequency is not a number
    """
    match = SPOT_PATTERN.match(line)
    if match is None:
        for suffix in PROMPT_SUFFIXES:
            if line.endswith(suffix):
                return PromptHint(prompt=line[: -len(suffix)])
        return PlainLine(text=line)

    freq_text = match.group("freq")
    try:
        freq_khz = float(freq_text)
    except ValueError:
        raise SpotParseError(f"Bad frequency {freq_text!r} in spot: {line}") from None

    comment = match.group("comment")
    return SpotEvent(
        spotter=match.group("spotter"),
        freq_khz=freq_khz,
        dx_call=match.group("dx"),
        comment=comment,
        time=match.group("time"),
        is_removal=qrt_removes and is_qrt(comment),
        freq_text=freq_text,
    )
