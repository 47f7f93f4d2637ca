"""Amateur band lookup by frequency."""

from typing import Tuple

# (lowest frequency in kHz, band name), ascending. The first edge is 0 so
# every frequency falls in some band.
BAND_EDGES: Tuple[Tuple[float, str], ...] = (
    (0, "LFMF"),
    (1800, "160m"),
    (3500, "80m"),
    (5000, "60m"),
    (7000, "40m"),
    (10000, "30m"),
    (14000, "20m"),
    (18000, "17m"),
    (21000, "15m"),
    (24890, "12m"),
    (26000, "11m"),
    (28000, "10m"),
    (50000, "6m"),
    (144000, "2m"),
    (220000, "125cm"),
    (420000, "70cm"),
    (900000, "900M"),
    (1240000, "1240M"),
    (2300000, "microwave"),
)


def get_band(freq_khz: float) -> str:
    """Return the name of the band containing ``freq_khz``.

    The band is the one with the highest lower edge that is still at or
    below the frequency. Anything below the first edge is reported as the
    lowest band.
    """
    i = 0
    while i < len(BAND_EDGES) - 1 and freq_khz >= BAND_EDGES[i + 1][0]:
        i += 1
    return BAND_EDGES[i][1]
