# band_plan.py
# Frequency unit helpers and the amateur band lookup shared by the ADIF and N1MM builders.

from typing import List, Tuple, Union

Number = Union[int, float]

OUT_OF_BAND = "OOB"

# (band, lower edge Hz, upper edge Hz), edges inclusive.
# Integer Hz keeps the edges exact; 10.15 MHz or 18.068 MHz do not survive float math.
BAND_EDGES_HZ: List[Tuple[str, int, int]] = [
    ("160m", 1_800_000, 2_000_000),
    ("80m", 3_500_000, 4_000_000),
    ("60m", 5_300_000, 5_400_000),
    ("40m", 7_000_000, 7_300_000),
    ("30m", 10_100_000, 10_150_000),
    ("20m", 14_000_000, 14_350_000),
    ("17m", 18_068_000, 18_168_000),
    ("15m", 21_000_000, 21_450_000),
    ("12m", 24_890_000, 24_990_000),
    ("10m", 28_000_000, 29_700_000),
    ("6m", 50_000_000, 54_000_000),
    ("2m", 144_000_000, 148_000_000),
    ("1.25m", 222_000_000, 225_000_000),
    ("70cm", 420_000_000, 450_000_000),
]


def band_for_frequency(frequency_hz: Number) -> str:
    """
    Return the band name for a frequency in Hz, or OUT_OF_BAND.

    Example: 14_100_000 -> '20m', 12_000_000 -> 'OOB'.
    """
    try:
        hz = int(round(float(frequency_hz)))
    except (TypeError, ValueError, OverflowError):
        return OUT_OF_BAND

    for band, low, high in BAND_EDGES_HZ:
        if low <= hz <= high:
            return band
    return OUT_OF_BAND


def khz_to_hz(khz: Number) -> int:
    return int(round(float(khz) * 1_000))


def mhz_to_hz(mhz: Number) -> int:
    return int(round(float(mhz) * 1_000_000))


def format_mhz(frequency_hz: Number) -> str:
    """Format Hz as MHz with six decimals, e.g. 14285000 -> '14.285000'."""
    return f"{float(frequency_hz) / 1_000_000:.6f}"
