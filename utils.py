# utils.py
# Small formatting helpers shared by the relay and the command line.

from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional


def pretty_duration(seconds: float, style: str = "auto") -> str:
    """Format duration as '1h 02m 05s' / '22m 03s' / '3.40 s' / '850 ms' or 'HH:MM:SS'."""
    if seconds < 0:
        seconds = 0.0

    if style == "clock":
        total = int(round(seconds))
        h = total // 3600
        m = (total % 3600) // 60
        s = total % 60
        return f"{h:02d}:{m:02d}:{s:02d}"

    if seconds < 0.001:
        return "0 ms"
    if seconds < 1.0:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60.0:
        return f"{seconds:.2f} s"

    total = int(round(seconds))
    h = total // 3600
    m = (total % 3600) // 60
    s = total % 60

    if h > 0:
        return f"{h}h {m:02d}m {s:02d}s"
    return f"{m}m {s:02d}s"


def iso_utc(ts: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with millisecond precision and a 'Z' suffix."""
    ts = ts or datetime.now(timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
