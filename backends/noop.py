# backends/noop.py
# Explicit "nothing configured" variants, so call sites never check for None.

from backend_interface import LoggingBackend, ProbeResult, RadioControlBackend
from band_plan import format_mhz


class NoRadioControl(RadioControlBackend):
    """Logging-only setups: tuning succeeds without touching any radio."""

    label = "No radio control"

    def tune(self, frequency_hz: int, mode: str) -> str:
        return f"Logged: {format_mhz(frequency_hz)} MHz {mode} (no radio control configured)"

    def test_connection(self) -> ProbeResult:
        return ProbeResult(message="Logging only mode - no radio control configured")


class NoLogging(LoggingBackend):
    label = "No logging"

    def log_contact(self, record) -> str:
        return "Logging disabled"

    def delete_contact(self, callsign: str) -> str:
        return "Logging disabled"

    def test_connection(self) -> ProbeResult:
        return ProbeResult(message="Logging disabled")
