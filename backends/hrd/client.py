from typing import Union

from backend_interface import ProbeResult, RadioControlBackend
from band_plan import format_mhz
from loghandler import get_logger
from .frame import DEFAULT_TIMEOUT_S
from .transport import HRDTransport

logger = None


class HRDRadioClient(RadioControlBackend):
    """
    Radio control through Ham Radio Deluxe's TCP interface (default port 7809).

    Every call is a self-contained round trip on its own connection, so the
    client holds no socket and close() has nothing to release.
    """

    label = "HRD"

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 7809,
        timeout: float = DEFAULT_TIMEOUT_S,
        debug: bool = False,
    ) -> None:
        global logger
        if logger is None:
            logger = get_logger()

        self.host = host
        self.port = int(port)
        self.transport = HRDTransport(
            host, self.port, connect_timeout=timeout, response_timeout=timeout, debug=debug
        )

    def send_raw(self, command: str, use_context_prefix: bool = False) -> str:
        """Pass an arbitrary HRD command through and return its reply text."""
        return self.transport.send_command(command, use_context_prefix)

    def set_frequency(self, frequency_hz: Union[int, float]) -> str:
        hz = int(round(float(frequency_hz)))
        return self.transport.send_command(f"set frequency-hz {hz}")

    def set_mode(self, mode: str) -> str:
        return self.transport.send_command(f"set mode {mode}")

    def tune(self, frequency_hz: int, mode: str) -> str:
        # Fail fast: a failed 'set mode' leaves the new frequency applied.
        self.set_frequency(frequency_hz)
        self.set_mode(mode)
        logger.info(f"[HRD] Tuned to {format_mhz(frequency_hz)} MHz {mode}")
        return f"Tuned to {format_mhz(frequency_hz)} MHz {mode}"

    def test_connection(self) -> ProbeResult:
        frequency = self.transport.send_command("get frequency")
        logger.info(f"[HRD] responding, frequency: {frequency}")
        return ProbeResult(message="HRD connected", frequency=frequency)
