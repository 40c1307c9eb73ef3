import requests
from requests.exceptions import RequestException, HTTPError, Timeout, ConnectionError
from typing import Iterable, Optional

from backend_interface import (
    BackendTimeout,
    ConnectFailed,
    ParseFailed,
    ProbeResult,
    RadioControlBackend,
    TransportError,
)
from band_plan import format_mhz
from loghandler import get_logger
from .xmlrpc import Param, build_method_call, parse_method_response

logger = None

DEFAULT_TIMEOUT_S = 5.0


class FlrigClient(RadioControlBackend):
    """FLRIG radio control over XML-RPC (POST http://host:port/RPC2)."""

    label = "FLRIG"

    def __init__(self, host: str = "127.0.0.1", port: int = 12345, timeout: float = DEFAULT_TIMEOUT_S):
        global logger
        if logger is None:
            logger = get_logger()

        self.host = host
        self.port = int(port)
        self.timeout = float(timeout)
        self.url = f"http://{self.host}:{self.port}/RPC2"

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------
    def call(self, method: str, params: Iterable[Param] = ()) -> Optional[str]:
        """POST one methodCall and return the scalar result (None if FLRIG returned none)."""
        body = build_method_call(method, list(params))
        try:
            response = requests.post(
                self.url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "text/xml"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except Timeout:
            logger.error(f"[FLRIG] {method} timed out after {self.timeout:.1f}s.")
            raise BackendTimeout("FLRIG connection timeout")
        except ConnectionError as e:
            logger.error(f"[FLRIG] Could not connect to {self.url}: {e}")
            raise ConnectFailed(f"FLRIG connection error: {e}")
        except HTTPError as e:
            logger.error(f"[FLRIG] HTTP error on {method}: {e}")
            raise TransportError(f"FLRIG HTTP error: {e}")
        except RequestException as e:
            logger.error(f"[FLRIG] Unexpected error on {method}: {e}")
            raise TransportError(f"FLRIG request failed: {e}")

        result = parse_method_response(response.content)
        logger.debug(f"[FLRIG] {method} -> {result!r}")
        return result

    # -------------------------------------------------------------------------
    # Rig API
    # -------------------------------------------------------------------------
    def get_frequency(self) -> float:
        """Current VFO frequency in Hz."""
        raw = self.call("rig.get_vfo")
        if raw is None or raw == "":
            raise ParseFailed("FLRIG returned no value for rig.get_vfo")
        try:
            return float(raw)
        except ValueError:
            raise ParseFailed(f"FLRIG returned a non-numeric frequency: {raw!r}")

    def set_frequency(self, frequency_hz: float) -> None:
        self.call("rig.set_vfo", [float(frequency_hz)])

    def get_mode(self) -> str:
        raw = self.call("rig.get_mode")
        if raw is None:
            raise ParseFailed("FLRIG returned no value for rig.get_mode")
        return raw

    def set_mode(self, mode: str) -> None:
        self.call("rig.set_mode", [mode])

    def test(self) -> ProbeResult:
        """Read frequency and mode back as one status line."""
        freq = self.get_frequency()
        mode = self.get_mode()
        return ProbeResult(
            message=f"FLRIG connected: {format_mhz(freq)} MHz {mode}",
            frequency=freq,
            mode=mode,
        )

    # -------------------------------------------------------------------------
    # RadioControlBackend
    # -------------------------------------------------------------------------
    def tune(self, frequency_hz: int, mode: str) -> str:
        self.set_frequency(frequency_hz)
        self.set_mode(mode)
        logger.info(f"[FLRIG] Tuned to {format_mhz(frequency_hz)} MHz {mode}")
        return f"Tuned to {format_mhz(frequency_hz)} MHz {mode}"

    def test_connection(self) -> ProbeResult:
        result = self.test()
        logger.info(f"[FLRIG] {result.message}")
        return result
