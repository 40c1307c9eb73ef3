import socket
import time

from backend_interface import ConnectFailed
from loghandler import get_logger
from .frame import DEFAULT_TIMEOUT_S, accumulate_response, build_frame, parse_frame


class HRDTransport:
    """
    TCP transport for Ham Radio Deluxe's v5 binary protocol.

    Responsibilities:
      - Open a fresh connection for every command and close it afterwards.
        HRD has been seen to misbehave when one connection carries several
        commands, so there is no pooling or reuse.
      - Write exactly one frame, read exactly one frame, decode its text.
      - Map socket failures onto the backend error taxonomy.

    Concurrent callers each get their own connection; nothing here orders
    them. If two callers race, whichever frame HRD processes last wins.
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float = DEFAULT_TIMEOUT_S,
        response_timeout: float = DEFAULT_TIMEOUT_S,
        debug: bool = False,
    ):
        self.host = host
        self.port = int(port)
        self.connect_timeout = float(connect_timeout)
        self.response_timeout = float(response_timeout)
        self.debug = debug
        self._logger = get_logger()

    def _apply_tcp_options(self, s: socket.socket):
        """Best-effort low-latency option; frames are tiny."""
        try:
            s.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError:
            pass

    def _connect(self) -> socket.socket:
        try:
            s = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        except socket.timeout:
            self._logger.error(
                f"[HRD] Connect timeout after {self.connect_timeout:.1f}s to {self.host}:{self.port}."
            )
            raise ConnectFailed(f"Timed out connecting to HRD at {self.host}:{self.port}")
        except OSError as e:
            self._logger.error(f"[HRD] Connect error to {self.host}:{self.port}: {e}")
            raise ConnectFailed(f"Cannot connect to HRD at {self.host}:{self.port}: {e}") from e
        self._apply_tcp_options(s)
        return s

    def send_command(self, command: str, use_context_prefix: bool = False) -> str:
        """
        Send one command frame and return HRD's decoded reply.

        Raises ConnectFailed, BackendTimeout or a FrameError subclass.
        """
        frame = build_frame(command, use_context_prefix)
        t0 = time.time()
        s = self._connect()
        try:
            if self.debug:
                self._logger.debug(f"[HRD] > {command} ({len(frame)} bytes) {frame.hex()}")
            try:
                s.sendall(frame)
            except OSError as e:
                raise ConnectFailed(f"HRD connection dropped while sending '{command}': {e}") from e

            raw = accumulate_response(s, timeout=self.response_timeout)
        finally:
            try:
                s.close()
            except OSError:
                pass

        text = parse_frame(raw)
        rtt_ms = int((time.time() - t0) * 1000)
        self._logger.debug(f"[HRD] < '{text}' in {rtt_ms} ms  cmd='{command}'")
        return text
