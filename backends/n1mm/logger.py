import socket
import threading
from typing import Optional

from backend_interface import LoggingBackend, ProbeResult, TransportError
from contact import ContactRecord
from loghandler import get_contact_logger, get_logger
from .messages import build_contact_delete, build_contact_replace

logger = None
contact_logger = None

TEST_CONTACT = ContactRecord(
    callsign="TEST",
    frequency_hz=14_250_000,
    mode="SSB",
    station_callsign="TEST",
    comment="POTA Relay Connection Test",
)


class N1MMLogger(LoggingBackend):
    """
    N1MM Logger+ contact interface: XML documents over UDP (default port 12060).

    Holds one UDP socket for its lifetime; the relay builds a new logger when
    the configuration selects N1MM and closes it when deselected. Like every
    UDP path here, success means "sent", not "accepted by N1MM".
    """

    label = "N1MM Logger+"

    def __init__(self, host: str = "127.0.0.1", port: int = 12060) -> None:
        global logger, contact_logger
        if logger is None:
            logger = get_logger()
        if contact_logger is None:
            contact_logger = get_contact_logger()

        self.host = host
        self.port = int(port)
        self._lock = threading.Lock()
        self._sock: Optional[socket.socket] = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

    def _send(self, xml: str) -> None:
        data = xml.encode("utf-8")
        with self._lock:
            if self._sock is None:
                raise TransportError("N1MM UDP socket is closed")
            try:
                self._sock.sendto(data, (self.host, self.port))
            except OSError as e:
                logger.error(f"[N1MM] UDP send to {self.host}:{self.port} failed: {e}")
                raise TransportError(f"N1MM UDP error: {e}") from e

    def send_contact(self, record: ContactRecord) -> None:
        xml = build_contact_replace(record)
        self._send(xml)
        contact_logger.info(xml)
        logger.info(f"[N1MM] Contact sent: {record.callsign}")

    def delete_contact(self, callsign: str) -> str:
        self._send(build_contact_delete(callsign))
        logger.info(f"[N1MM] Contact deleted: {callsign}")
        return f"Delete sent to N1MM Logger+: {callsign.strip().upper()}"

    def test(self) -> None:
        """N1MM has no query over UDP; sending a TEST contact is the probe."""
        self.send_contact(TEST_CONTACT)

    # ---- LoggingBackend ----

    def log_contact(self, record: ContactRecord) -> str:
        self.send_contact(record)
        return "QSO logged to N1MM Logger+"

    def test_connection(self) -> ProbeResult:
        self.test()
        return ProbeResult(message=f"Test contact sent to N1MM Logger+ at {self.host}:{self.port}")

    def close(self) -> None:
        with self._lock:
            if self._sock is not None:
                try:
                    self._sock.close()
                except OSError:
                    pass
                self._sock = None
                logger.info("[N1MM] UDP client closed")
