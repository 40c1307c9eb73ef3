import socket
from datetime import datetime, timezone

from adif import build_adif_record
from backend_interface import LoggingBackend, ProbeResult, TransportError
from contact import ContactRecord
from loghandler import get_contact_logger, get_logger

logger = None
contact_logger = None


class HRDLogbookClient(LoggingBackend):
    """
    HRD Logbook's UDP ADIF listener (default port 2333, same idea as WSJT-X).

    Fire-and-forget: one datagram per contact, no acknowledgement. Success
    means the local socket accepted the datagram, nothing more.
    """

    label = "HRD Logbook"

    def __init__(self, host: str = "127.0.0.1", port: int = 2333) -> None:
        global logger, contact_logger
        if logger is None:
            logger = get_logger()
        if contact_logger is None:
            contact_logger = get_contact_logger()

        self.host = host
        self.port = int(port)

    def _send_datagram(self, text: str) -> None:
        data = text.encode("utf-8")
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.sendto(data, (self.host, self.port))
        except OSError as e:
            logger.error(f"[HRD LOG] UDP send to {self.host}:{self.port} failed: {e}")
            raise TransportError(f"HRD UDP error: {e}") from e

    def log_contact(self, record: ContactRecord) -> str:
        adif = build_adif_record(record, datetime.now(timezone.utc))
        logger.debug(f"[HRD LOG] Sending ADIF: {adif}")
        self._send_datagram(adif)
        contact_logger.info(adif)
        logger.info(f"[HRD LOG] QSO sent to HRD Logbook: {record.callsign}")
        return "QSO logged to HRD Logbook"

    def test_connection(self) -> ProbeResult:
        # Nothing to ask over UDP; report where records would go.
        return ProbeResult(
            message=f"HRD Logbook UDP target {self.host}:{self.port} (delivery is not confirmed)"
        )
