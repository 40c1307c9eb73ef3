# backend_interface.py

"""
POTA Relay backend contract: radio control and logging

This module defines the two capability contracts the relay dispatches to and
the error taxonomy every backend reports through. A relay configuration
selects exactly one backend on each axis; the axes are independent (tune via
FLRIG while logging to N1MM is valid).

1) RADIO CONTROL  (RadioControlBackend)
   --------------------------------------------------------------
   Variants:
     • none   -> NoRadioControl   (tuning is a no-op, never a failure)
     • hrd    -> HRDRadioClient   (HRD v5 binary frames over TCP)
     • flrig  -> FlrigClient      (XML-RPC over HTTP)

   Contract:
     • tune(frequency_hz, mode)  -> str          human readable summary
     • test_connection()         -> ProbeResult  what the rig reports
     • close()                                    release sockets, idempotent

   Tuning is two sequential steps (frequency, then mode). A failure in the
   second step leaves the first applied; there is no rollback.

2) LOGGING  (LoggingBackend)
   --------------------------------------------------------------
   Variants:
     • none   -> NoLogging        (contact accepted and dropped)
     • hrd    -> HRDLogbookClient (ADIF record in one UDP datagram)
     • n1mm   -> N1MMLogger       (contactreplace XML in one UDP datagram)

   Contract:
     • log_contact(record)       -> str
     • delete_contact(callsign)  -> str   (ConfigError when unsupported)
     • test_connection()         -> ProbeResult
     • close()

   The UDP backends report a successful local send only. "Sent" is not
   "accepted": nothing at this protocol layer tells us the logbook stored it.

Error taxonomy
--------------
BackendError
 ├─ ConnectFailed      backend process unreachable
 ├─ BackendTimeout     no complete answer within the deadline
 ├─ FrameError         malformed binary frame
 │   ├─ FrameTooShort
 │   ├─ MagicMismatch
 │   └─ IncompleteFrame
 ├─ ParseFailed        unusable XML-RPC answer
 ├─ TransportError     local send failure (UDP, HTTP status)
 └─ ConfigError        operation not available for the selected backend

Backends raise; the relay server converts every BackendError into a JSON
failure body. Backends never return error values.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


class BackendError(Exception):
    """Generic backend communication error (superclass for all backend errors)."""
    pass

class ConnectFailed(BackendError):
    pass

class BackendTimeout(BackendError):
    pass

class FrameError(BackendError):
    pass

class FrameTooShort(FrameError):
    pass

class MagicMismatch(FrameError):
    pass

class IncompleteFrame(FrameError):
    pass

class ParseFailed(BackendError):
    pass

class TransportError(BackendError):
    pass

class ConfigError(BackendError):
    pass


@dataclass
class ProbeResult:
    """Outcome of a successful test_connection(); failures raise instead."""
    message: str
    frequency: Optional[Any] = None
    mode: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": True, "message": self.message}
        if self.frequency is not None:
            body["frequency"] = self.frequency
        if self.mode is not None:
            body["mode"] = self.mode
        return body


class RadioControlBackend(ABC):
    label: str = "Radio control"

    @abstractmethod
    def tune(self, frequency_hz: int, mode: str) -> str: ...

    @abstractmethod
    def test_connection(self) -> ProbeResult: ...

    def close(self) -> None:
        """Optional cleanup for sockets held between calls."""
        pass


class LoggingBackend(ABC):
    label: str = "Logging"

    @abstractmethod
    def log_contact(self, record) -> str: ...

    @abstractmethod
    def test_connection(self) -> ProbeResult: ...

    def delete_contact(self, callsign: str) -> str:
        raise ConfigError(f"{self.label} does not support deleting contacts")

    def close(self) -> None:
        """Optional cleanup for sockets held between calls."""
        pass
