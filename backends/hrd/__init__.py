# backends/hrd/__init__.py
"""
Ham Radio Deluxe backend package.

Exports:
- HRDRadioClient  (radio control over the v5 binary TCP protocol)
- HRDLogbookClient (ADIF contacts over UDP)
- HRDTransport    (one-connection-per-command TCP transport)
- build_frame / parse_frame / accumulate_response (frame codec)
"""

from .client import HRDRadioClient
from .frame import MAGIC1, MAGIC2, accumulate_response, build_frame, parse_frame
from .logbook import HRDLogbookClient
from .transport import HRDTransport

__all__ = [
    "HRDRadioClient",
    "HRDLogbookClient",
    "HRDTransport",
    "build_frame",
    "parse_frame",
    "accumulate_response",
    "MAGIC1",
    "MAGIC2",
]
