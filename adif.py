# adif.py
# ADIF record builder for HRD Logbook's UDP listener.
#
# ADIF has no delimiters: every field is '<NAME:len>value' and readers trust
# 'len' to find the next tag. A wrong length silently shifts every following
# field, so each fragment is checked and the finished record is re-read.

from __future__ import annotations
import re
from datetime import datetime, timezone
from typing import Iterator, List, Optional, Tuple

from band_plan import OUT_OF_BAND, band_for_frequency, format_mhz
from contact import ContactRecord

END_OF_RECORD = "<EOR>"

_NAME_RE = re.compile(r"^[A-Z][A-Z0-9_]*$")
_TAG_RE = re.compile(r"<([A-Za-z][A-Za-z0-9_]*)(?::(\d+)(?::[A-Za-z])?)?>")


class AdifError(ValueError):
    pass


def adif_field(name: str, value: str) -> str:
    """Return one '<NAME:len>value' fragment; len counts characters of value."""
    name = name.upper()
    if not _NAME_RE.match(name):
        raise AdifError(f"invalid ADIF field name: {name!r}")
    value = str(value)
    fragment = f"<{name}:{len(value)}>{value}"

    header_end = fragment.index(">") + 1
    declared = int(fragment[len(name) + 2:header_end - 1])
    if declared != len(fragment) - header_end:
        raise AdifError(f"length prefix mismatch in {name}: {declared} != {len(fragment) - header_end}")
    return fragment


def iter_adif_fields(text: str) -> Iterator[Tuple[str, str]]:
    """
    Walk a single ADIF record by its length prefixes.

    Yields (NAME, value) until <EOR>. Text between fields is skipped, the way
    ADIF readers tolerate whitespace. Raises AdifError if a declared length
    runs past the end of the text.
    """
    pos = 0
    while True:
        m = _TAG_RE.search(text, pos)
        if not m:
            return
        name = m.group(1).upper()
        if name == "EOR":
            return
        if m.group(2) is None:
            raise AdifError(f"field {name} has no length")
        length = int(m.group(2))
        start = m.end()
        end = start + length
        if end > len(text):
            raise AdifError(f"field {name} declares {length} chars, only {len(text) - start} left")
        yield name, text[start:end]
        pos = end


def _utc_parts(now: Optional[datetime]) -> Tuple[str, str]:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%d"), now.strftime("%H%M%S")


def build_adif_record(record: ContactRecord, now: Optional[datetime] = None) -> str:
    """
    Build the ADIF text for one contact.

    Mandatory: CALL, QSO_DATE, TIME_ON, TIME_OFF, FREQ (MHz), MODE, RST_SENT, RST_RCVD.
    Optional (omitted when empty): BAND, STATION_CALLSIGN, OPERATOR, SIG/SIG_INFO,
    MY_SIG/MY_SIG_INFO, GRIDSQUARE, NAME, COMMENT.
    """
    date_str, time_str = _utc_parts(now)
    qso_date = record.qso_date or date_str
    time_on = record.time_on or time_str

    fields: List[Tuple[str, str]] = [
        ("CALL", record.callsign),
        ("QSO_DATE", qso_date),
        ("TIME_ON", time_on),
        ("TIME_OFF", time_on),  # quick park QSOs: on == off
    ]

    band = band_for_frequency(record.frequency_hz)
    if band != OUT_OF_BAND:
        fields.append(("BAND", band))

    fields += [
        ("FREQ", format_mhz(record.frequency_hz)),
        ("MODE", record.mode),
        ("RST_SENT", record.rst_sent),
        ("RST_RCVD", record.rst_rcvd),
    ]

    if record.station_callsign:
        fields.append(("STATION_CALLSIGN", record.station_callsign))
    if record.operator:
        fields.append(("OPERATOR", record.operator))
    if record.park_reference:
        fields += [("SIG", "POTA"), ("SIG_INFO", record.park_reference)]
    if record.my_park_reference:
        fields += [("MY_SIG", "POTA"), ("MY_SIG_INFO", record.my_park_reference)]
    if record.gridsquare:
        fields.append(("GRIDSQUARE", record.gridsquare))
    if record.name:
        fields.append(("NAME", record.name))
    if record.comment:
        fields.append(("COMMENT", record.comment))

    fields = [(name, value) for name, value in fields if value]
    text = "".join(adif_field(name, value) for name, value in fields) + END_OF_RECORD

    if list(iter_adif_fields(text)) != fields:
        raise AdifError(f"ADIF record for {record.callsign} does not read back cleanly")
    return text
