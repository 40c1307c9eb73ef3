# backends/n1mm/messages.py
# XML message builders for N1MM Logger+'s UDP contact interface.

import random
import socket
import string
import time
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from band_plan import band_for_frequency
from contact import ContactRecord

APP_NAME = "POTA Relay"
SOURCE_TAG = "POTA"

# Rig modes -> N1MM mode names. Values map to themselves, so mapping twice is harmless.
MODE_MAP: Dict[str, str] = {
    "USB": "SSB",
    "LSB": "SSB",
    "FM": "FM",
    "AM": "AM",
    "CW": "CW",
    "RTTY": "RTTY",
    "PSK31": "PSK",
    "FT8": "DIGI",
    "FT4": "DIGI",
}

_ID_ALPHABET = string.ascii_lowercase + string.digits


def map_mode(mode: str) -> str:
    """Translate a rig mode to N1MM's vocabulary; unknown modes pass through."""
    key = (mode or "").strip().upper()
    return MODE_MAP.get(key, key)


def n1mm_timestamp(now: Optional[datetime] = None) -> str:
    """UTC 'YYYYMMDDTHHMMSS'."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y%m%dT%H%M%S")


def generate_contact_id(source_tag: str = SOURCE_TAG) -> str:
    """'<tag>-<epoch ms>-<7 base36 chars>', e.g. 'POTA-1760880000000-k3x9q2a'."""
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(7))
    return f"{source_tag}-{int(time.time() * 1000)}-{suffix}"


def _document(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    return '<?xml version="1.0" encoding="utf-8"?>\n' + ET.tostring(root, encoding="unicode")


def _append(root: ET.Element, fields: List[Tuple[str, str]]) -> None:
    for tag, text in fields:
        ET.SubElement(root, tag).text = text


def build_contact_replace(
    record: ContactRecord,
    now: Optional[datetime] = None,
    contact_id: Optional[str] = None,
    station_name: str = SOURCE_TAG,
) -> str:
    """
    <contactreplace> document that adds (or replaces) one contact.

    rxfreq/txfreq carry the frequency in Hz. The park reference goes into
    exchange1, where N1MM's POTA-style contests keep it.
    """
    contact_id = contact_id or generate_contact_id()
    freq = str(int(record.frequency_hz))
    mycall = record.station_callsign

    root = ET.Element("contactreplace")
    _append(root, [
        ("timestamp", n1mm_timestamp(now)),
        ("mycall", mycall),
        ("band", band_for_frequency(record.frequency_hz)),
        ("rxfreq", freq),
        ("txfreq", freq),
        ("operator", record.operator or mycall),
        ("mode", map_mode(record.mode)),
        ("call", record.callsign),
        ("countryprefix", ""),
        ("wpxprefix", ""),
        ("stationprefix", ""),
        ("continent", ""),
        ("snt", record.rst_sent or "59"),
        ("sntnr", "001"),
        ("rcv", record.rst_rcvd or "59"),
        ("rcvnr", "001"),
        ("gridsquare", record.gridsquare),
        ("exchange1", record.park_reference),
        ("section", ""),
        ("comment", record.comment),
        ("qth", ""),
        ("name", record.name),
        ("power", ""),
        ("misctext", ""),
        ("zone", ""),
        ("prec", ""),
        ("ck", ""),
        ("ismultiplier1", "0"),
        ("ismultiplier2", "0"),
        ("ismultiplier3", "0"),
        ("points", "0"),
        ("radionr", "1"),
        ("run1run2", "1"),
        ("ContactID", contact_id),
        ("StationName", station_name),
        ("ID", contact_id),
        ("IsOriginal", "True"),
        ("NetBiosName", socket.gethostname()),
        ("IsRunQSO", "1"),
        ("App", APP_NAME),
    ])
    return _document(root)


def build_contact_delete(
    callsign: str,
    now: Optional[datetime] = None,
    station_name: str = SOURCE_TAG,
) -> str:
    """<contactdelete> document removing the contact with this callsign."""
    root = ET.Element("contactdelete")
    _append(root, [
        ("timestamp", n1mm_timestamp(now)),
        ("call", callsign.strip().upper()),
        ("StationName", station_name),
        ("App", APP_NAME),
    ])
    return _document(root)
