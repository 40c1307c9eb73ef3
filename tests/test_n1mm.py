import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone

import pytest

from backend_interface import TransportError
from backends.n1mm import N1MMLogger
from backends.n1mm.messages import (
    MODE_MAP,
    build_contact_delete,
    build_contact_replace,
    generate_contact_id,
    map_mode,
    n1mm_timestamp,
)
from contact import ContactRecord

NOW = datetime(2024, 6, 1, 14, 5, 9, tzinfo=timezone.utc)

RECORD = ContactRecord(
    callsign="K1ABC",
    frequency_hz=14_285_000,
    mode="USB",
    rst_sent="57",
    rst_rcvd="55",
    station_callsign="N0CALL",
    park_reference="K-0001",
    comment="nice signal",
)


@pytest.mark.parametrize("mode", list(MODE_MAP) + ["MFSK", "usb", ""])
def test_map_mode_is_idempotent(mode):
    assert map_mode(map_mode(mode)) == map_mode(mode)


def test_map_mode_values():
    assert map_mode("lsb") == "SSB"
    assert map_mode("FT8") == "DIGI"
    assert map_mode("MFSK") == "MFSK"


def test_timestamp_is_utc():
    assert n1mm_timestamp(NOW) == "20240601T140509"


def test_contact_id_format():
    assert re.fullmatch(r"POTA-\d{13}-[a-z0-9]{7}", generate_contact_id())


def test_contact_replace_document():
    xml = build_contact_replace(RECORD, now=NOW, contact_id="POTA-1-abcdefg")
    assert xml.startswith('<?xml version="1.0" encoding="utf-8"?>\n<contactreplace>')

    root = ET.fromstring(xml)
    assert root.tag == "contactreplace"
    assert root.findtext("call") == "K1ABC"
    assert root.findtext("mycall") == "N0CALL"
    assert root.findtext("operator") == "N0CALL"
    assert root.findtext("band") == "20m"
    assert root.findtext("rxfreq") == root.findtext("txfreq") == "14285000"
    assert root.findtext("mode") == "SSB"
    assert root.findtext("snt") == "57"
    assert root.findtext("rcv") == "55"
    assert root.findtext("exchange1") == "K-0001"
    assert root.findtext("comment") == "nice signal"
    assert root.findtext("timestamp") == "20240601T140509"
    assert root.findtext("ContactID") == root.findtext("ID") == "POTA-1-abcdefg"
    assert root.findtext("App") == "POTA Relay"


def test_contact_replace_escapes_text():
    record = ContactRecord(callsign="K1ABC", frequency_hz=7_074_000, mode="FT8", comment="<b>&")
    root = ET.fromstring(build_contact_replace(record, now=NOW))
    assert root.findtext("comment") == "<b>&"


def test_contact_delete_document():
    root = ET.fromstring(build_contact_delete(" k1abc ", now=NOW))
    assert root.tag == "contactdelete"
    assert root.findtext("call") == "K1ABC"
    assert root.findtext("timestamp") == "20240601T140509"


def test_logger_sends_contactreplace(udp_receiver):
    logger = N1MMLogger("127.0.0.1", udp_receiver.port)
    try:
        assert logger.log_contact(RECORD) == "QSO logged to N1MM Logger+"
        text = udp_receiver.recv_text()
    finally:
        logger.close()
    assert "<contactreplace>" in text
    assert "<call>K1ABC</call>" in text


def test_logger_delete_and_probe(udp_receiver):
    logger = N1MMLogger("127.0.0.1", udp_receiver.port)
    try:
        logger.delete_contact("k1abc")
        assert "<contactdelete>" in udp_receiver.recv_text()

        result = logger.test_connection()
        probe = udp_receiver.recv_text()
    finally:
        logger.close()
    assert "<call>TEST</call>" in probe
    assert "<rxfreq>14250000</rxfreq>" in probe
    assert "Test contact sent" in result.message


def test_closed_logger_refuses_to_send(udp_receiver):
    logger = N1MMLogger("127.0.0.1", udp_receiver.port)
    logger.close()
    logger.close()
    with pytest.raises(TransportError):
        logger.log_contact(RECORD)
