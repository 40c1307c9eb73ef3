from datetime import datetime, timezone

import pytest

from adif import AdifError, adif_field, build_adif_record, iter_adif_fields
from band_plan import OUT_OF_BAND, band_for_frequency, format_mhz, khz_to_hz, mhz_to_hz
from contact import ContactPayloadError, ContactRecord

NOW = datetime(2024, 6, 1, 14, 5, 9, tzinfo=timezone.utc)


# ---- band plan ----

@pytest.mark.parametrize(
    "hz, band",
    [
        (1_800_000, "160m"),
        (3_573_000, "80m"),
        (7_074_000, "40m"),
        (10_150_000, "30m"),
        (14_100_000, "20m"),
        (18_068_000, "17m"),
        (29_700_000, "10m"),
        (146_520_000, "2m"),
        (446_000_000, "70cm"),
    ],
)
def test_band_lookup(hz, band):
    assert band_for_frequency(hz) == band


def test_out_of_band():
    assert band_for_frequency(khz_to_hz(12000)) == OUT_OF_BAND
    assert band_for_frequency(14_350_001) == OUT_OF_BAND
    assert band_for_frequency("garbage") == OUT_OF_BAND


def test_unit_helpers():
    assert khz_to_hz(14285) == 14_285_000
    assert khz_to_hz("7074.5") == 7_074_500
    assert mhz_to_hz(10.136) == 10_136_000
    assert format_mhz(14_285_000) == "14.285000"


# ---- contact payloads ----

def test_mobile_payload_in_khz():
    record = ContactRecord.from_payload({
        "callsign": "k1abc",
        "frequency": 14285,
        "mode": "usb",
        "rstSent": "57",
        "rstReceived": "55",
        "parkReference": "K-0001",
        "myCallsign": "n0call",
    })
    assert record.callsign == "K1ABC"
    assert record.frequency_hz == 14_285_000
    assert record.mode == "USB"
    assert (record.rst_sent, record.rst_rcvd) == ("57", "55")
    assert record.park_reference == "K-0001"
    assert record.station_callsign == record.operator == "N0CALL"


def test_hz_key_wins_over_khz():
    record = ContactRecord.from_payload(
        {"callsign": "K1ABC", "frequency": 1, "frequencyHz": 7_074_000, "mode": "FT8"}
    )
    assert record.frequency_hz == 7_074_000


def test_desktop_payload():
    record = ContactRecord.from_payload({
        "callsign": "K1ABC",
        "frequency_hz": "21074000",
        "mode": "FT8",
        "rst_sent": "-10",
        "rst_rcvd": "-12",
        "sig_info": "K-0002",
        "my_sig_info": "K-0003",
        "station_callsign": "N0CALL",
        "operator": "W1AW",
        "gridsquare": "FN31",
        "qso_date": "20240601",
        "time_on": "140509",
    })
    assert record.frequency_hz == 21_074_000
    assert record.operator == "W1AW"
    assert record.my_park_reference == "K-0003"
    assert (record.qso_date, record.time_on) == ("20240601", "140509")
    assert record.rst_sent == "-10"


def test_desktop_frequency_is_mhz():
    record = ContactRecord.from_payload({
        "callsign": "K1ABC",
        "frequency": "14.285",
        "mode": "SSB",
        "rst_sent": "59",
        "sig_info": "K-0001",
        "station_callsign": "N0CALL",
    })
    assert record.frequency_hz == 14_285_000
    assert band_for_frequency(record.frequency_hz) == "20m"


def test_mixed_dialect_keeps_khz():
    record = ContactRecord.from_payload(
        {"callsign": "K1ABC", "frequency": 14285, "mode": "USB", "rstSent": "59", "qso_date": "20240601"}
    )
    assert record.frequency_hz == 14_285_000


def test_rst_defaults():
    record = ContactRecord.from_payload({"callsign": "K1ABC", "frequency": 7074, "mode": "CW"})
    assert (record.rst_sent, record.rst_rcvd) == ("59", "59")


@pytest.mark.parametrize(
    "payload",
    [
        {"frequency": 14285, "mode": "USB"},
        {"callsign": "K1ABC", "mode": "USB"},
        {"callsign": "K1ABC", "frequency": 14285},
        {"callsign": "K1ABC", "frequency": "fourteen", "mode": "USB"},
        {"callsign": "K1ABC", "frequency": -5, "mode": "USB"},
        ["not", "a", "mapping"],
    ],
)
def test_bad_payloads(payload):
    with pytest.raises(ContactPayloadError):
        ContactRecord.from_payload(payload)


# ---- ADIF ----

def test_adif_field_counts_characters():
    assert adif_field("call", "K1ABC") == "<CALL:5>K1ABC"
    assert adif_field("NAME", "José") == "<NAME:4>José"
    assert adif_field("COMMENT", "") == "<COMMENT:0>"


@pytest.mark.parametrize("name", ["", "1CALL", "MY CALL", "CALL>"])
def test_adif_field_rejects_bad_names(name):
    with pytest.raises(AdifError):
        adif_field(name, "x")


def test_adif_record_fields_and_order():
    record = ContactRecord(
        callsign="K1ABC",
        frequency_hz=14_285_000,
        mode="SSB",
        rst_sent="57",
        station_callsign="N0CALL",
        operator="N0CALL",
        park_reference="K-0001",
        comment="tnx <fer> QSO",
    )
    text = build_adif_record(record, NOW)
    names = [name for name, _ in iter_adif_fields(text)]

    assert text.endswith("<EOR>")
    assert names == [
        "CALL", "QSO_DATE", "TIME_ON", "TIME_OFF", "BAND", "FREQ", "MODE",
        "RST_SENT", "RST_RCVD", "STATION_CALLSIGN", "OPERATOR", "SIG", "SIG_INFO", "COMMENT",
    ]
    fields = dict(iter_adif_fields(text))
    assert fields["QSO_DATE"] == "20240601"
    assert fields["TIME_ON"] == fields["TIME_OFF"] == "140509"
    assert fields["FREQ"] == "14.285000"
    assert fields["BAND"] == "20m"
    assert fields["SIG"] == "POTA"
    assert fields["COMMENT"] == "tnx <fer> QSO"


def test_adif_keeps_supplied_date_and_skips_unknown_band():
    record = ContactRecord(
        callsign="K1ABC", frequency_hz=12_000_000, mode="CW", qso_date="20230101", time_on="000102"
    )
    fields = dict(iter_adif_fields(build_adif_record(record, NOW)))
    assert fields["QSO_DATE"] == "20230101"
    assert fields["TIME_ON"] == "000102"
    assert "BAND" not in fields
    assert "SIG" not in fields


def test_reader_rejects_overlong_length():
    with pytest.raises(AdifError):
        list(iter_adif_fields("<CALL:12>K1ABC<EOR>"))
