# contact.py
# Normalized QSO record built from the JSON the mobile client posts to /log.

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from band_plan import khz_to_hz, mhz_to_hz


class ContactPayloadError(ValueError):
    """Raised when a /log body cannot be turned into a ContactRecord."""
    pass


def _pick(payload: Mapping[str, Any], *keys: str) -> str:
    """First non-empty value among keys, as a stripped string ('' if none)."""
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


@dataclass(frozen=True)
class ContactRecord:
    callsign: str
    frequency_hz: int
    mode: str
    rst_sent: str = "59"
    rst_rcvd: str = "59"
    station_callsign: str = ""
    operator: str = ""
    park_reference: str = ""
    my_park_reference: str = ""
    comment: str = ""
    gridsquare: str = ""
    name: str = ""
    qso_date: Optional[str] = None   # YYYYMMDD, defaults to "now" at build time
    time_on: Optional[str] = None    # HHMMSS

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ContactRecord":
        """
        Build a record from either client dialect:

          mobile app  : callsign, frequency (kHz), mode, rstSent, rstReceived,
                        comment, parkReference, myCallsign
          desktop app : frequency (MHz), rst_sent, rst_rcvd, sig_info, my_sig_info, station_callsign,
                        operator, my_call, gridsquare, name, qso_date, time_on

        'frequencyHz' / 'frequency_hz' win over 'frequency'. 'frequency' is kHz, except
        in a desktop-dialect body (snake_case keys only), where it is MHz.
        """
        if not isinstance(payload, Mapping):
            raise ContactPayloadError("contact body must be a JSON object")

        callsign = _pick(payload, "callsign", "call", "theirCall")
        if not callsign:
            raise ContactPayloadError("callsign is required")

        mode = _pick(payload, "mode")
        if not mode:
            raise ContactPayloadError("mode is required")

        frequency_hz = _frequency_from_payload(payload)

        station = _pick(payload, "myCallsign", "station_callsign", "my_call", "myCall")
        operator = _pick(payload, "operator") or station

        return cls(
            callsign=callsign.upper(),
            frequency_hz=frequency_hz,
            mode=mode.upper(),
            rst_sent=_pick(payload, "rstSent", "rst_sent") or "59",
            rst_rcvd=_pick(payload, "rstReceived", "rst_rcvd") or "59",
            station_callsign=station.upper(),
            operator=operator.upper(),
            park_reference=_pick(payload, "parkReference", "sig_info", "park"),
            my_park_reference=_pick(payload, "myParkReference", "my_sig_info"),
            comment=_pick(payload, "comment"),
            gridsquare=_pick(payload, "gridsquare", "gridSquare"),
            name=_pick(payload, "name"),
            qso_date=_pick(payload, "qso_date", "qsoDate") or None,
            time_on=_pick(payload, "time_on", "timeOn") or None,
        )


_MOBILE_KEYS = ("rstSent", "rstReceived", "parkReference", "myCallsign", "myParkReference")
_DESKTOP_KEYS = ("rst_sent", "rst_rcvd", "sig_info", "my_sig_info", "station_callsign", "my_call", "qso_date", "time_on")


def _is_desktop_dialect(payload: Mapping[str, Any]) -> bool:
    return any(k in payload for k in _DESKTOP_KEYS) and not any(k in payload for k in _MOBILE_KEYS)


def _frequency_from_payload(payload: Mapping[str, Any]) -> int:
    raw_hz = _pick(payload, "frequencyHz", "frequency_hz")
    raw = _pick(payload, "frequency")
    if not raw_hz and not raw:
        raise ContactPayloadError("frequency is required")
    try:
        if raw_hz:
            hz = int(round(float(raw_hz)))
        elif _is_desktop_dialect(payload):
            hz = mhz_to_hz(raw)
        else:
            hz = khz_to_hz(raw)
    except (ValueError, OverflowError) as e:
        raise ContactPayloadError(f"frequency is not a number: {raw_hz or raw!r}") from e

    if hz <= 0:
        raise ContactPayloadError(f"frequency must be positive, got {hz} Hz")
    return hz
