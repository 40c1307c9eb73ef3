# backends/flrig/xmlrpc.py
#
# Minimal XML-RPC codec for FLRIG. FLRIG answers the calls we use with a single
# scalar, so only the first params/param/value is read. Anything richer
# (struct, array) or a <fault> is an error rather than a guess; this is not a
# general XML-RPC decoder.

import xml.etree.ElementTree as ET
from typing import Iterable, Optional, Union

from backend_interface import ParseFailed

Param = Union[int, float, str]

_SCALAR_TAGS = {"string", "double", "int", "i4", "i8", "boolean"}


def build_method_call(method: str, params: Iterable[Param] = ()) -> str:
    """
    Build a methodCall body. Numbers go out as <double>, everything else
    as <string>; ElementTree escapes the text.
    """
    call = ET.Element("methodCall")
    ET.SubElement(call, "methodName").text = method
    params_el = ET.SubElement(call, "params")
    for param in params:
        value = ET.SubElement(ET.SubElement(params_el, "param"), "value")
        if isinstance(param, (int, float)) and not isinstance(param, bool):
            ET.SubElement(value, "double").text = repr(float(param))
        else:
            ET.SubElement(value, "string").text = str(param)
    return '<?xml version="1.0"?>\n' + ET.tostring(call, encoding="unicode")


def parse_method_response(text: Union[str, bytes]) -> Optional[str]:
    """Return the first scalar value as text, or None for an empty <params/>."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseFailed(f"Failed to parse FLRIG response: {e}") from e

    if root.tag != "methodResponse":
        raise ParseFailed(f"Unexpected FLRIG response root <{root.tag}>")

    fault = root.find("fault")
    if fault is not None:
        raise ParseFailed(f"FLRIG fault: {_fault_string(fault)}")

    value = root.find("params/param/value")
    if value is None:
        return None

    children = list(value)
    if not children:
        # Untyped <value>text</value> means string.
        return (value.text or "").strip()

    typed = children[0]
    if typed.tag not in _SCALAR_TAGS:
        raise ParseFailed(f"Unsupported FLRIG value type <{typed.tag}>")
    return (typed.text or "").strip()


def _fault_string(fault: ET.Element) -> str:
    for member in fault.iter("member"):
        if member.findtext("name") == "faultString":
            v = member.find("value")
            if v is not None:
                return "".join(v.itertext()).strip()
    return "unknown fault"
