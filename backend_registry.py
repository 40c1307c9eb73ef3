# backend_registry.py
"""
Registry of the backends POTA Relay can bind, keyed by configuration mode.
"""

from typing import Any, Dict

from backend_interface import LoggingBackend, RadioControlBackend
from backends.flrig import FlrigClient
from backends.hrd import HRDLogbookClient, HRDRadioClient
from backends.n1mm import N1MMLogger
from backends.noop import NoLogging, NoRadioControl
from relay_config import ConfigurationError, RelayConfig

RADIO_CONTROL_BACKENDS: Dict[str, Dict[str, Any]] = {
    "none": {
        "label": "No radio control",
        "class": NoRadioControl,
        "description": "Logging only, tuning requests are acknowledged and dropped",
    },
    "hrd": {
        "label": "Ham Radio Deluxe",
        "class": HRDRadioClient,
        "description": "HRD v5 binary protocol over TCP",
    },
    "flrig": {
        "label": "FLRIG",
        "class": FlrigClient,
        "description": "FLRIG XML-RPC (/RPC2)",
    },
}

LOGGING_BACKENDS: Dict[str, Dict[str, Any]] = {
    "none": {
        "label": "No logging",
        "class": NoLogging,
        "description": "Contacts are acknowledged and dropped",
    },
    "hrd": {
        "label": "HRD Logbook",
        "class": HRDLogbookClient,
        "description": "ADIF record over UDP",
    },
    "n1mm": {
        "label": "N1MM Logger+",
        "class": N1MMLogger,
        "description": "contactreplace XML over UDP",
    },
}


def build_radio_control(config: RelayConfig, debug: bool = False) -> RadioControlBackend:
    """Instantiate the radio-control backend the config selects; debug enables HRD frame dumps."""
    entry = RADIO_CONTROL_BACKENDS.get(config.radio_control)
    if entry is None:
        raise ConfigurationError(
            f"Invalid radio control mode '{config.radio_control}'. "
            f"Valid options: {', '.join(RADIO_CONTROL_BACKENDS.keys())}"
        )
    cls = entry["class"]
    if config.radio_control == "hrd":
        return cls(config.hrd_host, config.hrd_port, debug=debug)
    if config.radio_control == "flrig":
        return cls(config.flrig_host, config.flrig_port)
    return cls()


def build_logging(config: RelayConfig) -> LoggingBackend:
    """Instantiate the logging backend the config selects."""
    entry = LOGGING_BACKENDS.get(config.logging_mode)
    if entry is None:
        raise ConfigurationError(
            f"Invalid logging mode '{config.logging_mode}'. "
            f"Valid options: {', '.join(LOGGING_BACKENDS.keys())}"
        )
    cls = entry["class"]
    if config.logging_mode == "hrd":
        return cls(config.hrd_log_host, config.hrd_logbook_port)
    if config.logging_mode == "n1mm":
        return cls(config.n1mm_host, config.n1mm_port)
    return cls()


__all__ = ["RADIO_CONTROL_BACKENDS", "LOGGING_BACKENDS", "build_radio_control", "build_logging"]
