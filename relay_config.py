# relay_config.py
# Relay configuration value and its YAML settings loader.

from __future__ import annotations
import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import yaml

RADIO_CONTROL_MODES = ("none", "hrd", "flrig")
LOGGING_MODES = ("none", "hrd", "n1mm")


class ConfigurationError(Exception):
    """Raised when the configuration is missing, unreadable or invalid."""
    pass


@dataclass(frozen=True)
class RelayConfig:
    """
    Everything the relay needs to bind its HTTP port and reach its backends.

    Immutable: the relay swaps whole instances on reconfiguration, so a
    request never sees half of an old config and half of a new one.
    """
    http_host: str = "0.0.0.0"
    http_port: int = 7810
    radio_control: str = "none"
    hrd_host: str = "127.0.0.1"
    hrd_port: int = 7809
    flrig_host: str = "127.0.0.1"
    flrig_port: int = 12345
    logging_mode: str = "none"
    hrd_log_host: str = "127.0.0.1"
    hrd_logbook_port: int = 2333
    n1mm_host: str = "127.0.0.1"
    n1mm_port: int = 12060

    def replace(self, **changes: Any) -> "RelayConfig":
        return dataclasses.replace(self, **changes)

    def as_status_dict(self) -> Dict[str, Any]:
        """camelCase view served by /status (the shape the desktop app always used)."""
        return {
            "httpPort": self.http_port,
            "radioControl": self.radio_control,
            "hrdHost": self.hrd_host,
            "hrdPort": self.hrd_port,
            "flrigHost": self.flrig_host,
            "flrigPort": self.flrig_port,
            "loggingMode": self.logging_mode,
            "hrdLogHost": self.hrd_log_host,
            "hrdLogbookPort": self.hrd_logbook_port,
            "n1mmHost": self.n1mm_host,
            "n1mmPort": self.n1mm_port,
        }


def load_yaml_file(file_path: str) -> Dict[str, Any]:
    """Load a small YAML file into a dict; raise if not found."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _section(settings: Mapping[str, Any], *path: str) -> Mapping[str, Any]:
    node: Any = settings
    for key in path:
        node = (node or {}).get(key) if isinstance(node, Mapping) else None
    return node if isinstance(node, Mapping) else {}


def _port(value: Any, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} must be an integer port number, got {value!r}")


def config_from_settings(settings: Mapping[str, Any]) -> RelayConfig:
    """
    Build a RelayConfig from the settings.yml structure:

        server:        {host, port}
        radio_control: {mode, hrd: {host, port}, flrig: {host, port}}
        logging:       {mode, hrd_logbook: {host, port}, n1mm: {host, port}}

    Missing keys keep their defaults.
    """
    d = RelayConfig()
    server = _section(settings, "server")
    radio = _section(settings, "radio_control")
    hrd = _section(settings, "radio_control", "hrd")
    flrig = _section(settings, "radio_control", "flrig")
    log = _section(settings, "logging")
    hrd_log = _section(settings, "logging", "hrd_logbook")
    n1mm = _section(settings, "logging", "n1mm")

    return RelayConfig(
        http_host=str(server.get("host", d.http_host)),
        http_port=_port(server.get("port", d.http_port), "server.port"),
        radio_control=str(radio.get("mode", d.radio_control)).strip().lower(),
        hrd_host=str(hrd.get("host", d.hrd_host)),
        hrd_port=_port(hrd.get("port", d.hrd_port), "radio_control.hrd.port"),
        flrig_host=str(flrig.get("host", d.flrig_host)),
        flrig_port=_port(flrig.get("port", d.flrig_port), "radio_control.flrig.port"),
        logging_mode=str(log.get("mode", d.logging_mode)).strip().lower(),
        hrd_log_host=str(hrd_log.get("host", d.hrd_log_host)),
        hrd_logbook_port=_port(hrd_log.get("port", d.hrd_logbook_port), "logging.hrd_logbook.port"),
        n1mm_host=str(n1mm.get("host", d.n1mm_host)),
        n1mm_port=_port(n1mm.get("port", d.n1mm_port), "logging.n1mm.port"),
    )


def load_relay_config(file_path: str = "settings.yml") -> RelayConfig:
    """Read settings.yml and return a RelayConfig (validation is separate)."""
    try:
        settings = load_yaml_file(file_path)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {file_path}: {e}")
    if not isinstance(settings, Mapping):
        raise ConfigurationError(f"{file_path} must contain a mapping at the top level")
    return config_from_settings(settings)
