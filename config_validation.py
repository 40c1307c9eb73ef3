"""Configuration validation helpers for POTA Relay."""
from typing import List

from relay_config import LOGGING_MODES, RADIO_CONTROL_MODES, ConfigurationError, RelayConfig


class ConfigValidationError(ConfigurationError):
    pass


def _check_port(port: int, label: str, problems: List[str], allow_zero: bool = False) -> None:
    low = 0 if allow_zero else 1
    if not (low <= int(port) <= 65535):
        problems.append(f"{label} must be between {low} and 65535, got {port}")


def _check_host(host: str, label: str, problems: List[str]) -> None:
    if not (host or "").strip():
        problems.append(f"{label} must not be empty")


def validate_relay_config(config: RelayConfig, logger) -> None:
    """Validate relay settings early and loudly.

    - Modes must be one of the known backends.
    - The HTTP port may be 0 (any free port); backend ports must be 1..65535.
    - Host/port are only checked for the backends actually selected.
    """
    problems: List[str] = []

    if config.radio_control not in RADIO_CONTROL_MODES:
        problems.append(
            f"radio_control.mode '{config.radio_control}' is invalid. "
            f"Valid options: {', '.join(RADIO_CONTROL_MODES)}"
        )
    if config.logging_mode not in LOGGING_MODES:
        problems.append(
            f"logging.mode '{config.logging_mode}' is invalid. "
            f"Valid options: {', '.join(LOGGING_MODES)}"
        )

    _check_port(config.http_port, "server.port", problems, allow_zero=True)

    if config.radio_control == "hrd":
        _check_host(config.hrd_host, "radio_control.hrd.host", problems)
        _check_port(config.hrd_port, "radio_control.hrd.port", problems)
    elif config.radio_control == "flrig":
        _check_host(config.flrig_host, "radio_control.flrig.host", problems)
        _check_port(config.flrig_port, "radio_control.flrig.port", problems)

    if config.logging_mode == "hrd":
        _check_host(config.hrd_log_host, "logging.hrd_logbook.host", problems)
        _check_port(config.hrd_logbook_port, "logging.hrd_logbook.port", problems)
    elif config.logging_mode == "n1mm":
        _check_host(config.n1mm_host, "logging.n1mm.host", problems)
        _check_port(config.n1mm_port, "logging.n1mm.port", problems)

    if problems:
        msg = (
            "Configuration error:\n"
            + "\n".join(f"→ {p}" for p in problems)
            + "\n→ Fix these in your settings.yml."
        )
        logger.error(msg)
        raise ConfigValidationError(msg)
