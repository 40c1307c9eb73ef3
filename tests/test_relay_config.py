import logging

import pytest

from backend_registry import build_logging, build_radio_control
from backends.flrig import FlrigClient
from backends.hrd import HRDLogbookClient, HRDRadioClient
from backends.n1mm import N1MMLogger
from backends.noop import NoLogging, NoRadioControl
from config_validation import ConfigValidationError, validate_relay_config
from relay_config import ConfigurationError, RelayConfig, config_from_settings, load_relay_config

log = logging.getLogger("test")


def test_defaults():
    config = config_from_settings({})
    assert config == RelayConfig()
    assert config.http_port == 7810
    assert config.radio_control == "none"
    assert config.logging_mode == "none"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text(
        "server:\n  port: 8000\n"
        "radio_control:\n  mode: FLRIG\n  flrig:\n    host: 10.0.0.5\n    port: '12346'\n"
        "logging:\n  mode: n1mm\n  n1mm:\n    port: 12061\n",
        encoding="utf-8",
    )
    config = load_relay_config(str(path))
    assert config.http_port == 8000
    assert config.radio_control == "flrig"
    assert (config.flrig_host, config.flrig_port) == ("10.0.0.5", 12346)
    assert (config.logging_mode, config.n1mm_port) == ("n1mm", 12061)
    assert config.hrd_port == 7809


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_relay_config(str(tmp_path / "nope.yml"))


def test_unparseable_yaml(tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text("server: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_relay_config(str(path))


def test_non_numeric_port():
    with pytest.raises(ConfigurationError, match="server.port"):
        config_from_settings({"server": {"port": "http"}})


def test_status_dict_is_camel_case():
    status = RelayConfig(radio_control="hrd").as_status_dict()
    assert status["radioControl"] == "hrd"
    assert status["hrdPort"] == 7809
    assert status["hrdLogbookPort"] == 2333


def test_validation_accepts_defaults_and_any_free_port():
    validate_relay_config(RelayConfig(), log)
    validate_relay_config(RelayConfig(http_port=0), log)


@pytest.mark.parametrize(
    "changes",
    [
        {"radio_control": "omnirig"},
        {"logging_mode": "log4om"},
        {"http_port": 70000},
        {"radio_control": "hrd", "hrd_port": 0},
        {"radio_control": "flrig", "flrig_host": " "},
        {"logging_mode": "n1mm", "n1mm_port": -1},
    ],
)
def test_validation_rejects(changes):
    with pytest.raises(ConfigValidationError):
        validate_relay_config(RelayConfig().replace(**changes), log)


def test_unselected_backends_are_not_validated():
    validate_relay_config(RelayConfig(hrd_port=0, n1mm_host=""), log)


@pytest.mark.parametrize(
    "mode, cls",
    [("none", NoRadioControl), ("hrd", HRDRadioClient), ("flrig", FlrigClient)],
)
def test_registry_radio_control(mode, cls):
    backend = build_radio_control(RelayConfig(radio_control=mode))
    assert isinstance(backend, cls)


@pytest.mark.parametrize(
    "mode, cls",
    [("none", NoLogging), ("hrd", HRDLogbookClient), ("n1mm", N1MMLogger)],
)
def test_registry_logging(mode, cls):
    backend = build_logging(RelayConfig(logging_mode=mode))
    try:
        assert isinstance(backend, cls)
    finally:
        backend.close()


def test_registry_unknown_mode():
    with pytest.raises(ConfigurationError):
        build_radio_control(RelayConfig(radio_control="omnirig"))
