"""Tests for configuration loading."""

import json

import pytest

from portauthority.config import DEFAULT_PROVISIONING_URL, PortAuthorityConfig
from portauthority.lldp.decoder import LookupStrategy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PORTAUTHORITY_URL",
        "PORTAUTHORITY_VERIFY_SSL",
        "PORTAUTHORITY_HTTP_TIMEOUT",
        "PORTAUTHORITY_OPEN_TIMEOUT_MS",
        "PORTAUTHORITY_READ_TIMEOUT",
        "PORTAUTHORITY_LOOKUP",
        "PORTAUTHORITY_ENCODE_VALUES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = PortAuthorityConfig()

    assert config.provisioning_url == DEFAULT_PROVISIONING_URL
    assert config.verify_ssl is True
    assert config.open_timeout_ms == 4000
    assert config.lookup_strategy == LookupStrategy.AUTO
    assert config.encode_form_values is False
    assert config.validate() == []


def test_from_env(monkeypatch):
    monkeypatch.setenv("PORTAUTHORITY_URL", "http://localhost:8080/port_authority.php")
    monkeypatch.setenv("PORTAUTHORITY_VERIFY_SSL", "false")
    monkeypatch.setenv("PORTAUTHORITY_READ_TIMEOUT", "45")
    monkeypatch.setenv("PORTAUTHORITY_LOOKUP", "position")
    monkeypatch.setenv("PORTAUTHORITY_ENCODE_VALUES", "yes")

    config = PortAuthorityConfig.from_env()

    assert config.provisioning_url == "http://localhost:8080/port_authority.php"
    assert config.verify_ssl is False
    assert config.read_timeout == 45.0
    assert config.lookup_strategy == LookupStrategy.POSITION
    assert config.encode_form_values is True
    assert config.open_timeout_ms == 4000


def test_from_env_ignores_empty_values(monkeypatch):
    monkeypatch.setenv("PORTAUTHORITY_URL", "")
    assert PortAuthorityConfig.from_env().provisioning_url == DEFAULT_PROVISIONING_URL


def test_from_json_file(tmp_path):
    path = tmp_path / "portauthority.json"
    path.write_text(json.dumps({
        "url": "https://ports.example.edu/map.php",
        "verify_ssl": False,
        "open_timeout_ms": 2500,
        "lookup_strategy": "type",
    }))

    config = PortAuthorityConfig.from_file(path)

    assert config.provisioning_url == "https://ports.example.edu/map.php"
    assert config.verify_ssl is False
    assert config.open_timeout_ms == 2500
    assert config.lookup_strategy == LookupStrategy.TYPE


def test_from_key_value_file(tmp_path):
    path = tmp_path / "portauthority.conf"
    path.write_text(
        "# comment\n"
        "\n"
        'provisioning_url = "https://ports.example.edu/map.php"\n'
        "verify_ssl = true\n"
        "read_timeout = 12.5\n"
        "encode_form_values = 1\n"
    )

    config = PortAuthorityConfig.from_file(path)

    assert config.provisioning_url == "https://ports.example.edu/map.php"
    assert config.verify_ssl is True
    assert config.read_timeout == 12.5
    assert config.encode_form_values is True


def test_example_config_parses(tmp_path):
    from portauthority.cli import EXAMPLE_CONFIG

    path = tmp_path / "portauthority.conf"
    path.write_text(EXAMPLE_CONFIG)

    assert PortAuthorityConfig.from_file(path).to_dict() == PortAuthorityConfig().to_dict()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PortAuthorityConfig.from_file(tmp_path / "nope.conf")


def test_unknown_lookup_strategy():
    with pytest.raises(ValueError, match="sideways"):
        PortAuthorityConfig.from_dict({"lookup_strategy": "sideways"})


def test_validate():
    config = PortAuthorityConfig(provisioning_url="ftp://example.edu", read_timeout=0, open_timeout_ms=-1)
    errors = config.validate()

    assert len(errors) == 3
    assert any("http(s)" in e for e in errors)

    assert PortAuthorityConfig(provisioning_url="").validate() == ["Provisioning URL required"]


def test_to_dict_round_trips():
    config = PortAuthorityConfig(lookup_strategy=LookupStrategy.POSITION, verify_ssl=False)
    assert PortAuthorityConfig.from_dict(config.to_dict()) == config
