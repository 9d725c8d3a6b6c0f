"""Tests for the command line interface."""

import json

import httpx
import pytest
from click.testing import CliRunner

from portauthority import cli
from portauthority.authority import PortAuthority
from portauthority.interfaces import NetworkInterface
from portauthority.models import OperationalStatus
from portauthority.reporter import ProvisioningClient

from conftest import FakeCaptureDevice, switch_frame

HOST = "AA:BB:CC:DD:EE:FF"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("PORTAUTHORITY_URL", raising=False)
    monkeypatch.delenv("PORTAUTHORITY_LOOKUP", raising=False)
    monkeypatch.delenv("PORTAUTHORITY_READ_TIMEOUT", raising=False)


@pytest.fixture
def posted():
    return []


@pytest.fixture
def fake_host(monkeypatch, host_interface, posted):
    """Route the CLI to a fake adapter, capture device and server."""
    frames = [switch_frame()]
    built = {}
    server = {"body": "Registered 101/J1"}

    def handler(request):
        posted.append(request)
        return httpx.Response(200, text=server["body"])

    def build(config, interface):
        built["config"] = config
        device = FakeCaptureDevice(interface, HOST, frames=frames)
        client = ProvisioningClient(url=config.provisioning_url, transport=httpx.MockTransport(handler))
        return PortAuthority(host_interface, config=config, device_source=lambda: [device],
                             client=client, interface_lookup=lambda name: host_interface)

    monkeypatch.setattr(cli, "_build_authority", build)
    return {"frames": frames, "built": built, "server": server}


def test_version(runner):
    result = runner.invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output


def test_config_prints_example(runner):
    result = runner.invoke(cli.main, ["config"])
    assert result.exit_code == 0
    assert "provisioning_url" in result.output
    assert "lookup_strategy = auto" in result.output


def test_config_writes_file(runner, tmp_path):
    target = tmp_path / "portauthority.conf"
    result = runner.invoke(cli.main, ["config", "-o", str(target)])

    assert result.exit_code == 0
    assert target.read_text() == cli.EXAMPLE_CONFIG


def test_config_show_uses_config_file(runner, tmp_path):
    path = tmp_path / "pa.json"
    path.write_text(json.dumps({"provisioning_url": "https://ports.example.edu/map.php"}))

    result = runner.invoke(cli.main, ["-c", str(path), "config", "--show"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["provisioning_url"] == "https://ports.example.edu/map.php"


def test_interfaces(runner, monkeypatch, host_interface):
    down = NetworkInterface(name="wlan0", operational_status=OperationalStatus.DOWN)
    monkeypatch.setattr(cli, "list_interfaces", lambda include_virtual=False: [host_interface, down])

    result = runner.invoke(cli.main, ["interfaces"])

    assert result.exit_code == 0
    assert "eth0" in result.output
    assert HOST in result.output
    assert "10.20.30.40" in result.output
    assert "DOWN" in result.output


def test_interfaces_empty(runner, monkeypatch):
    monkeypatch.setattr(cli, "list_interfaces", lambda include_virtual=False: [])
    result = runner.invoke(cli.main, ["interfaces"])
    assert "No network interfaces found" in result.output


def test_report(runner, fake_host, posted):
    result = runner.invoke(cli.main, [
        "report", "-i", "eth0", "--room", "101", "--jack", "J1", "-u", "jdoe", "-p", "pw",
    ])

    assert result.exit_code == 0, result.output
    assert "Registered 101/J1" in result.output
    assert len(posted) == 1
    assert posted[0].content.endswith(b"&user=jdoe&pass=pw")


def test_report_prompts_for_password(runner, fake_host, posted):
    result = runner.invoke(cli.main, [
        "report", "-i", "eth0", "--room", "101", "--jack", "J1", "-u", "jdoe",
    ], input="hunter2\n")

    assert result.exit_code == 0, result.output
    assert posted[0].content.endswith(b"&pass=hunter2")


def test_report_overrides(runner, fake_host, posted):
    result = runner.invoke(cli.main, [
        "report", "-i", "eth0", "--room", "Room 1", "--jack", "J1", "-u", "jdoe", "-p", "pw",
        "--url", "http://localhost:8080/map.php", "--encode-values", "--insecure", "-t", "5",
    ])

    assert result.exit_code == 0, result.output
    config = fake_host["built"]["config"]
    assert config.provisioning_url == "http://localhost:8080/map.php"
    assert config.verify_ssl is False
    assert config.read_timeout == 5.0
    assert posted[0].content.startswith(b"roomnumber=Room%201&")


def test_report_no_frame(runner, fake_host, posted):
    fake_host["frames"].clear()

    result = runner.invoke(cli.main, [
        "report", "-i", "eth0", "--room", "101", "--jack", "J1", "-u", "jdoe", "-p", "pw",
    ])

    assert result.exit_code == 1
    assert "Unable to capture packet: Check the connection and try again" in result.output
    assert posted == []


def test_report_rejects_bad_url(runner, fake_host, posted):
    result = runner.invoke(cli.main, [
        "report", "-i", "eth0", "--room", "101", "--jack", "J1", "-u", "jdoe", "-p", "pw",
        "--url", "ftp://example.edu",
    ])

    assert result.exit_code == 2
    assert "Config error" in result.output
    assert posted == []


def test_listen(runner, fake_host, posted):
    result = runner.invoke(cli.main, ["listen", "-i", "eth0"])

    assert result.exit_code == 0, result.output
    assert "SwitchName" in result.output
    assert "Gi1/0/24" in result.output
    assert posted == []


def test_listen_json(runner, fake_host):
    result = runner.invoke(cli.main, ["listen", "-i", "eth0", "--json", "--strategy", "position"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {
        "switch_name": "SwitchName",
        "port": "24",
        "gigabit": True,
        "raw_port": "Gi1/0/24",
    }
    assert fake_host["built"]["config"].lookup_strategy.value == "position"


def test_listen_json_failure(runner, fake_host):
    fake_host["frames"].clear()

    result = runner.invoke(cli.main, ["listen", "-i", "eth0", "--json"])

    assert result.exit_code == 1
    assert json.loads(result.stdout)["status"] == "no_frame"


def test_unknown_interface(runner, monkeypatch):
    monkeypatch.setattr("portauthority.interfaces.list_interfaces", lambda include_virtual=False: [])

    result = runner.invoke(cli.main, ["listen", "-i", "eth9"])

    assert result.exit_code == 2
    assert "eth9" in result.output


def test_report_response_with_brackets(runner, fake_host):
    fake_host["server"]["body"] = "Saved [/portmapper] ok [bold]"

    result = runner.invoke(cli.main, [
        "report", "-i", "eth0", "--room", "101", "--jack", "J1", "-u", "jdoe", "-p", "pw",
    ])

    assert result.exit_code == 0, result.output
    assert "Saved [/portmapper] ok [bold]" in result.output


def test_listen_switch_name_with_brackets(runner, fake_host):
    fake_host["frames"][:] = [switch_frame(system_name=b"[/core]sw[red]")]

    result = runner.invoke(cli.main, ["listen", "-i", "eth0"])

    assert result.exit_code == 0, result.output
    assert "[/core]sw[red]" in result.output


def test_unknown_lookup_strategy_in_env(runner, monkeypatch):
    monkeypatch.setenv("PORTAUTHORITY_LOOKUP", "sideways")

    result = runner.invoke(cli.main, ["config", "--show"])

    assert result.exit_code == 2
    assert "Config error" in result.output
    assert "sideways" in result.output


def test_non_numeric_timeout_in_env(runner, fake_host, monkeypatch):
    monkeypatch.setenv("PORTAUTHORITY_READ_TIMEOUT", "soon")

    result = runner.invoke(cli.main, ["listen", "-i", "eth0"])

    assert result.exit_code == 2
    assert "Config error" in result.output


def test_config_file_not_an_object(runner, tmp_path):
    path = tmp_path / "pa.json"
    path.write_text("[1, 2, 3]")

    result = runner.invoke(cli.main, ["-c", str(path), "config", "--show"])

    assert result.exit_code == 2
    assert "Config error" in result.output


@pytest.mark.parametrize("command", ["listen", "report"])
def test_zero_timeout_is_rejected(runner, fake_host, posted, command):
    args = [command, "-i", "eth0", "-t", "0"]
    if command == "report":
        args += ["--room", "101", "--jack", "J1", "-u", "jdoe", "-p", "pw"]

    result = runner.invoke(cli.main, args)

    assert result.exit_code == 2
    assert "read_timeout must be positive" in result.output
    assert posted == []
