"""Tests for HostProbe"""

import os
from unittest.mock import MagicMock, patch

import pytest

from farmout.transport.base import RemoteHost
from farmout.transport.probe import HostProbe


@pytest.fixture
def mock_ssh_client():
    """Mock paramiko SSH client whose command succeeds"""
    client = MagicMock()
    stdout = MagicMock()
    stderr = MagicMock()
    stdout.channel.recv_exit_status.return_value = 0
    stdout.read.return_value = b"Python 3.12.1\n"
    stderr.read.return_value = b""
    client.exec_command.return_value = (MagicMock(), stdout, stderr)
    return client, stdout, stderr


@pytest.fixture
def probe(temp_dir):
    return HostProbe(ssh_config=os.path.join(temp_dir, "no-ssh-config"))


class TestHostProbeConfig:
    """Test connection parameters"""

    def test_defaults_without_ssh_config(self, probe):
        config = probe.connect_config(RemoteHost("h1", "tester"))
        assert config["hostname"] == "h1"
        assert config["port"] == 22
        assert config["username"] == "tester"
        assert config["allow_agent"] is True

    def test_ssh_config_alias_resolved(self, temp_dir):
        path = os.path.join(temp_dir, "ssh_config")
        with open(path, "w") as f:
            f.write("Host smoke\n    HostName smoke.example.com\n    Port 2222\n    User ci\n")

        probe = HostProbe(ssh_config=path)
        config = probe.connect_config(RemoteHost("smoke"))
        assert config["hostname"] == "smoke.example.com"
        assert config["port"] == 2222
        assert config["username"] == "ci"

    def test_configured_user_wins(self, temp_dir):
        path = os.path.join(temp_dir, "ssh_config")
        with open(path, "w") as f:
            f.write("Host smoke\n    User ci\n")

        config = HostProbe(ssh_config=path).connect_config(RemoteHost("smoke", "tester"))
        assert config["username"] == "tester"


class TestHostProbeProbe:
    """Test probe()"""

    def test_probe_ok(self, probe, mock_ssh_client):
        client, stdout, stderr = mock_ssh_client

        with patch("farmout.transport.probe.SSHClient", return_value=client):
            ok, message = probe.probe(RemoteHost("h1", "tester"), "/srv/remote-test/", "/usr/bin/python3")

        assert ok is True
        assert message == "Python 3.12.1"
        command = client.exec_command.call_args[0][0]
        assert command == "test -d /srv/remote-test/ && /usr/bin/python3 --version"
        client.close.assert_called_once()

    def test_probe_command_fails(self, probe, mock_ssh_client):
        client, stdout, stderr = mock_ssh_client
        stdout.channel.recv_exit_status.return_value = 1
        stdout.read.return_value = b""

        with patch("farmout.transport.probe.SSHClient", return_value=client):
            ok, message = probe.probe(RemoteHost("h1"), "/srv/remote-test/", "/usr/bin/python3")

        assert ok is False
        assert "/srv/remote-test/" in message

    def test_probe_connection_error(self, probe, mock_ssh_client):
        client, _, _ = mock_ssh_client
        client.connect.side_effect = OSError("Connection refused")

        with patch("farmout.transport.probe.SSHClient", return_value=client):
            ok, message = probe.probe(RemoteHost("h1"), "/srv/remote-test/", "/usr/bin/python3")

        assert ok is False
        assert "Connection refused" in message
        client.close.assert_called_once()
