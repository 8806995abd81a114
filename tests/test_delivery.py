"""Tests for the one-shot HTTP delivery server."""

import socket
import time

import pytest
import requests

from ovpn_relay import delivery
from ovpn_relay.delivery import DeliveryServer
from ovpn_relay.errors import PortInUseError
from ovpn_relay.utils import is_port_listening


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def wait_until(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.1)
    return False


class FakeProcess:
    """Popen look-alike that never leaves the test process."""

    pid = 4242

    def __init__(self, cmd, **kwargs):
        self.cmd = cmd
        self.returncode = None
        self.terminated = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


def test_refuses_busy_port(tmp_path):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        port = listener.getsockname()[1]

        server = DeliveryServer(tmp_path, port)
        with pytest.raises(PortInUseError, match=str(port)):
            server.start()
        assert server.process is None


def test_command_and_handle(tmp_path, monkeypatch):
    monkeypatch.setattr(delivery, "is_port_listening", lambda port: False)
    monkeypatch.setattr(delivery.subprocess, "Popen", FakeProcess)

    server = DeliveryServer(tmp_path, 8000)
    assert server.start() == 4242
    assert server.pid == 4242
    assert server.process.cmd[1:] == [
        "-m", "http.server", "8000", "--directory", str(tmp_path),
    ]
    process = server.process
    server.stop()
    assert process.terminated
    assert server.pid is None
    assert not server.running


def test_url_uses_primary_ip(tmp_path, monkeypatch):
    monkeypatch.setattr(delivery, "get_primary_ip", lambda: "192.0.2.10")
    server = DeliveryServer(tmp_path, 8000)
    assert server.url_for("vpnhost_abc.ovpn") == "http://192.0.2.10:8000/vpnhost_abc.ovpn"


def test_serves_and_releases_port(tmp_path):
    (tmp_path / "vpnhost_abc.ovpn").write_text("client\n")
    port = free_port()

    with DeliveryServer(tmp_path, port) as server:
        assert wait_until(lambda: is_port_listening(port))
        response = requests.get(server.url_for("vpnhost_abc.ovpn", host="127.0.0.1"), timeout=5)
        assert response.status_code == 200
        assert response.text == "client\n"

    assert not server.running
    assert wait_until(lambda: not is_port_listening(port))
