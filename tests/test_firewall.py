"""Tests for opening the VPN port."""

import subprocess

from ovpn_relay import utils
from ovpn_relay.firewall import detect_firewall, open_port


def only_on_path(monkeypatch, *names):
    monkeypatch.setattr(
        utils.shutil, "which",
        lambda name: f"/usr/sbin/{name}" if name in names else None,
    )


def test_prefers_ufw(monkeypatch):
    only_on_path(monkeypatch, "ufw", "firewall-cmd")
    assert detect_firewall() == "ufw"


def test_ufw_rule(monkeypatch, runner):
    only_on_path(monkeypatch, "ufw")
    assert open_port(1194, "udp") is True
    assert runner.calls == [["ufw", "allow", "1194/udp"], ["ufw", "reload"]]


def test_firewalld_rule(monkeypatch, runner):
    only_on_path(monkeypatch, "firewall-cmd")
    assert open_port(1194, "tcp") is True
    assert runner.calls == [
        ["firewall-cmd", "--permanent", "--add-port=1194/tcp"],
        ["firewall-cmd", "--reload"],
    ]


def test_no_firewall_is_a_warning(monkeypatch, runner):
    only_on_path(monkeypatch)
    assert detect_firewall() is None
    assert open_port(1194, "tcp") is False
    assert runner.calls == []


def test_rejected_rule_does_not_raise(monkeypatch, runner):
    only_on_path(monkeypatch, "firewall-cmd")
    runner.on("firewall-cmd", lambda cmd, kw: subprocess.CompletedProcess(
        cmd, 252, "", "FirewallD is not running"))
    assert open_port(1194, "tcp") is False
    assert len(runner.calls) == 1
