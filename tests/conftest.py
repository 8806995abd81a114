"""pytest configuration and shared fixtures."""

import io
import subprocess
import tarfile
from pathlib import Path
from typing import Callable, Dict, List

import pytest

from ovpn_relay.config import Settings, SetupOptions


class FakeRunner:
    """Stands in for subprocess.run and records every command."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.handlers: Dict[str, Callable] = {}

    def on(self, program: str, handler: Callable) -> None:
        """Route commands whose executable basename is ``program``."""
        self.handlers[program] = handler

    def commands(self, program: str) -> List[List[str]]:
        return [c for c in self.calls if Path(c[0]).name == program]

    def __call__(self, cmd, check=False, **kwargs):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        handler = self.handlers.get(Path(cmd[0]).name)
        result = handler(cmd, kwargs) if handler else None
        if result is None:
            result = subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")
        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, cmd, result.stdout, result.stderr
            )
        return result


class FakeSystemd:
    """Tracks which units are running across systemctl calls."""

    def __init__(self):
        self.active = set()
        self.enabled = set()
        self.known = set()

    def __call__(self, cmd, kwargs):
        action = cmd[1]
        unit = cmd[-1]
        if action == "daemon-reload":
            return None
        if action in ("stop", "disable") and unit not in self.known:
            return subprocess.CompletedProcess(
                cmd, 5, stdout="", stderr=f"Unit {unit}.service not loaded."
            )
        if action == "start":
            self.known.add(unit)
            self.active.add(unit)
        elif action == "stop":
            self.active.discard(unit)
        elif action == "enable":
            self.known.add(unit)
            self.enabled.add(unit)
        elif action == "disable":
            self.enabled.discard(unit)
        elif action == "is-active":
            return subprocess.CompletedProcess(cmd, 0 if unit in self.active else 3, "", "")
        elif action == "status":
            return subprocess.CompletedProcess(cmd, 0, f"{cmd[2]} status", "")
        return None


class FakeEasyRSA:
    """Creates the files the real easyrsa script would produce."""

    def __init__(self, skip_client_cert: bool = False, skip_client_key: bool = False):
        self.skip_client_cert = skip_client_cert
        self.skip_client_key = skip_client_key
        self.inputs: List[str] = []

    def __call__(self, cmd, kwargs):
        pki = Path(kwargs["env"]["EASYRSA_PKI"])
        self.inputs.append(kwargs.get("input"))
        args = [a for a in cmd[1:] if not a.startswith("--")]
        action = args[0]

        if action == "init-pki":
            for sub in ("issued", "private", "reqs"):
                (pki / sub).mkdir(parents=True, exist_ok=True)
        elif action == "build-ca":
            (pki / "ca.crt").write_text(pem("CERTIFICATE", "ca"))
            (pki / "private" / "ca.key").write_text(pem("PRIVATE KEY", "ca"))
        elif action == "gen-req":
            name = args[1]
            (pki / "reqs" / f"{name}.req").write_text(pem("CERTIFICATE REQUEST", name))
            if not (self.skip_client_key and self._is_client(pki, name)):
                (pki / "private" / f"{name}.key").write_text(pem("PRIVATE KEY", name))
        elif action == "sign-req":
            kind, name = args[1], args[2]
            if not (kind == "client" and self.skip_client_cert):
                (pki / "issued" / f"{name}.crt").write_text(pem("CERTIFICATE", name))
        elif action == "gen-dh":
            (pki / "dh.pem").write_text(pem("DH PARAMETERS", "dh"))
        return None

    @staticmethod
    def _is_client(pki: Path, name: str) -> bool:
        # server request is always generated first
        return len(list((pki / "reqs").glob("*.req"))) > 1


def pem(kind: str, body: str) -> str:
    return f"-----BEGIN {kind}-----\n{body}\n-----END {kind}-----\n"


def make_release_tarball(version: str, arch: str, include_binary: bool = True) -> bytes:
    """Build an in-memory frp release tarball."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        root = f"frp_{version}_{arch}"
        names = ["frps", "frpc.ini"]
        if include_binary:
            names.append("frpc")
        for name in names:
            data = b"#!/bin/sh\necho " + name.encode() + b"\n"
            info = tarfile.TarInfo(f"{root}/{name}")
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeResponse:
    """Minimal streaming requests.Response."""

    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status_code = status
        self.headers = {"content-length": str(len(content))}

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        import requests
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]


@pytest.fixture
def runner(monkeypatch) -> FakeRunner:
    """Replace subprocess.run for the duration of a test."""
    fake = FakeRunner()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def systemd(runner) -> FakeSystemd:
    fake = FakeSystemd()
    runner.on("systemctl", fake)
    return fake


@pytest.fixture
def home(tmp_path) -> Path:
    path = tmp_path / "home" / "operator"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with every path redirected under tmp_path."""
    root = tmp_path / "root"
    easyrsa_source = root / "usr/share/easy-rsa"
    easyrsa_source.mkdir(parents=True)
    (easyrsa_source / "easyrsa").write_text("#!/bin/sh\n")
    (easyrsa_source / "x509-types").mkdir()
    (easyrsa_source / "x509-types" / "server").write_text("")

    openvpn_dir = root / "etc/openvpn"
    openvpn_dir.mkdir(parents=True)

    return Settings(
        openvpn_dir=openvpn_dir,
        easyrsa_source=easyrsa_source,
        binary_dir=root / "usr/local/bin",
        frpc_config=root / "etc/frpc.ini",
        systemd_dir=root / "etc/systemd/system",
        log_dir=root / "var/log/ovpn-relay",
        status_log=root / "var/log/openvpn-status.log",
        server_log=root / "var/log/openvpn.log",
    )


@pytest.fixture
def options() -> SetupOptions:
    return SetupOptions(server="203.0.113.7", token="relay-token", remote_port=6000, protocol="tcp")
