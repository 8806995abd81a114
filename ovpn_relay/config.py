"""Settings, operator answers and their YAML overrides."""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console
from rich.prompt import Prompt

from .constants import (
    CHECK_SCRIPT_NAME, CONFIG_FILE, DEFAULT_PROTOCOL, DEFAULT_REMOTE_PORT,
    DELIVERY_PORT, FRPC_BINARY,
    EASYRSA_SOURCE, FRP_VERSION, FRPS_PORT, LOG_DIR, OPENVPN_DIR,
    PACKAGES, SUPPORTED_PROTOCOLS, VPN_PORT,
)

console = Console()
logger = logging.getLogger(__name__)

PATH_FIELDS = (
    "openvpn_dir", "easyrsa_source", "binary_dir", "frpc_config",
    "systemd_dir", "log_dir", "status_log", "server_log",
)


@dataclass
class Settings:
    """Tunables and every filesystem location the pipeline touches."""

    # Paths
    openvpn_dir: Path = OPENVPN_DIR
    easyrsa_source: Path = EASYRSA_SOURCE
    binary_dir: Path = Path("/usr/local/bin")
    frpc_config: Path = Path("/etc/frpc.ini")
    systemd_dir: Path = Path("/etc/systemd/system")
    log_dir: Path = LOG_DIR
    status_log: Path = Path("/var/log/openvpn-status.log")
    server_log: Path = Path("/var/log/openvpn.log")

    # OpenVPN server
    vpn_port: int = VPN_PORT
    vpn_subnet: str = "10.8.0.0"
    vpn_netmask: str = "255.255.255.0"
    dns_servers: List[str] = field(default_factory=lambda: ["8.8.8.8", "8.8.4.4"])
    cipher: str = "AES-256-CBC"
    keepalive_interval: int = 10
    keepalive_timeout: int = 120
    run_user: str = "nobody"
    run_group: str = "nogroup"
    verbosity: int = 3

    # frp relay
    frp_version: str = FRP_VERSION
    frps_port: int = FRPS_PORT
    restart_delay: str = "5s"

    # Provisioning
    packages: List[str] = field(default_factory=lambda: list(PACKAGES))
    delivery_port: int = DELIVERY_PORT

    @property
    def check_script(self) -> Path:
        return self.openvpn_dir / CHECK_SCRIPT_NAME

    @property
    def server_config(self) -> Path:
        return self.openvpn_dir / "server.conf"

    @property
    def frpc_binary(self) -> Path:
        return self.binary_dir / FRPC_BINARY

    @property
    def frpc_unit(self) -> Path:
        return self.systemd_dir / "frpc.service"


@dataclass
class SetupOptions:
    """Answers collected from the operator."""

    server: str
    token: str
    remote_port: int = DEFAULT_REMOTE_PORT
    protocol: str = DEFAULT_PROTOCOL

    def __post_init__(self):
        self.protocol = normalize_protocol(self.protocol)


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings, overlaying values from a YAML file if it exists."""
    if path is None:
        path = CONFIG_FILE

    settings = Settings()
    if not path.exists():
        return settings

    with open(path, 'r') as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}

    known = {f.name for f in fields(Settings)}
    for key, value in data.items():
        if key not in known:
            logger.warning("Ignoring unknown setting %r in %s", key, path)
            continue
        if key in PATH_FIELDS:
            value = Path(value)
        setattr(settings, key, value)

    logger.info("Loaded settings from %s", path)
    return settings


def normalize_protocol(protocol: Optional[str]) -> str:
    """Return ``protocol`` if supported, otherwise fall back to tcp."""
    value = (protocol or DEFAULT_PROTOCOL).strip() or DEFAULT_PROTOCOL
    if value not in SUPPORTED_PROTOCOLS:
        console.print(f"[yellow]⚠[/yellow] Invalid protocol type '{value}'. Defaulting to {DEFAULT_PROTOCOL}.")
        logger.warning("Invalid protocol %r, using %s", value, DEFAULT_PROTOCOL)
        return DEFAULT_PROTOCOL
    return value


def parse_remote_port(value: Optional[str]) -> int:
    """Parse the remote port answer; empty means the default."""
    if value is None or not str(value).strip():
        return DEFAULT_REMOTE_PORT
    port = int(str(value).strip())
    if not 1 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    return port


def _ask_required(question: str) -> str:
    while True:
        answer = Prompt.ask(question, default="").strip()
        if answer:
            return answer
        console.print(f"[red]{question} cannot be empty.[/red]")


def collect_options(
    server: Optional[str] = None,
    token: Optional[str] = None,
    remote_port: Optional[str] = None,
    protocol: Optional[str] = None,
) -> SetupOptions:
    """Fill in missing answers interactively."""
    if not server:
        server = _ask_required("Enter the FRPS server IP")
    if not token:
        token = _ask_required("Enter the FRPS token")

    if remote_port is None:
        while True:
            answer = Prompt.ask(
                f"Enter the FRPC remote port (default is {DEFAULT_REMOTE_PORT})",
                default="",
                show_default=False,
            )
            try:
                port = parse_remote_port(answer)
                break
            except ValueError:
                console.print("[red]Please enter a port between 1 and 65535.[/red]")
    else:
        port = parse_remote_port(remote_port)

    if protocol is None:
        protocol = Prompt.ask(
            f"Enter the protocol type (tcp/udp, default is {DEFAULT_PROTOCOL})",
            default="",
            show_default=False,
        )

    return SetupOptions(
        server=server,
        token=token,
        remote_port=port,
        protocol=normalize_protocol(protocol),
    )
