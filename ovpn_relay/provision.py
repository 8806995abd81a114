"""The provisioning pipeline, run stage by stage."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.panel import Panel

from . import firewall, frpc, openvpn, packages, preflight, service
from .config import Settings, SetupOptions
from .constants import OPENVPN_SERVICE, PKI_DIRNAME
from .delivery import DeliveryServer, show_connection_info
from .identity import Credentials, generate_credentials, generate_passphrase
from .pki import EasyRSA
from .render import TemplateRenderer
from .utils import console, get_hostname, require_root, wait_for_keypress

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """What a completed run produced."""

    credentials: Credentials
    client_profile: Path
    server_name: str
    client_name: str
    frpc_binary: Path
    firewall_opened: bool
    download_url: Optional[str] = None


class Provisioner:
    """Run preflight, PKI, OpenVPN, frpc, firewall and delivery in order.

    Any SetupError aborts the run where it is raised; nothing is rolled
    back, the next run's teardown cleans up.
    """

    def __init__(
        self,
        settings: Settings,
        options: SetupOptions,
        hostname: Optional[str] = None,
        home: Optional[Path] = None,
        machine: Optional[str] = None,
    ):
        self.settings = settings
        self.options = options
        self.hostname = hostname or get_hostname()
        self.home = home
        self.machine = machine
        self.renderer = TemplateRenderer(settings)

    def _stage(self, number: int, title: str) -> None:
        logger.info("Stage %d: %s", number, title)
        console.print()
        console.print(Panel.fit(f"[bold cyan]{number}. {title}[/bold cyan]", border_style="cyan"))

    def client_profile_path(self, credentials: Credentials) -> Path:
        return self.home / f"{self.hostname}_{credentials.password}.ovpn"

    def run(self, serve: bool = True) -> ProvisionResult:
        s = self.settings
        opts = self.options

        self._stage(1, "Preflight")
        require_root()
        manager = preflight.detect_package_manager()
        if self.home is None:
            self.home = preflight.resolve_user_home()
        preflight.teardown(s, self.home, self.hostname)

        self._stage(2, "Packages")
        packages.install_packages(manager, s.packages)

        self._stage(3, "Certificate authority")
        ca_passphrase = generate_passphrase()
        credentials = generate_credentials()
        easyrsa = EasyRSA(self.home / PKI_DIRNAME, s.easyrsa_source)
        material = easyrsa.issue(self.hostname, ca_passphrase)

        self._stage(4, "OpenVPN server")
        installed = openvpn.install_certificates(material, s)
        openvpn.write_server_config(self.renderer, s, opts.protocol, installed)
        openvpn.write_check_script(self.renderer, s, credentials)
        console.print("Starting and enabling OpenVPN service...")
        service.start_and_enable(OPENVPN_SERVICE)

        self._stage(5, "Client profile")
        profile = openvpn.write_client_profile(
            self.renderer, opts, installed, self.client_profile_path(credentials)
        )

        self._stage(6, "FRPC relay client")
        binary = frpc.install_frpc(s, self.home, self.machine)
        frpc.write_frpc_files(self.renderer, s, opts, self.hostname)
        frpc.start_frpc()

        self._stage(7, "Firewall")
        opened = firewall.open_port(s.vpn_port, opts.protocol)

        result = ProvisionResult(
            credentials=credentials,
            client_profile=profile,
            server_name=material.server_name,
            client_name=material.client_name,
            frpc_binary=binary,
            firewall_opened=opened,
        )

        if serve:
            self._stage(8, "Delivery")
            result.download_url = self.deliver(result)
        else:
            show_connection_info(credentials, profile)

        logger.info("Provisioning finished, profile %s", profile)
        return result

    def deliver(self, result: ProvisionResult) -> str:
        """Serve the home directory until the operator presses a key."""
        server = DeliveryServer(self.home, self.settings.delivery_port)
        with server:
            url = server.url_for(result.client_profile.name)
            show_connection_info(result.credentials, result.client_profile, url)
            wait_for_keypress("Press any key to exit and stop HTTP server...")
        return url
