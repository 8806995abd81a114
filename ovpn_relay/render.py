"""Rendering of every configuration file the pipeline writes."""

import shlex
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .config import Settings, SetupOptions
from .identity import Credentials

TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Render configuration templates; no side effects."""

    def __init__(self, settings: Settings, template_dir: Path = TEMPLATE_DIR):
        self.settings = settings
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["shell_quote"] = shlex.quote

    def _render(self, name: str, **context) -> str:
        return self.env.get_template(name).render(**context)

    def server_config(
        self,
        protocol: str,
        ca_cert: Path,
        server_cert: Path,
        server_key: Path,
        dh_params: Path,
    ) -> str:
        """OpenVPN server configuration."""
        s = self.settings
        return self._render(
            "server.conf.j2",
            port=s.vpn_port,
            protocol=protocol,
            ca_cert=ca_cert,
            server_cert=server_cert,
            server_key=server_key,
            dh_params=dh_params,
            subnet=s.vpn_subnet,
            netmask=s.vpn_netmask,
            dns_servers=s.dns_servers,
            keepalive_interval=s.keepalive_interval,
            keepalive_timeout=s.keepalive_timeout,
            cipher=s.cipher,
            user=s.run_user,
            group=s.run_group,
            status_log=s.status_log,
            server_log=s.server_log,
            verbosity=s.verbosity,
            check_script=s.check_script,
        )

    def check_script(self, credentials: Credentials) -> str:
        """Script that accepts exactly one username/password pair."""
        return self._render(
            "checkpsw.sh.j2",
            username=credentials.username,
            password=credentials.password,
        )

    def client_profile(
        self,
        options: SetupOptions,
        ca_pem: str,
        cert_pem: str,
        key_pem: str,
    ) -> str:
        """Self-contained client profile; the login password is not embedded."""
        return self._render(
            "client.ovpn.j2",
            protocol=options.protocol,
            remote_host=options.server,
            remote_port=options.remote_port,
            cipher=self.settings.cipher,
            verbosity=self.settings.verbosity,
            ca_pem=ca_pem,
            cert_pem=cert_pem,
            key_pem=key_pem,
        )

    def frpc_config(self, options: SetupOptions, hostname: str) -> str:
        """frpc client configuration with a single tunnel to the VPN port."""
        return self._render(
            "frpc.ini.j2",
            server_addr=options.server,
            server_port=self.settings.frps_port,
            token=options.token,
            hostname=hostname,
            protocol=options.protocol,
            local_port=self.settings.vpn_port,
            remote_port=options.remote_port,
        )

    def frpc_unit(self) -> str:
        """systemd unit running frpc with a restart-always policy."""
        return self._render(
            "frpc.service.j2",
            binary=self.settings.frpc_binary,
            config=self.settings.frpc_config,
            restart_delay=self.settings.restart_delay,
        )
