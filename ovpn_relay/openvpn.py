"""OpenVPN server installation and client profile generation."""

import shutil
import logging
from dataclasses import dataclass
from pathlib import Path

from .config import Settings, SetupOptions
from .constants import CLIENT_CERT_NAME, CLIENT_KEY_NAME
from .identity import Credentials
from .pki import PkiMaterial, verify_client_material
from .render import TemplateRenderer
from .utils import console, ensure_directory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstalledMaterial:
    """Certificate and key locations inside the OpenVPN directory."""

    ca_cert: Path
    server_cert: Path
    server_key: Path
    dh_params: Path
    client_cert: Path
    client_key: Path


def install_certificates(material: PkiMaterial, settings: Settings) -> InstalledMaterial:
    """Copy issued certificates and keys into the OpenVPN directory."""
    verify_client_material(material)

    console.print("Copying certificates and keys to OpenVPN directory...")
    target = settings.openvpn_dir
    ensure_directory(target)

    installed = InstalledMaterial(
        ca_cert=target / "ca.crt",
        server_cert=target / "server.crt",
        server_key=target / "server.key",
        dh_params=target / "dh.pem",
        client_cert=target / CLIENT_CERT_NAME,
        client_key=target / CLIENT_KEY_NAME,
    )
    pairs = [
        (material.ca_cert, installed.ca_cert),
        (material.server_cert, installed.server_cert),
        (material.server_key, installed.server_key),
        (material.dh_params, installed.dh_params),
        (material.client_cert, installed.client_cert),
        (material.client_key, installed.client_key),
    ]
    for src, dst in pairs:
        shutil.copy2(src, dst)
    installed.server_key.chmod(0o600)
    installed.client_key.chmod(0o600)

    console.print("[green]✓[/green] Certificates and keys copied")
    return installed


def write_server_config(
    renderer: TemplateRenderer,
    settings: Settings,
    protocol: str,
    installed: InstalledMaterial,
) -> Path:
    """Write server.conf and return its path."""
    console.print("Creating OpenVPN server configuration file...")
    path = settings.server_config
    path.write_text(renderer.server_config(
        protocol=protocol,
        ca_cert=installed.ca_cert,
        server_cert=installed.server_cert,
        server_key=installed.server_key,
        dh_params=installed.dh_params,
    ))
    logger.info("Wrote %s (proto %s)", path, protocol)
    return path


def write_check_script(
    renderer: TemplateRenderer,
    settings: Settings,
    credentials: Credentials,
) -> Path:
    """Write the password verification script and mark it executable."""
    console.print("Creating password verification script...")
    path = settings.check_script
    path.write_text(renderer.check_script(credentials))
    path.chmod(0o755)
    logger.info("Wrote %s", path)
    return path


def write_client_profile(
    renderer: TemplateRenderer,
    options: SetupOptions,
    installed: InstalledMaterial,
    path: Path,
) -> Path:
    """Write the client profile with the PEM material inlined."""
    console.print("Generating OpenVPN client configuration file...")
    # holds the client key
    path.touch(mode=0o600)
    path.chmod(0o600)
    path.write_text(renderer.client_profile(
        options,
        ca_pem=installed.ca_cert.read_text(),
        cert_pem=installed.client_cert.read_text(),
        key_pem=installed.client_key.read_text(),
    ))
    logger.info("Wrote client profile %s", path)
    return path
