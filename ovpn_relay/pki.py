"""Certificate authority and certificate issuance with easy-rsa."""

import shutil
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .errors import CertificateError
from .identity import generate_common_name
from .utils import console, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PkiMaterial:
    """Paths to the issued certificates and keys of one run."""

    ca_cert: Path
    server_cert: Path
    server_key: Path
    dh_params: Path
    client_cert: Path
    client_key: Path
    server_name: str
    client_name: str


class EasyRSA:
    """An easy-rsa working copy rooted at ``workdir``."""

    def __init__(self, workdir: Path, source: Path):
        self.workdir = workdir
        self.source = source
        self.pki_dir = workdir / "pki"

    @property
    def executable(self) -> Path:
        return self.workdir / "easyrsa"

    def _run(self, args: List[str], passphrase: str = None) -> None:
        # easy-rsa reads its passphrase prompts from stdin; keys stay nopass
        stdin = f"{passphrase}\n{passphrase}\n" if passphrase else None
        run_command(
            [str(self.executable), *args],
            cwd=self.workdir,
            input=stdin,
            env={"EASYRSA_PKI": str(self.pki_dir)},
        )

    def prepare(self) -> None:
        """Copy the packaged easy-rsa tree into the working directory."""
        self.workdir.mkdir(parents=True, exist_ok=True)
        shutil.copytree(self.source, self.workdir, symlinks=True, dirs_exist_ok=True)
        logger.info("Copied easy-rsa from %s to %s", self.source, self.workdir)

    def init_pki(self) -> None:
        self._run(["--batch", "init-pki"])

    def build_ca(self, common_name: str, passphrase: str) -> None:
        self._run(["--batch", f"--req-cn={common_name}", "build-ca", "nopass"], passphrase)

    def gen_req(self, common_name: str, passphrase: str) -> None:
        self._run(["--batch", "gen-req", common_name, "nopass"], passphrase)

    def sign_req(self, kind: str, common_name: str, passphrase: str) -> None:
        self._run(["--batch", "sign-req", kind, common_name], passphrase)

    def gen_dh(self) -> None:
        self._run(["gen-dh"])

    def issued_cert(self, common_name: str) -> Path:
        return self.pki_dir / "issued" / f"{common_name}.crt"

    def private_key(self, common_name: str) -> Path:
        return self.pki_dir / "private" / f"{common_name}.key"

    def issue(self, hostname: str, passphrase: str) -> PkiMaterial:
        """
        Build a fresh CA and issue one server and one client certificate.

        Args:
            hostname: Prefix for the generated common names
            passphrase: Transient passphrase fed to easy-rsa

        Returns:
            Paths to the generated material

        Raises:
            CertificateError: client certificate or key missing afterwards
        """
        ca_name = generate_common_name(hostname)
        server_name = generate_common_name(hostname)
        client_name = generate_common_name(hostname)

        console.print("Setting up EasyRSA...")
        self.prepare()
        self.init_pki()

        console.print("Generating CA certificate...")
        self.build_ca(ca_name, passphrase)

        console.print("Generating server certificate and key...")
        self.gen_req(server_name, passphrase)
        self.sign_req("server", server_name, passphrase)

        console.print("Generating Diffie-Hellman parameters...")
        self.gen_dh()

        console.print("Generating client certificate and key...")
        self.gen_req(client_name, passphrase)
        self.sign_req("client", client_name, passphrase)

        material = PkiMaterial(
            ca_cert=self.pki_dir / "ca.crt",
            server_cert=self.issued_cert(server_name),
            server_key=self.private_key(server_name),
            dh_params=self.pki_dir / "dh.pem",
            client_cert=self.issued_cert(client_name),
            client_key=self.private_key(client_name),
            server_name=server_name,
            client_name=client_name,
        )
        verify_client_material(material)

        logger.info("Issued server %s and client %s", server_name, client_name)
        console.print("[green]✓[/green] Certificates generated")
        return material


def verify_client_material(material: PkiMaterial) -> None:
    """Fail unless the client certificate and key exist on disk."""
    if not material.client_cert.is_file():
        raise CertificateError(f"Error: {material.client_name}.crt not found.")
    if not material.client_key.is_file():
        raise CertificateError(f"Error: {material.client_name}.key not found.")
