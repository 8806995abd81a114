"""frp relay client: download, install and configure frpc."""

import shutil
import logging
import platform
import tarfile
from pathlib import Path
from typing import Optional

import requests
from rich.progress import (
    BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn,
)

from . import service
from .config import Settings, SetupOptions
from .constants import FRP_ARCHITECTURES, FRP_RELEASE_URL, FRPC_BINARY, FRPC_SERVICE
from .errors import (
    BinaryNotFoundError, DownloadError, ExtractionError,
    UnsupportedArchitectureError,
)
from .render import TemplateRenderer
from .utils import console

logger = logging.getLogger(__name__)


def resolve_arch(machine: Optional[str] = None) -> str:
    """
    Map a CPU architecture to the frp release architecture tag.

    Args:
        machine: ``uname -m`` value; defaults to this host

    Raises:
        UnsupportedArchitectureError: no release exists for ``machine``
    """
    if machine is None:
        machine = platform.machine()
    try:
        return FRP_ARCHITECTURES[machine]
    except KeyError:
        raise UnsupportedArchitectureError(machine) from None


def release_name(version: str, arch: str) -> str:
    return f"frp_{version}_{arch}"


def download_url(version: str, arch: str) -> str:
    """Release tarball URL for a pinned frp version."""
    return FRP_RELEASE_URL.format(version=version, arch=arch)


def download(url: str, dest: Path) -> Path:
    """Stream ``url`` to ``dest``."""
    logger.info("Downloading %s", url)
    try:
        with requests.get(url, stream=True) as response:
            response.raise_for_status()
            total = int(response.headers.get("content-length", 0)) or None
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                DownloadColumn(),
                transient=True,
                console=console,
            ) as progress:
                task = progress.add_task(f"Downloading {dest.name}", total=total)
                with open(dest, "wb") as f:
                    for chunk in response.iter_content(chunk_size=65536):
                        f.write(chunk)
                        progress.update(task, advance=len(chunk))
    except (requests.RequestException, OSError) as e:
        raise DownloadError(f"Error: Failed to download FRPC from {url}: {e}") from e
    return dest


def extract(archive: Path, dest: Path) -> None:
    """Extract a gzipped tarball into ``dest``."""
    try:
        with tarfile.open(archive, "r:gz") as tar:
            if hasattr(tarfile, "data_filter"):
                tar.extractall(path=dest, filter="data")
            else:
                tar.extractall(path=dest)
    except (tarfile.TarError, OSError) as e:
        raise ExtractionError(f"Error: Failed to extract FRPC tar file: {e}") from e
    logger.info("Extracted %s into %s", archive, dest)


def locate_binary(release_dir: Path) -> Path:
    """Find the frpc executable inside an extracted release."""
    binary = release_dir / FRPC_BINARY
    if not binary.is_file():
        raise BinaryNotFoundError("Error: FRPC binary not found after extraction.")
    return binary


def install_binary(binary: Path, target: Path) -> Path:
    """Move ``binary`` to ``target`` and make it executable."""
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(binary), str(target))
    target.chmod(0o755)
    logger.info("Installed %s", target)
    return target


def install_frpc(settings: Settings, workdir: Path, machine: Optional[str] = None) -> Path:
    """
    Download the pinned frp release and install frpc.

    The architecture is resolved before any network access.

    Args:
        settings: Provides the frp version and the binary location
        workdir: Where the tarball is saved and extracted
        machine: ``uname -m`` override

    Returns:
        Path of the installed binary
    """
    arch = resolve_arch(machine)
    name = release_name(settings.frp_version, arch)
    url = download_url(settings.frp_version, arch)

    console.print("Downloading and installing FRPC...")
    archive = download(url, workdir / f"{name}.tar.gz")
    extract(archive, workdir)
    binary = locate_binary(workdir / name)
    installed = install_binary(binary, settings.frpc_binary)

    console.print(f"[green]✓[/green] Installed frpc {settings.frp_version} ({arch})")
    return installed


def write_frpc_files(
    renderer: TemplateRenderer,
    settings: Settings,
    options: SetupOptions,
    hostname: str,
) -> None:
    """Write the frpc configuration and its systemd unit."""
    console.print("Creating FRPC configuration file...")
    settings.frpc_config.write_text(renderer.frpc_config(options, hostname))
    settings.frpc_config.chmod(0o600)

    console.print("Creating FRPC systemd service file...")
    settings.frpc_unit.parent.mkdir(parents=True, exist_ok=True)
    settings.frpc_unit.write_text(renderer.frpc_unit())
    logger.info("Wrote %s and %s", settings.frpc_config, settings.frpc_unit)


def start_frpc() -> None:
    """Reload units, then start and enable frpc."""
    console.print("Starting and enabling FRPC service...")
    service.daemon_reload()
    service.start_and_enable(FRPC_SERVICE)
