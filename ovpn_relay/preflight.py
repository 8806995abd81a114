"""Preflight checks and teardown of a previous run."""

import os
import pwd
import shutil
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from . import service
from .config import Settings
from .constants import (
    FRPC_SERVICE, OPENVPN_SERVICE, PACKAGE_MANAGERS, PKI_DIRNAME,
)
from .errors import PreflightError
from .utils import command_exists, console

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageManager:
    """A detected system package manager and its argument conventions."""

    name: str
    install_args: List[str]
    update_args: List[str]

    def install_command(self, packages: List[str]) -> List[str]:
        return [self.name, *self.install_args, *packages]

    def update_command(self) -> List[str]:
        return [self.name, *self.update_args]


def detect_package_manager() -> PackageManager:
    """Return the first supported package manager found on PATH."""
    for name, args in PACKAGE_MANAGERS.items():
        if command_exists(name):
            logger.info("Using package manager %s", name)
            return PackageManager(name, list(args["install"]), list(args["update"]))
    raise PreflightError("Unsupported package manager. Please install manually.")


def resolve_user_home(sudo_user: Optional[str] = None) -> Path:
    """
    Resolve the home directory of the operator who invoked sudo.

    Falls back to the current user when not running under sudo.
    """
    if sudo_user is None:
        sudo_user = os.environ.get("SUDO_USER", "")

    try:
        if sudo_user:
            home = pwd.getpwnam(sudo_user).pw_dir
        else:
            home = pwd.getpwuid(os.geteuid()).pw_dir
    except KeyError:
        home = ""

    if not home:
        raise PreflightError("Cannot determine the user's home directory.")
    return Path(home)


def _remove(path: Path) -> bool:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
    else:
        return False
    logger.info("Removed %s", path)
    return True


def stale_paths(settings: Settings, home: Path, hostname: str) -> List[Path]:
    """List everything a previous run may have left behind."""
    paths = [home / PKI_DIRNAME, home / "frp"]
    paths.extend(sorted(home.glob(f"frp_{settings.frp_version}_*")))
    paths.extend(sorted(home.glob(f"{hostname}_*.ovpn")))
    if settings.openvpn_dir.is_dir():
        paths.extend(sorted(settings.openvpn_dir.iterdir()))
    paths.append(settings.frpc_unit)
    return paths


def teardown(settings: Settings, home: Path, hostname: str) -> List[Path]:
    """
    Stop old services and delete state left by a previous run.

    Every step is best effort: unknown units and missing files are skipped.

    Returns:
        Paths that were actually removed
    """
    console.print("Clearing all existing OpenVPN, EasyRSA, and FRPC configurations...")

    for unit in (OPENVPN_SERVICE, FRPC_SERVICE):
        service.stop(unit, missing_ok=True)
        service.disable(unit, missing_ok=True)

    removed = [path for path in stale_paths(settings, home, hostname) if _remove(path)]

    console.print(f"[green]✓[/green] Cleared all configurations ({len(removed)} path(s) removed)")
    return removed
